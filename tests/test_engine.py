"""Tests for the reconciliation engine."""

import pytest
from decimal import Decimal

from community_fund.ledger import ReconciliationInputInvalidError, order_records, reconcile
from community_fund.models import FundSummary, Reconciliation


def _periods(view: Reconciliation) -> list[str]:
    return [record.period for record in view.records]


class TestBalances:
    """Tests for the balance fold."""

    def test_two_month_example(self, engine, make_record):
        """Test the January/February surplus then deficit example."""
        view = engine.reconcile([
            make_record("January", 100000, 40000),
            make_record("February", 80000, 90000),
        ])

        assert [r.remaining_balance for r in view.records] == [Decimal("60000"), Decimal("-10000")]
        assert [r.cumulative_balance for r in view.records] == [Decimal("60000"), Decimal("50000")]
        assert view.summary.final_balance == Decimal("50000")

    def test_deficit_is_not_clamped(self, engine, make_record):
        """Test negative balances propagate into the running total."""
        view = engine.reconcile([
            make_record("January", 1000, 5000),
            make_record("February", 1000, 0),
        ])
        assert [r.cumulative_balance for r in view.records] == [Decimal("-4000"), Decimal("-3000")]
        assert view.summary.final_balance == Decimal("-3000")

    def test_final_balance_matches_sum_of_remaining(self, engine, make_record):
        """Test the last cumulative balance equals the sum of all period balances."""
        view = engine.reconcile([
            make_record("March", 250000, 120000),
            make_record("January", 90000, 30000),
            make_record("July", 50000, 175000),
            make_record("December", 130000, 60000),
        ])
        total_remaining = sum(r.remaining_balance for r in view.records)
        assert view.records[-1].cumulative_balance == view.summary.final_balance
        assert view.summary.final_balance == total_remaining

    def test_stale_cached_balances_are_recomputed(self, engine, make_record):
        """Test persisted derived fields are ignored."""
        record = make_record(
            "January", 1000, 400,
            remaining_balance=Decimal("1"),
            cumulative_balance=Decimal("999999"),
        )
        view = engine.reconcile([record])
        assert view.records[0].remaining_balance == Decimal("600")
        assert view.records[0].cumulative_balance == Decimal("600")

    def test_fractional_amounts_do_not_drift(self, engine, make_record):
        """Test Decimal arithmetic across many small amounts."""
        records = [
            make_record(label, "0.10", "0.03")
            for label in ("January", "February", "March", "April", "May", "June",
                          "July", "August", "September", "October", "November", "December")
        ]
        view = engine.reconcile(records)
        assert view.summary.total_collected == Decimal("1.20")
        assert view.summary.final_balance == Decimal("0.84")


class TestDistributionNormalization:
    """Tests for deriving amount_given from distribution lines."""

    def test_distributions_override_stale_amount_given(self, engine, make_record):
        """Test a stale directly-entered amount is replaced by the lines' sum."""
        record = make_record("April", 60000, 1000, distributions=[("A", 30000), ("B", 20000)])
        view = engine.reconcile([record])

        assert view.records[0].amount_given == Decimal("50000")
        assert view.records[0].remaining_balance == Decimal("10000")

    def test_override_is_reported(self, engine, make_record):
        """Test the silent override is surfaced as a warning."""
        record = make_record("April", 60000, 1000, distributions=[("A", 30000), ("B", 20000)])
        view = engine.reconcile([record])

        overridden = [i for i in view.issues if i.issue_type == "amount_given_overridden"]
        assert len(overridden) == 1
        assert overridden[0].record_id == record.id

    def test_total_distributed_uses_normalized_values(self, engine, make_record):
        """Test the summary never sees the pre-normalization value."""
        view = engine.reconcile([
            make_record("January", 100000, 1, distributions=[("School Fee", 25000), ("Medical", 5000)]),
            make_record("February", 100000, 20000),
        ])
        assert view.summary.total_distributed == Decimal("50000")

    def test_empty_distributions_keep_direct_amount(self, engine, make_record):
        """Test an empty list does not zero the direct amount."""
        view = engine.reconcile([make_record("May", 100, 40, distributions=[])])
        assert view.records[0].amount_given == Decimal("40")


class TestOrdering:
    """Tests for period ordering."""

    def test_records_sorted_by_period(self, engine, make_record):
        """Test calendar ordering regardless of input order."""
        view = engine.reconcile([
            make_record("March", 1),
            make_record("January", 1),
            make_record("February", 1),
        ])
        assert _periods(view) == ["January", "February", "March"]

    def test_unrecognized_labels_sort_last_in_input_order(self, engine, make_record):
        """Test unknown labels go after every month, keeping input order."""
        view = engine.reconcile([
            make_record("Ramadan", 1),
            make_record("March", 1),
            make_record("Bonus", 1),
            make_record("January", 1),
        ])
        assert _periods(view) == ["January", "March", "Ramadan", "Bonus"]

    def test_duplicate_periods_keep_input_order(self, engine, make_record):
        """Test the stable tie-break for duplicate labels."""
        first = make_record("June", 100, record_id="first")
        second = make_record("June", 200, record_id="second")
        view = engine.reconcile([make_record("July", 1), first, second])

        assert [r.id for r in view.records[:2]] == ["first", "second"]
        assert view.records[1].cumulative_balance == Decimal("300")
        assert any(i.issue_type == "duplicate_period" for i in view.issues)

    def test_abbreviations_sort_with_full_names(self, make_record):
        """Test "Feb" sorts between January and March."""
        ordered = order_records([
            make_record("March", 1),
            make_record("Feb", 1),
            make_record("January", 1),
        ])
        assert [r.period for r in ordered] == ["January", "Feb", "March"]

    def test_input_order_does_not_change_output(self, engine, make_record):
        """Test order-independence for distinct periods."""
        records = [
            make_record("January", 100000, 40000, contributors=["Ali", "Omar"]),
            make_record("February", 80000, 90000, contributors=["Fatima"]),
            make_record("March", 70000, 0, distributions=[("Mosque Repair", 15000)]),
        ]
        assert engine.reconcile(records) == engine.reconcile(list(reversed(records)))


class TestPurity:
    """Tests that reconciliation has no side effects."""

    def test_reconcile_is_idempotent(self, engine, make_record):
        """Test two calls on one snapshot give identical results."""
        records = [
            make_record("January", 100000, 40000),
            make_record("February", 80000, 0, distributions=[("A", 30000)]),
        ]
        assert engine.reconcile(records) == engine.reconcile(records)

    def test_inputs_are_not_mutated(self, engine, make_record):
        """Test the engine works on copies."""
        record = make_record("January", 100, 1, distributions=[("A", 50)])
        engine.reconcile([record])

        assert record.amount_given == Decimal("1")
        assert record.remaining_balance is None
        assert record.cumulative_balance is None

    def test_reconciling_the_output_again_is_stable(self, engine, make_record):
        """Test the annotated view is a fixed point."""
        view = engine.reconcile([
            make_record("February", 80000, 90000),
            make_record("January", 100000, 40000),
        ])
        again = engine.reconcile(view.records)
        assert again.records == view.records
        assert again.summary == view.summary


class TestSummary:
    """Tests for the fund summary."""

    def test_empty_input(self, engine):
        """Test an empty ledger has an all-zero summary."""
        view = engine.reconcile([])
        assert view.records == ()
        assert view.summary == FundSummary()
        assert view.is_empty is True

    def test_unique_contributors_are_case_sensitive(self, engine, make_record):
        """Test "Ali" and "ali" are different people."""
        view = engine.reconcile([make_record("January", 1, contributors=["Ali", "ali"])])
        assert view.summary.unique_contributors == 2

    def test_repeated_contributor_counted_once(self, engine, make_record):
        """Test one name across five records counts once."""
        months = ["January", "February", "March", "April", "May"]
        view = engine.reconcile([make_record(m, 1, contributors=["Ali"]) for m in months])
        assert view.summary.unique_contributors == 1

    def test_contributor_names_preserved_verbatim(self, engine, make_record):
        """Test duplicates inside one record stay for display."""
        view = engine.reconcile([make_record("January", 1, contributors=["Ali", "Ali", "Omar"])])
        assert view.records[0].contributors == ["Ali", "Ali", "Omar"]
        assert view.summary.unique_contributors == 2

    def test_totals(self, engine, make_record):
        """Test total collected and distributed."""
        view = engine.reconcile([
            make_record("January", 100000, 40000),
            make_record("February", 80000, 90000),
        ])
        assert view.summary.total_collected == Decimal("180000")
        assert view.summary.total_distributed == Decimal("130000")


class TestStrictMode:
    """Tests for strict input validation."""

    def test_negative_collected_rejected_in_strict_mode(self, strict_engine, make_record):
        """Test ReconciliationInputInvalidError for a negative inflow."""
        with pytest.raises(ReconciliationInputInvalidError) as exc_info:
            strict_engine.reconcile([make_record("January", -5)])
        assert exc_info.value.issues[0].issue_type == "negative_amount"

    def test_negative_distribution_rejected_in_strict_mode(self, strict_engine, make_record):
        """Test a negative distribution line is fatal in strict mode."""
        with pytest.raises(ReconciliationInputInvalidError):
            strict_engine.reconcile([make_record("January", 100, distributions=[("A", -10)])])

    def test_negative_amounts_flagged_when_not_strict(self, engine, make_record):
        """Test non-strict mode reconciles and reports the error."""
        view = engine.reconcile([make_record("January", -5)])
        assert view.summary.final_balance == Decimal("-5")
        assert any(i.severity == "error" for i in view.issues)

    def test_strictness_can_be_relaxed_per_call(self, strict_engine, make_record):
        """Test a strict engine can still reconcile for display."""
        view = strict_engine.reconcile([make_record("January", -5)], strict=False)
        assert view.summary.final_balance == Decimal("-5")
        assert strict_engine.strict is True

    def test_module_level_reconcile(self, make_record):
        """Test the convenience function."""
        view = reconcile([make_record("January", 10, 4)])
        assert view.summary.final_balance == Decimal("6")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
