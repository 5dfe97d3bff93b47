"""
Reconciliation Engine

Turns an unordered snapshot of period records into the ordered,
balance-annotated view plus the fund summary.

PIPELINE:
1. Order     - stable sort by period position; unrecognized labels last
2. Validate  - two-stage checks; fatal only in strict mode
3. Normalize - itemized distributions override amount_given
4. Fold      - remaining and cumulative balances on copies of the records
5. Summarize - totals, final balance, unique contributors

GUARANTEES:
- Pure: inputs are never mutated and no state survives a call
- Deterministic: the same snapshot always yields an equal result
- Exact: all arithmetic is Decimal
- Atomic: records and summary come back in one Reconciliation
"""

from collections.abc import Iterable, Sequence
from typing import Optional

from community_fund.config import get_settings
from community_fund.ledger.store import LedgerError
from community_fund.models.record import (
    PERIOD_LABELS,
    ZERO,
    FundSummary,
    PeriodRecord,
    Reconciliation,
    ValidationIssue,
    period_index,
)
from community_fund.validation import RecordValidator


# Sort position shared by every unrecognized label
UNRECOGNIZED_POSITION = len(PERIOD_LABELS)


class ReconciliationInputInvalidError(LedgerError):
    """Strict validation found error-level issues in the input."""

    def __init__(self, issues: Sequence[ValidationIssue]):
        self.issues = list(issues)
        messages = "; ".join(issue.message for issue in self.issues)
        super().__init__(f"Reconciliation input invalid: {messages}")


def sort_position(record: PeriodRecord) -> int:
    """Canonical position of a record's period; unrecognized labels share the last slot."""
    index = period_index(record.period)
    return UNRECOGNIZED_POSITION if index is None else index


def order_records(records: Iterable[PeriodRecord]) -> list[PeriodRecord]:
    """Stable sort by period; ties keep their input order."""
    return sorted(records, key=sort_position)


def normalize_record(record: PeriodRecord) -> PeriodRecord:
    """
    Derive amount_given from itemized distributions when there are any.

    Returns the record itself when nothing changes, otherwise a copy.
    """
    if not record.has_distributions:
        return record
    total = record.distributions_total()
    if total == record.amount_given:
        return record
    return record.model_copy(update={"amount_given": total})


def fold_balances(records: Sequence[PeriodRecord]) -> list[PeriodRecord]:
    """Annotate ordered records with remaining and cumulative balances."""
    running = ZERO
    annotated = []
    for record in records:
        remaining = record.amount_collected - record.amount_given
        running += remaining
        annotated.append(record.model_copy(update={
            "remaining_balance": remaining,
            "cumulative_balance": running,
        }))
    return annotated


def summarize(records: Sequence[PeriodRecord]) -> FundSummary:
    """Aggregate figures over ordered, annotated records."""
    if not records:
        return FundSummary()

    contributors = {name for record in records for name in record.contributors}

    return FundSummary(
        total_collected=sum((record.amount_collected for record in records), ZERO),
        total_distributed=sum((record.amount_given for record in records), ZERO),
        final_balance=records[-1].cumulative_balance,
        unique_contributors=len(contributors),
    )


class ReconciliationEngine:
    """
    Derives the ledger view from a record snapshot.

    In strict mode, error-level validation issues (negative inflows or
    negative distribution lines) raise ReconciliationInputInvalidError.
    Otherwise every issue is attached to the result for the renderer.
    """

    def __init__(
        self,
        validator: Optional[RecordValidator] = None,
        strict: Optional[bool] = None,
    ):
        self._validator = validator or RecordValidator()
        if strict is None:
            strict = get_settings().ledger.strict_validation
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def reconcile(
        self,
        records: Iterable[PeriodRecord],
        strict: Optional[bool] = None,
    ) -> Reconciliation:
        """
        Produce the ordered, annotated records and their summary.

        Args:
            records: Snapshot to reconcile, in any order
            strict: Overrides the engine's strictness for this call

        Raises:
            ReconciliationInputInvalidError: In strict mode, if the input
                has error-level issues
        """
        ordered = order_records(records)

        result = self._validator.validate(ordered)
        if strict is None:
            strict = self._strict
        if strict and result.has_errors:
            raise ReconciliationInputInvalidError(
                [issue for issue in result.issues if issue.severity == "error"]
            )

        annotated = fold_balances([normalize_record(record) for record in ordered])

        return Reconciliation(
            records=tuple(annotated),
            summary=summarize(annotated),
            issues=tuple(result.issues),
        )


def reconcile(records: Iterable[PeriodRecord], strict: bool = False) -> Reconciliation:
    """Reconcile with a default validator."""
    return ReconciliationEngine(strict=strict).reconcile(records)
