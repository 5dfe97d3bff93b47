"""Tests for the two-stage record validator."""

import pytest
from decimal import Decimal

from community_fund.validation import RecordValidator


def _types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestRecordChecks:
    """Stage 1 checks."""

    def test_clean_record_passes(self, validator, make_record):
        """Test a normal record has no issues."""
        result = validator.validate([make_record("January", 100000, 40000)])
        assert result.is_valid is True
        assert result.issues == []
        assert validator.get_user_friendly_summary(result) == "All checks passed."

    def test_negative_collected_is_error(self, validator, make_record):
        """Test negative inflow."""
        result = validator.validate([make_record("January", -1)])
        assert result.is_valid is False
        assert result.issues[0].field == "amount_collected"
        assert result.issues[0].severity == "error"

    def test_negative_distribution_line_is_error(self, validator, make_record):
        """Test the offending line is named."""
        record = make_record("January", 100, distributions=[("A", 10), ("B", -3)])
        result = validator.validate([record])

        errors = [i for i in result.issues if i.severity == "error"]
        assert len(errors) == 1
        assert errors[0].field == "distributions[1].amount"
        assert errors[0].record_id == record.id

    def test_negative_direct_given_is_warning(self, validator, make_record):
        """Test a negative outflow without lines only warns."""
        result = validator.validate([make_record("January", 100, -20)])
        assert result.is_valid is True
        assert result.issues[0].severity == "warning"

    def test_overridden_amount_given(self, validator, make_record):
        """Test a mismatched non-zero amount_given is reported."""
        result = validator.validate([make_record("April", 100, 7, distributions=[("A", 50)])])
        assert _types(result) == ["amount_given_overridden"]

    def test_zero_amount_given_with_distributions_is_quiet(self, validator, make_record):
        """Test the usual case of lines with no direct total."""
        result = validator.validate([make_record("April", 100, 0, distributions=[("A", 50)])])
        assert result.issues == []

    def test_unknown_period(self, validator, make_record):
        """Test unrecognized labels are flagged, not rejected."""
        result = validator.validate([make_record("Ramadan", 1)])
        assert result.is_valid is True
        assert _types(result) == ["unknown_period"]

    def test_abbreviation_is_not_unknown(self, validator, make_record):
        """Test abbreviations are recognized periods."""
        result = validator.validate([make_record("jan", 1)])
        assert result.issues == []

    def test_suspicious_amount(self, make_record):
        """Test unusually large amounts."""
        validator = RecordValidator(max_period_amount=Decimal("1000"))
        result = validator.validate([make_record("January", 5000)])

        assert _types(result) == ["suspicious_value"]
        assert "Rs. 5,000" in result.issues[0].message

    def test_missing_contributors_is_info(self, validator, make_record):
        """Test an empty contributor list."""
        result = validator.validate([make_record("January", 1, contributors=[])])
        assert result.issues[0].severity == "info"
        assert result.is_valid is True
        assert result.warnings == []


class TestLedgerChecks:
    """Stage 2 checks."""

    def test_duplicate_period_reported_once(self, validator, make_record):
        """Test three records for one month give one issue."""
        result = validator.validate([
            make_record("June", 1),
            make_record("June", 2),
            make_record("June", 3),
        ])
        duplicates = [i for i in result.issues if i.issue_type == "duplicate_period"]
        assert len(duplicates) == 1
        assert "3 records" in duplicates[0].message

    def test_duplicate_detection_matches_abbreviations(self, validator, make_record):
        """Test "Jun" and "June" are the same period."""
        result = validator.validate([make_record("June", 1), make_record("Jun", 1)])
        assert "duplicate_period" in _types(result)


class TestSummary:
    """Tests for the human-readable summary."""

    def test_summary_lists_errors_and_warnings(self, validator, make_record):
        """Test both sections appear."""
        result = validator.validate([
            make_record("January", -1),
            make_record("Bonus", 1),
        ])
        summary = validator.get_user_friendly_summary(result)

        assert "cannot be accepted" in summary
        assert "Fix:" in summary
        assert "Please verify" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
