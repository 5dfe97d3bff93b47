"""
Two-Stage Record Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - RECORD VALIDATION:
- Negative inflows and negative distribution lines
- Unrecognized period labels
- Absurd amount detection
- Given amounts that disagree with their itemized distributions

STAGE 2 - LEDGER VALIDATION:
- Duplicate periods across records

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the reconciliation engine decides whether
they are fatal (strict mode) or shown as warnings.
"""

from collections import Counter
from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from community_fund.config import get_settings
from community_fund.models.record import (
    ZERO,
    PeriodRecord,
    ValidationIssue,
    ValidationResult,
    period_index,
)


class RecordValidator:
    """
    Validates period records through a two-stage pipeline.

    Stage 1: Per-record checks
    Stage 2: Checks across the whole record set
    """

    def __init__(self, max_period_amount: Optional[Decimal] = None):
        """
        Initialize validator.

        Args:
            max_period_amount: Largest plausible monthly amount.
                Read from settings when not given.
        """
        if max_period_amount is None:
            max_period_amount = Decimal(str(get_settings().ledger.max_period_amount))
        self._max_amount = max_period_amount

    def _validate_record(self, record: PeriodRecord) -> list[ValidationIssue]:
        """
        Stage 1: checks that only need the record itself.
        """
        issues = []

        if record.amount_collected < ZERO:
            issues.append(ValidationIssue(
                field="amount_collected",
                issue_type="negative_amount",
                message=f"{record.period}: collected amount ({record.amount_collected}) is negative",
                severity="error",
                record_id=record.id,
                suggested_fix="Enter the amount collected as a positive number",
            ))

        for position, distribution in enumerate(record.distributions or []):
            if distribution.amount < ZERO:
                issues.append(ValidationIssue(
                    field=f"distributions[{position}].amount",
                    issue_type="negative_amount",
                    message=(
                        f"{record.period}: distribution to {distribution.recipient} "
                        f"({distribution.amount}) is negative"
                    ),
                    severity="error",
                    record_id=record.id,
                    suggested_fix="Remove the line or enter a positive amount",
                ))

        if not record.has_distributions and record.amount_given < ZERO:
            issues.append(ValidationIssue(
                field="amount_given",
                issue_type="negative_amount",
                message=f"{record.period}: given amount ({record.amount_given}) is negative",
                severity="warning",
                record_id=record.id,
            ))

        # Distributions win over a directly entered amount; say so.
        if record.has_distributions and record.amount_given != ZERO:
            total = record.distributions_total()
            if record.amount_given != total:
                issues.append(ValidationIssue(
                    field="amount_given",
                    issue_type="amount_given_overridden",
                    message=(
                        f"{record.period}: given amount {record.amount_given} replaced by "
                        f"the distributions total {total}"
                    ),
                    severity="warning",
                    record_id=record.id,
                    suggested_fix="Edit the distribution lines instead of the total",
                ))

        if period_index(record.period) is None:
            issues.append(ValidationIssue(
                field="period",
                issue_type="unknown_period",
                message=f"'{record.period}' is not a recognized month; it is listed last",
                severity="warning",
                record_id=record.id,
            ))

        for field, amount in (
            ("amount_collected", record.amount_collected),
            ("amount_given", record.amount_given),
        ):
            if amount > self._max_amount:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="suspicious_value",
                    message=f"{record.period}: amount (Rs. {amount:,}) seems unusually high",
                    severity="warning",
                    record_id=record.id,
                    suggested_fix="Please verify this amount is correct",
                ))

        if not record.contributors:
            issues.append(ValidationIssue(
                field="contributors",
                issue_type="missing",
                message=f"{record.period}: no contributors listed",
                severity="info",
                record_id=record.id,
            ))

        return issues

    def _validate_ledger(self, records: Sequence[PeriodRecord]) -> list[ValidationIssue]:
        """
        Stage 2: checks across records.

        Duplicate periods are allowed; they are reported so the user
        can tell why a month shows up twice.
        """
        issues = []

        def key(record: PeriodRecord):
            index = period_index(record.period)
            return index if index is not None else record.period

        counts = Counter(key(record) for record in records)
        reported = set()
        for record in records:
            record_key = key(record)
            if counts[record_key] > 1 and record_key not in reported:
                reported.add(record_key)
                issues.append(ValidationIssue(
                    field="period",
                    issue_type="duplicate_period",
                    message=f"{record.period} appears in {counts[record_key]} records",
                    severity="warning",
                    record_id=record.id,
                ))

        return issues

    def validate(self, records: Sequence[PeriodRecord]) -> ValidationResult:
        """
        Run both validation stages.

        Args:
            records: The records to validate, in any order

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []
        for record in records:
            all_issues.extend(self._validate_record(record))
        all_issues.extend(self._validate_ledger(records))

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            record_count=len(records),
            is_valid=not any(issue.severity == "error" for issue in all_issues),
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("Some records cannot be accepted:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     Fix: {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
