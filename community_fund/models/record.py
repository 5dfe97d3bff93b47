"""
Core Data Models for the Community Fund Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money in Decimal so balances never drift
3. Be serializable for storage and logging
4. Keep derived balances clearly separate from source fields

DESIGN DECISION: Serialized names follow the dashboard's camelCase keys
(month, contributorNames, amountCollected, ...) so stored blobs and generated
seed data can be validated directly. Python code uses the snake_case names.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


ZERO = Decimal("0")


# =============================================================================
# PERIODS
# =============================================================================

class Period(str, Enum):
    """The twelve canonical period labels, in ledger order."""
    JANUARY = "January"
    FEBRUARY = "February"
    MARCH = "March"
    APRIL = "April"
    MAY = "May"
    JUNE = "June"
    JULY = "July"
    AUGUST = "August"
    SEPTEMBER = "September"
    OCTOBER = "October"
    NOVEMBER = "November"
    DECEMBER = "December"


PERIOD_LABELS: tuple[str, ...] = tuple(period.value for period in Period)


def _build_period_lookup() -> dict[str, int]:
    lookup = {}
    for index, label in enumerate(PERIOD_LABELS):
        lookup[label.casefold()] = index
        lookup[label[:3].casefold()] = index
    return lookup


_PERIOD_LOOKUP = _build_period_lookup()


def period_index(label: Optional[str]) -> Optional[int]:
    """
    Position (0-11) of a period label, or None if it is not recognized.

    Accepts the full month name or its three-letter abbreviation,
    ignoring case and surrounding whitespace.
    """
    if not isinstance(label, str):
        return None
    return _PERIOD_LOOKUP.get(label.strip().casefold())


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Distribution(BaseModel):
    """
    A single itemized payout within a period.

    Negative amounts are representable so validation can flag them
    instead of failing at parse time.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    recipient: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Who received the payout"
    )
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Amount in PKR"
    )


class PeriodRecord(BaseModel):
    """
    One period's contributions and distributions.

    CRITICAL: remaining_balance and cumulative_balance are a cache.
    They are overwritten on every reconciliation and never read as input.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the record store"
    )
    period: str = Field(
        ...,
        alias="month",
        min_length=1,
        description="Period label, normally a month name"
    )
    contributors: list[str] = Field(
        default_factory=list,
        alias="contributorNames",
        description="Contributor display names, kept verbatim"
    )
    amount_collected: Decimal = Field(
        ...,
        alias="amountCollected",
        decimal_places=2,
        description="Inflow for the period in PKR"
    )
    amount_given: Decimal = Field(
        default=ZERO,
        alias="amountGiven",
        decimal_places=2,
        description="Outflow for the period; derived when distributions exist"
    )
    distributions: Optional[list[Distribution]] = Field(
        default=None,
        description="Itemized payouts making up amount_given"
    )
    revision: int = Field(
        default=1,
        ge=1,
        description="Incremented on every update, for optimistic concurrency"
    )

    # Derived cache
    remaining_balance: Optional[Decimal] = Field(
        default=None,
        alias="remainingBalance",
    )
    cumulative_balance: Optional[Decimal] = Field(
        default=None,
        alias="cumulativeBalance",
    )

    @property
    def has_distributions(self) -> bool:
        """True when amount_given must be derived from distributions."""
        return bool(self.distributions)

    @property
    def period_index(self) -> Optional[int]:
        return period_index(self.period)

    def distributions_total(self) -> Decimal:
        """Exact sum of the itemized distribution amounts."""
        return sum((d.amount for d in self.distributions or []), ZERO)


class RecordDraft(BaseModel):
    """
    A partial record: seed entry, create form or update patch.

    Every field is optional. Which fields were actually supplied is
    tracked through model_fields_set, so an update can tell
    "not given" apart from "explicitly cleared".

    Unknown keys are ignored when validating, so generated seed data may
    carry extras; the record store rejects them on create and update.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "period",
        "contributors",
        "amount_collected",
    )
    DERIVED_FIELDS: ClassVar[tuple[str, ...]] = (
        "remaining_balance",
        "cumulative_balance",
    )

    id: Optional[str] = None
    period: Optional[str] = Field(default=None, alias="month", min_length=1)
    contributors: Optional[list[str]] = Field(default=None, alias="contributorNames")
    amount_collected: Optional[Decimal] = Field(
        default=None,
        alias="amountCollected",
        decimal_places=2,
    )
    amount_given: Optional[Decimal] = Field(
        default=None,
        alias="amountGiven",
        decimal_places=2,
    )
    distributions: Optional[list[Distribution]] = None
    revision: Optional[int] = Field(default=None, ge=1)
    remaining_balance: Optional[Decimal] = Field(default=None, alias="remainingBalance")
    cumulative_balance: Optional[Decimal] = Field(default=None, alias="cumulativeBalance")

    def missing_required_fields(self) -> list[str]:
        """Names of required fields that are absent or null."""
        return [name for name in self.REQUIRED_FIELDS if getattr(self, name) is None]

    @classmethod
    def unknown_keys(cls, data: Mapping) -> list[str]:
        """Keys of a raw mapping that match no field name or alias."""
        known = set(cls.model_fields)
        known.update(field.alias for field in cls.model_fields.values() if field.alias)
        return [key for key in data if key not in known]

    def supplied_fields(self) -> dict:
        """Field values the caller explicitly set, keyed by field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class FundSummary(BaseModel):
    """Aggregate figures over all records."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total_collected: Decimal = Field(default=ZERO, alias="totalCollected")
    total_distributed: Decimal = Field(default=ZERO, alias="totalDistributed")
    final_balance: Decimal = Field(default=ZERO, alias="finalBalance")
    unique_contributors: int = Field(default=0, ge=0, alias="uniqueContributors")


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'negative_amount', 'unknown_period')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    record_id: Optional[str] = Field(
        default=None,
        description="Record the issue was found on, if any"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Record checks (amounts, labels)
    Stage 2: Ledger checks (relationships between records)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    record_count: int = Field(ge=0)
    is_valid: bool = Field(
        ...,
        description="False if any error-level issue was found"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# RECONCILIATION RESULT
# =============================================================================

class Reconciliation(BaseModel):
    """
    Ordered, balance-annotated records plus their summary.

    Both halves are computed from the same snapshot and emitted together,
    so a consumer can never pair a summary with a different record list.
    """
    model_config = ConfigDict(frozen=True)

    records: tuple[PeriodRecord, ...] = ()
    summary: FundSummary = Field(default_factory=FundSummary)
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def get(self, record_id: str) -> Optional[PeriodRecord]:
        """Find an annotated record by id."""
        for record in self.records:
            if record.id == record_id:
                return record
        return None


# =============================================================================
# ACCESS CONTROL
# =============================================================================

class Role(str, Enum):
    """Session role. Only admins may change the ledger."""
    ADMIN = "admin"
    GUEST = "guest"


class User(BaseModel):
    """The active session's identity and capability."""

    role: Role = Role.GUEST
    name: str = Field(default="Viewer", min_length=1)

    @property
    def can_edit(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def admin(cls, name: str = "Administrator") -> "User":
        return cls(role=Role.ADMIN, name=name)

    @classmethod
    def guest(cls, name: str = "Viewer") -> "User":
        return cls(role=Role.GUEST, name=name)


# =============================================================================
# LOAD OUTCOME
# =============================================================================

class LoadSource(str, Enum):
    """Where the initial record set came from."""
    STORAGE = "storage"
    SEED = "seed"
    EMPTY = "empty"


class LoadOutcome(BaseModel):
    """What the renderer needs after the initial load."""

    view: Reconciliation
    source: LoadSource
    error_message: Optional[str] = Field(
        default=None,
        description="User-facing message when loading degraded to an empty ledger"
    )
