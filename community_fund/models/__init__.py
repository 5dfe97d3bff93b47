"""
Data Models Package

This package contains all Pydantic models used by the community fund ledger.
All data flowing through the system must conform to these schemas.
"""

from community_fund.models.record import (
    PERIOD_LABELS,
    Distribution,
    FundSummary,
    LoadOutcome,
    LoadSource,
    Period,
    PeriodRecord,
    Reconciliation,
    RecordDraft,
    Role,
    User,
    ValidationIssue,
    ValidationResult,
    period_index,
)
from community_fund.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "PERIOD_LABELS",
    "Distribution",
    "FundSummary",
    "LoadOutcome",
    "LoadSource",
    "Period",
    "PeriodRecord",
    "Reconciliation",
    "RecordDraft",
    "Role",
    "User",
    "ValidationIssue",
    "ValidationResult",
    "period_index",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
