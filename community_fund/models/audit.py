"""
Audit Models for the Community Fund Ledger

Every change to the fund's records is logged for audit purposes.
This provides:
1. Complete traceability of who changed what
2. Debugging information when a load or sync goes wrong
3. Accountability towards the contributors

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Loading
    LEDGER_LOADED = "ledger_loaded"
    BLOB_PARSE_FAILED = "blob_parse_failed"
    SEED_FETCHED = "seed_fetched"
    SEED_FETCH_FAILED = "seed_fetch_failed"
    SEED_REJECTED = "seed_rejected"
    LEDGER_RESET = "ledger_reset"

    # Mutations
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    MUTATION_REJECTED = "mutation_rejected"

    # Reconciliation and persistence
    RECONCILIATION_ISSUES = "reconciliation_issues"
    PERSISTENCE_FAILED = "persistence_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    # Who triggered it
    actor: Optional[str] = Field(
        default=None,
        description="Name of the session user, for user actions"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "actor": self.actor,
        }

    def to_row(self) -> list[str]:
        """
        Flatten to a row of strings for tabular audit storage.

        Columns: [event_id, timestamp, event_type, severity, entity_type,
        entity_id, correlation_id, description, details_json,
        error_message, actor]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            self.actor or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record_id, period, actor, correlation_id)
    """

    @staticmethod
    def ledger_loaded(
        source: str,
        record_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger loaded from {source} with {record_count} records",
            details={
                "source": source,
                "record_count": record_count,
            },
        )

    @staticmethod
    def blob_parse_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BLOB_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Stored ledger could not be parsed; falling back to seed data",
            error_message=error_message,
        )

    @staticmethod
    def seed_fetched(
        provider: str,
        record_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_FETCHED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Fetched {record_count} seed records from {provider}",
            details={
                "provider": provider,
                "record_count": record_count,
            },
        )

    @staticmethod
    def seed_fetch_failed(
        provider: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_FETCH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Seed fetch from {provider} failed",
            error_message=error_message,
            details={"provider": provider},
        )

    @staticmethod
    def seed_rejected(
        error_message: str,
        details: dict,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_REJECTED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Seed data rejected by validation",
            error_message=error_message,
            details=details,
        )

    @staticmethod
    def ledger_reset(
        actor: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Ledger cleared and reloaded from seed data",
            actor=actor,
        )

    @staticmethod
    def record_created(
        record_id: str,
        period: str,
        actor: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record created for {period}",
            details={"period": period},
            actor=actor,
        )

    @staticmethod
    def record_updated(
        record_id: str,
        changed_fields: list[str],
        revision: int,
        actor: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record updated to revision {revision}",
            details={
                "changed_fields": changed_fields,
                "revision": revision,
            },
            actor=actor,
        )

    @staticmethod
    def record_deleted(
        record_id: str,
        period: str,
        actor: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record for {period} deleted",
            details={"period": period},
            actor=actor,
        )

    @staticmethod
    def mutation_rejected(
        operation: str,
        reason: str,
        record_id: Optional[str],
        actor: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{operation.capitalize()} rejected",
            error_message=reason,
            details={"operation": operation},
            actor=actor,
        )

    @staticmethod
    def reconciliation_issues(
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_ISSUES,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Reconciliation flagged {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def persistence_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Writing the ledger to storage failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
