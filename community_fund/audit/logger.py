"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of who changed which record
2. Debugging capability when loading or saving fails
3. Accountability towards the fund's contributors

The audit logger:
- Is async to match the storage interfaces
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from community_fund.models.audit import AuditEvent, AuditEventBuilder
from community_fund.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("community_fund.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_ledger_loaded(
        self,
        source: str,
        record_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(
            source=source,
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_blob_parse_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.blob_parse_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_seed_fetched(
        self,
        provider: str,
        record_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_fetched(
            provider=provider,
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_seed_fetch_failed(
        self,
        provider: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_fetch_failed(
            provider=provider,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_seed_rejected(
        self,
        error_message: str,
        details: dict,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_rejected(
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_ledger_reset(
        self,
        actor: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_reset(
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_record_created(
        self,
        record_id: str,
        period: str,
        actor: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.record_created(
            record_id=record_id,
            period=period,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        record_id: str,
        changed_fields: list[str],
        revision: int,
        actor: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.record_updated(
            record_id=record_id,
            changed_fields=changed_fields,
            revision=revision,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        record_id: str,
        period: str,
        actor: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            record_id=record_id,
            period=period,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_mutation_rejected(
        self,
        operation: str,
        reason: str,
        record_id: Optional[str],
        actor: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.mutation_rejected(
            operation=operation,
            reason=reason,
            record_id=record_id,
            actor=actor,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_issues(
        self,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.reconciliation_issues(
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., editing a record).
    Pass it through all subsequent operations.
    """
    return uuid4()
