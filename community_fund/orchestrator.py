"""
Main Orchestrator for the Community Fund Ledger

This module ties the components together and defines the end-to-end flows:
1. Load   (stored blob or seed provider → store → reconcile → persist)
2. Mutate (capability check → store → reconcile → persist → audit)
3. Reset  (clear blob → reload from seed provider)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only sessions with the edit capability can change records
- A mutation that fails anywhere leaves the store as it was
- Persistence happens after reconciliation, never on raw mutation
- Every step is audited

The store and engine stay pure; all side effects live here.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from community_fund.audit import AuditLogger, create_correlation_id
from community_fund.config import get_settings
from community_fund.ledger import (
    LedgerError,
    ReconciliationEngine,
    ReconciliationInputInvalidError,
    RecordStore,
    SeedInvalidError,
)
from community_fund.ledger.store import DraftLike
from community_fund.models.record import (
    LoadOutcome,
    LoadSource,
    PeriodRecord,
    Reconciliation,
    User,
)
from community_fund.services.seed import GeminiSeedProvider, SeedFetchError, SeedProvider
from community_fund.services.storage import (
    BlobFormatError,
    BlobStorageInterface,
    InMemoryAuditStorage,
    LocalFileBlobStorage,
    StorageError,
    blob_to_drafts,
    records_to_blob,
)
from community_fund.validation import RecordValidator


logger = structlog.get_logger("community_fund.orchestrator")

SEED_FAILURE_MESSAGE = (
    "Unable to generate financial data. "
    "Please ensure your API key is configured correctly."
)

STORED_LEDGER_INVALID_MESSAGE = (
    "Some stored records have invalid amounts. "
    "Fix or delete them before making other changes."
)

# Source fields compared to report what an update changed
_SOURCE_FIELDS = ("period", "contributors", "amount_collected", "amount_given", "distributions")


class PermissionDeniedError(LedgerError):
    """The session lacks the capability to change the ledger."""
    pass


class FundLedgerFlow:
    """
    Orchestrates the ledger lifecycle.

    Flow:
    1. load()   → initial record set from storage, else from seed
    2. create() / update() / delete() → admin-only mutations
    3. Every successful change → reconcile → write-through → audit

    The latest Reconciliation is available as `view`; the renderer
    only ever reads that.
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        engine: Optional[ReconciliationEngine] = None,
        blob_storage: Optional[BlobStorageInterface] = None,
        seed_provider: Optional[SeedProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store or RecordStore()
        self._engine = engine or ReconciliationEngine()
        self._blob_storage = blob_storage
        self._seed_provider = seed_provider
        self._audit_logger = audit_logger or AuditLogger()
        self._view = Reconciliation()

    @property
    def view(self) -> Reconciliation:
        return self._view

    @property
    def store(self) -> RecordStore:
        return self._store

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load(self, correlation_id: Optional[UUID] = None) -> LoadOutcome:
        """
        Load the initial record set.

        A stored blob wins; its derived fields are only a cache and get
        recomputed. A missing or undecodable blob falls back to the seed
        provider. If seeding fails too, the ledger starts empty and the
        outcome carries a user-facing error message.

        A stored ledger that decodes but fails strict reconciliation is
        shown non-strictly with an error message and is not rewritten.
        When the blob cannot be read at all, seed data is shown but not
        written, so the stored ledger survives.
        """
        correlation_id = correlation_id or create_correlation_id()

        text = None
        persist_seed = True
        if self._blob_storage is not None:
            try:
                text = await self._blob_storage.read_blob()
            except StorageError as e:
                await self._audit_logger.log_error(
                    error_type="storage_read_failed",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                # The stored ledger may still be there; seed data must not replace it
                persist_seed = False

        outcome = await self._load_from_blob(text, correlation_id) if text else None
        if outcome is None:
            outcome = await self._load_from_seed(correlation_id, persist=persist_seed)

        await self._audit_logger.log_ledger_loaded(
            source=outcome.source.value,
            record_count=len(outcome.view.records),
            correlation_id=correlation_id,
        )
        return outcome

    async def _load_from_blob(self, text: str, correlation_id: UUID) -> Optional[LoadOutcome]:
        checkpoint = self._store.snapshot()
        try:
            self._store.load(blob_to_drafts(text))
        except (BlobFormatError, SeedInvalidError) as e:
            self._store.restore(checkpoint)
            await self._audit_logger.log_blob_parse_failed(
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return None

        # CRITICAL: from here on the blob is the user's ledger. A strict
        # rejection is shown, not replaced by seed data.
        try:
            view = self._engine.reconcile(self._store.snapshot())
        except ReconciliationInputInvalidError as e:
            view = self._engine.reconcile(self._store.snapshot(), strict=False)
            await self._audit_logger.log_error(
                error_type="stored_ledger_invalid",
                error_message=str(e),
                details={"record_count": len(view.records)},
                correlation_id=correlation_id,
            )
            await self._publish(view, correlation_id, persist=False)
            return LoadOutcome(
                view=view,
                source=LoadSource.STORAGE,
                error_message=STORED_LEDGER_INVALID_MESSAGE,
            )

        await self._publish(view, correlation_id)
        return LoadOutcome(view=view, source=LoadSource.STORAGE)

    async def _load_from_seed(self, correlation_id: UUID, persist: bool = True) -> LoadOutcome:
        if self._seed_provider is None:
            return self._degrade(error_message=None)

        provider = self._seed_provider.name
        try:
            drafts = await self._seed_provider.fetch_seed_records()
        except SeedFetchError as e:
            await self._audit_logger.log_seed_fetch_failed(
                provider=provider,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return self._degrade(SEED_FAILURE_MESSAGE)
        except LedgerError as e:
            await self._audit_logger.log_seed_rejected(
                error_message=str(e),
                details={"provider": provider},
                correlation_id=correlation_id,
            )
            return self._degrade(SEED_FAILURE_MESSAGE)

        try:
            self._store.load(drafts)
            view = self._engine.reconcile(self._store.snapshot())
        except LedgerError as e:
            await self._audit_logger.log_seed_rejected(
                error_message=str(e),
                details={"provider": provider, "record_count": len(drafts)},
                correlation_id=correlation_id,
            )
            return self._degrade(SEED_FAILURE_MESSAGE)

        await self._audit_logger.log_seed_fetched(
            provider=provider,
            record_count=len(drafts),
            correlation_id=correlation_id,
        )
        await self._publish(view, correlation_id, persist=persist)
        return LoadOutcome(view=view, source=LoadSource.SEED)

    def _degrade(self, error_message: Optional[str]) -> LoadOutcome:
        """Start from an empty ledger without touching storage."""
        self._store.clear()
        self._view = Reconciliation()
        return LoadOutcome(
            view=self._view,
            source=LoadSource.EMPTY,
            error_message=error_message,
        )

    async def reset(
        self,
        actor: User,
        correlation_id: Optional[UUID] = None,
    ) -> LoadOutcome:
        """
        Discard the stored ledger and reload from the seed provider.

        Raises:
            PermissionDeniedError: If the actor cannot edit
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._authorize(actor, "reset", None, correlation_id)

        if self._blob_storage is not None:
            try:
                await self._blob_storage.clear()
            except StorageError as e:
                await self._audit_logger.log_persistence_failed(
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

        await self._audit_logger.log_ledger_reset(
            actor=actor.name,
            correlation_id=correlation_id,
        )
        self._store.clear()
        outcome = await self._load_from_seed(correlation_id)
        await self._audit_logger.log_ledger_loaded(
            source=outcome.source.value,
            record_count=len(outcome.view.records),
            correlation_id=correlation_id,
        )
        return outcome

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(
        self,
        actor: User,
        draft: DraftLike,
        correlation_id: Optional[UUID] = None,
    ) -> Reconciliation:
        """
        Add a record and return the recomputed view.

        Raises:
            PermissionDeniedError: If the actor cannot edit
            RecordInvalidError: If the draft is incomplete or malformed
            ReconciliationInputInvalidError: In strict mode, for negative amounts
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._authorize(actor, "create", None, correlation_id)

        checkpoint = self._store.snapshot()
        try:
            record = self._store.create(draft)
            view = self._engine.reconcile(self._store.snapshot())
        except LedgerError as e:
            self._store.restore(checkpoint)
            await self._reject("create", e, None, actor, correlation_id)
            raise

        await self._audit_logger.log_record_created(
            record_id=record.id,
            period=record.period,
            actor=actor.name,
            correlation_id=correlation_id,
        )
        await self._publish(view, correlation_id)
        return view

    async def update(
        self,
        actor: User,
        record_id: str,
        patch: DraftLike,
        expected_revision: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Reconciliation:
        """
        Merge a patch onto a record and return the recomputed view.

        Raises:
            PermissionDeniedError: If the actor cannot edit
            RecordNotFoundError: If the record does not exist
            ConflictError: If expected_revision is stale
            RecordInvalidError: If the patched record is invalid
            ReconciliationInputInvalidError: In strict mode, for negative amounts
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._authorize(actor, "update", record_id, correlation_id)

        checkpoint = self._store.snapshot()
        before = self._store.get(record_id)
        try:
            after = self._store.update(record_id, patch, expected_revision)
            view = self._engine.reconcile(self._store.snapshot())
        except LedgerError as e:
            self._store.restore(checkpoint)
            await self._reject("update", e, record_id, actor, correlation_id)
            raise

        await self._audit_logger.log_record_updated(
            record_id=record_id,
            changed_fields=_changed_fields(before, after),
            revision=after.revision,
            actor=actor.name,
            correlation_id=correlation_id,
        )
        await self._publish(view, correlation_id)
        return view

    async def delete(
        self,
        actor: User,
        record_id: str,
        expected_revision: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Reconciliation:
        """
        Remove a record and return the recomputed view.

        Confirmation is the renderer's job; by the time this is called
        the user has already agreed.

        Raises:
            PermissionDeniedError: If the actor cannot edit
            RecordNotFoundError: If the record does not exist
            ConflictError: If expected_revision is stale
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._authorize(actor, "delete", record_id, correlation_id)

        checkpoint = self._store.snapshot()
        removed = self._store.get(record_id)
        try:
            self._store.delete(record_id, expected_revision)
            view = self._engine.reconcile(self._store.snapshot())
        except LedgerError as e:
            self._store.restore(checkpoint)
            await self._reject("delete", e, record_id, actor, correlation_id)
            raise

        await self._audit_logger.log_record_deleted(
            record_id=record_id,
            period=removed.period,
            actor=actor.name,
            correlation_id=correlation_id,
        )
        await self._publish(view, correlation_id)
        return view

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _authorize(
        self,
        actor: User,
        operation: str,
        record_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        if actor.can_edit:
            return
        error = PermissionDeniedError(
            f"{actor.name} ({actor.role.value}) is not allowed to {operation} records"
        )
        await self._reject(operation, error, record_id, actor, correlation_id)
        raise error

    async def _reject(
        self,
        operation: str,
        error: Exception,
        record_id: Optional[str],
        actor: User,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_mutation_rejected(
            operation=operation,
            reason=str(error),
            record_id=record_id,
            actor=actor.name,
            correlation_id=correlation_id,
        )

    async def _publish(
        self,
        view: Reconciliation,
        correlation_id: UUID,
        persist: bool = True,
    ) -> None:
        """
        Make a new reconciliation current and write it through.

        The store takes the reconciled records back, normalized
        amount_given included, so an override is reported once.

        Write failures are audited, never raised: the in-memory ledger
        stays authoritative for the session.
        """
        self._store.restore(view.records)
        self._view = view

        if view.issues:
            await self._audit_logger.log_reconciliation_issues(
                issues=[issue.model_dump() for issue in view.issues],
                correlation_id=correlation_id,
            )

        if self._blob_storage is None or not persist:
            return

        try:
            await self._blob_storage.write_blob(records_to_blob(view.records))
        except StorageError as e:
            await self._audit_logger.log_persistence_failed(
                error_message=str(e),
                correlation_id=correlation_id,
            )


def _changed_fields(before: Optional[PeriodRecord], after: PeriodRecord) -> list[str]:
    if before is None:
        return list(_SOURCE_FIELDS)
    return [
        name for name in _SOURCE_FIELDS
        if getattr(before, name) != getattr(after, name)
    ]


def create_app_components(use_gemini: bool = True) -> FundLedgerFlow:
    """
    Factory function to build the ledger flow from settings.

    Args:
        use_gemini: Whether to seed an empty ledger from Gemini.
                    Set to False to start empty when nothing is stored.
    """
    ledger_settings = get_settings().ledger

    seed_provider = None
    if use_gemini:
        try:
            seed_provider = GeminiSeedProvider()
        except ValidationError as e:
            # Gemini not configured - continue without seed data
            logger.warning("seed_provider_unavailable", error=str(e))

    engine = ReconciliationEngine(
        validator=RecordValidator(Decimal(str(ledger_settings.max_period_amount))),
        strict=ledger_settings.strict_validation,
    )

    return FundLedgerFlow(
        store=RecordStore(),
        engine=engine,
        blob_storage=LocalFileBlobStorage(ledger_settings.storage_path),
        seed_provider=seed_provider,
        audit_logger=AuditLogger(InMemoryAuditStorage()),
    )
