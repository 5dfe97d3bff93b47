"""
Record Store

DESIGN DECISION: The store is a pure CRUD surface over the period records.
It assigns identity and applies create/update/delete, nothing else:
- No derived-field computation (that is the reconciliation engine's job)
- No persistence (the caller writes through after reconciling)
- No access control (the orchestrator checks the session's capability)

Every operation validates fully before committing, so a failed call
never leaves the store half-changed.
"""

import itertools
from collections.abc import Iterable, Iterator, Mapping
from typing import Callable, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from community_fund.models.record import PeriodRecord, RecordDraft


IdGenerator = Callable[[], str]
DraftLike = Union[RecordDraft, Mapping]

# Fields a patch can never change
_PROTECTED_FIELDS = frozenset({"id", "revision", *RecordDraft.DERIVED_FIELDS})

# Fields an update may not clear to null
_NON_NULLABLE_FIELDS = (*RecordDraft.REQUIRED_FIELDS, "amount_given")


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class RecordInvalidError(LedgerError):
    """A draft is missing required fields or carries malformed values."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        index: Optional[int] = None,
    ):
        self.missing_fields = missing_fields or []
        self.index = index
        super().__init__(message)


class SeedInvalidError(RecordInvalidError):
    """Seed data (generated or stored) failed validation."""
    pass


class RecordNotFoundError(LedgerError):
    """Mutation referenced an unknown record id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"No record with id {record_id!r}")


class ConflictError(LedgerError):
    """Caller's expected revision is stale."""

    def __init__(self, record_id: str, expected_revision: int, actual_revision: int):
        self.record_id = record_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Record {record_id!r} is at revision {actual_revision}, "
            f"expected {expected_revision}"
        )


def uuid_id_generator() -> str:
    """Production identifier: a random UUID4 in hex form."""
    return uuid4().hex


class SequentialIdGenerator:
    """
    Deterministic identifiers ("rec-1", "rec-2", ...).

    Useful in tests that assert on ids.
    """

    def __init__(self, prefix: str = "rec-", start: int = 1):
        self._prefix = prefix
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self._prefix}{next(self._counter)}"


def _coerce_draft(draft: DraftLike, reject_unknown: bool = False) -> RecordDraft:
    if isinstance(draft, RecordDraft):
        return draft
    if reject_unknown:
        unknown = RecordDraft.unknown_keys(draft)
        if unknown:
            raise RecordInvalidError(f"Unknown fields: {', '.join(map(str, unknown))}")
    return RecordDraft.model_validate(draft)


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )


class RecordStore:
    """
    Authoritative, insertion-ordered set of period records.

    Each instance owns its own state; nothing is shared between stores.
    """

    def __init__(self, id_generator: Optional[IdGenerator] = None):
        self._id_generator = id_generator or uuid_id_generator
        self._records: dict[str, PeriodRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[PeriodRecord]:
        return iter(self.snapshot())

    def get(self, record_id: str) -> Optional[PeriodRecord]:
        return self._records.get(record_id)

    def snapshot(self) -> list[PeriodRecord]:
        """Copy of the current records in insertion order."""
        return list(self._records.values())

    def clear(self) -> None:
        self._records = {}

    def restore(self, records: Iterable[PeriodRecord]) -> None:
        """Reinstate a snapshot taken earlier, ids and revisions included."""
        self._records = {record.id: record for record in records}

    def load(self, seed: Iterable[DraftLike]) -> list[PeriodRecord]:
        """
        Replace the record set with seed entries.

        Entries without an id get a fresh one. Derived fields on the
        entries are kept as-is; reconciliation overwrites them.

        Raises:
            SeedInvalidError: If any entry is malformed or misses a
                required field. Nothing is committed in that case.
        """
        materialized: dict[str, PeriodRecord] = {}

        for index, entry in enumerate(seed):
            try:
                draft = _coerce_draft(entry)
            except ValidationError as e:
                raise SeedInvalidError(
                    f"Seed entry {index} is malformed: {_describe(e)}",
                    index=index,
                ) from e

            missing = draft.missing_required_fields()
            if missing:
                raise SeedInvalidError(
                    f"Seed entry {index} is missing required fields: {', '.join(missing)}",
                    missing_fields=missing,
                    index=index,
                )

            values = self._draft_values(draft, keep_cache=True)
            values["id"] = draft.id or self._id_generator()
            try:
                record = PeriodRecord.model_validate(values)
            except ValidationError as e:
                raise SeedInvalidError(
                    f"Seed entry {index} is malformed: {_describe(e)}",
                    index=index,
                ) from e

            materialized[record.id] = record

        self._records = materialized
        return list(materialized.values())

    def create(self, draft: DraftLike) -> PeriodRecord:
        """
        Insert a new record with a freshly generated id.

        An id collision replaces the existing record (last write wins).

        Raises:
            RecordInvalidError: If the draft is malformed, incomplete or
                carries keys that match no field
        """
        try:
            draft = _coerce_draft(draft, reject_unknown=True)
        except ValidationError as e:
            raise RecordInvalidError(f"Invalid record: {_describe(e)}") from e

        missing = draft.missing_required_fields()
        if missing:
            raise RecordInvalidError(
                f"Record is missing required fields: {', '.join(missing)}",
                missing_fields=missing,
            )

        values = self._draft_values(draft, keep_cache=False)
        values["id"] = self._id_generator()
        try:
            record = PeriodRecord.model_validate(values)
        except ValidationError as e:
            raise RecordInvalidError(f"Invalid record: {_describe(e)}") from e

        self._records[record.id] = record
        return record

    def update(
        self,
        record_id: str,
        patch: DraftLike,
        expected_revision: Optional[int] = None,
    ) -> PeriodRecord:
        """
        Merge the explicitly supplied fields of patch onto a record.

        The id, revision and derived cache fields of the patch are ignored.
        The stale balance cache on the record is cleared.

        Raises:
            RecordNotFoundError: If no record has this id
            ConflictError: If expected_revision is given and stale
            RecordInvalidError: If the patch has unknown keys or nothing to
                change, or the merged record would be invalid
        """
        current = self._require(record_id, expected_revision)

        try:
            patch = _coerce_draft(patch, reject_unknown=True)
        except ValidationError as e:
            raise RecordInvalidError(f"Invalid patch: {_describe(e)}") from e

        changes = {
            name: value
            for name, value in patch.supplied_fields().items()
            if name not in _PROTECTED_FIELDS
        }
        if not changes:
            raise RecordInvalidError("Patch has no fields to change")
        cleared = [
            name for name in _NON_NULLABLE_FIELDS
            if name in changes and changes[name] is None
        ]
        if cleared:
            raise RecordInvalidError(
                f"Patch cannot clear required fields: {', '.join(cleared)}",
                missing_fields=cleared,
            )

        values = current.model_dump()
        values.update(changes)
        values["revision"] = current.revision + 1
        values["remaining_balance"] = None
        values["cumulative_balance"] = None

        try:
            updated = PeriodRecord.model_validate(values)
        except ValidationError as e:
            raise RecordInvalidError(f"Invalid patch: {_describe(e)}") from e

        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str, expected_revision: Optional[int] = None) -> None:
        """
        Remove a record.

        Raises:
            RecordNotFoundError: If no record has this id
            ConflictError: If expected_revision is given and stale
        """
        self._require(record_id, expected_revision)
        del self._records[record_id]

    def _require(self, record_id: str, expected_revision: Optional[int]) -> PeriodRecord:
        current = self._records.get(record_id)
        if current is None:
            raise RecordNotFoundError(record_id)
        if expected_revision is not None and expected_revision != current.revision:
            raise ConflictError(record_id, expected_revision, current.revision)
        return current

    @staticmethod
    def _draft_values(draft: RecordDraft, keep_cache: bool) -> dict:
        """Supplied, non-null draft values ready for PeriodRecord validation."""
        skipped = {"id"}
        if not keep_cache:
            skipped |= _PROTECTED_FIELDS
        return {
            name: value
            for name, value in draft.supplied_fields().items()
            if value is not None and name not in skipped
        }
