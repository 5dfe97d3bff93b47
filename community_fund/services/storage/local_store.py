"""
Local Storage Implementations

DESIGN DECISION: The ledger lives in a single JSON file on disk, the local
equivalent of a browser key-value store. There is no remote sync:
- One writer (the active session)
- Whole-blob replace on every write
- Atomic replace so a crash never leaves half a file

In-memory variants of both storage interfaces are provided for tests
and for running without a disk.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from community_fund.models.audit import AuditEvent
from community_fund.services.storage.interface import (
    AuditStorageInterface,
    BlobStorageInterface,
    StorageError,
)


class LocalFileBlobStorage(BlobStorageInterface):
    """
    Stores the ledger blob in a local file.

    The parent directory is created on the first write.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    def _write(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, self._path)

    async def read_blob(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read)
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

    async def write_blob(self, text: str) -> None:
        try:
            await asyncio.to_thread(self._write, text)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}") from e

    async def clear(self) -> None:
        try:
            await asyncio.to_thread(self._path.unlink, missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {self._path}: {e}") from e


class InMemoryBlobStorage(BlobStorageInterface):
    """Blob storage held in memory. Each instance is independent."""

    def __init__(self, initial: Optional[str] = None):
        self._blob = initial
        self.write_count = 0

    async def read_blob(self) -> Optional[str]:
        return self._blob

    async def write_blob(self, text: str) -> None:
        self._blob = text
        self.write_count += 1

    async def clear(self) -> None:
        self._blob = None


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
