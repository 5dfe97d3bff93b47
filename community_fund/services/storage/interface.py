"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the local JSON file for a remote store later
2. Use in-memory storage for testing
3. Keep the ledger logic decoupled from where the blob lives

The ledger is persisted as ONE text blob holding the ordered, annotated
records. The interface is intentionally that small.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from community_fund.models.audit import AuditEvent


class BlobStorageInterface(ABC):
    """
    Abstract interface for the ledger blob.

    Any storage implementation (local file, key-value store, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def read_blob(self) -> Optional[str]:
        """
        Read the stored ledger blob.

        Returns:
            The blob text, or None if nothing has been stored yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def write_blob(self, text: str) -> None:
        """
        Replace the stored ledger blob.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored blob, if any."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one user action).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class BlobFormatError(StorageError):
    """Stored blob is not a valid ledger."""
    pass
