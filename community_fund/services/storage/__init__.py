"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local JSON file as the backend, but designed to be swappable.
"""

from community_fund.services.storage.interface import (
    AuditStorageInterface,
    BlobFormatError,
    BlobStorageInterface,
    StorageError,
)
from community_fund.services.storage.codec import blob_to_drafts, records_to_blob
from community_fund.services.storage.local_store import (
    InMemoryAuditStorage,
    InMemoryBlobStorage,
    LocalFileBlobStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStorageInterface",
    # Exceptions
    "BlobFormatError",
    "StorageError",
    # Encoding
    "blob_to_drafts",
    "records_to_blob",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryBlobStorage",
    "LocalFileBlobStorage",
]
