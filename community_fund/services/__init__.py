"""Services package."""

from community_fund.services.seed import (
    GeminiSeedProvider,
    SeedFetchError,
    SeedProvider,
    StaticSeedProvider,
)
from community_fund.services.storage import (
    AuditStorageInterface,
    BlobFormatError,
    BlobStorageInterface,
    InMemoryAuditStorage,
    InMemoryBlobStorage,
    LocalFileBlobStorage,
    StorageError,
)

__all__ = [
    # Seed providers
    "GeminiSeedProvider",
    "SeedFetchError",
    "SeedProvider",
    "StaticSeedProvider",
    # Storage services
    "AuditStorageInterface",
    "BlobFormatError",
    "BlobStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryBlobStorage",
    "LocalFileBlobStorage",
    "StorageError",
]
