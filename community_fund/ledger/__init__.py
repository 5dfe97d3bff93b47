"""Record store and reconciliation engine."""

from community_fund.ledger.store import (
    ConflictError,
    IdGenerator,
    LedgerError,
    RecordInvalidError,
    RecordNotFoundError,
    RecordStore,
    SeedInvalidError,
    SequentialIdGenerator,
    uuid_id_generator,
)
from community_fund.ledger.engine import (
    ReconciliationEngine,
    ReconciliationInputInvalidError,
    order_records,
    reconcile,
)

__all__ = [
    # Store
    "ConflictError",
    "IdGenerator",
    "LedgerError",
    "RecordInvalidError",
    "RecordNotFoundError",
    "RecordStore",
    "SeedInvalidError",
    "SequentialIdGenerator",
    "uuid_id_generator",
    # Engine
    "ReconciliationEngine",
    "ReconciliationInputInvalidError",
    "order_records",
    "reconcile",
]
