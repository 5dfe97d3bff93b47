"""Shared fixtures for the ledger tests."""

from decimal import Decimal
from typing import Optional

import pytest

from community_fund.ledger import RecordStore, ReconciliationEngine, SequentialIdGenerator
from community_fund.models import Distribution, PeriodRecord
from community_fund.validation import RecordValidator


@pytest.fixture
def validator() -> RecordValidator:
    return RecordValidator(max_period_amount=Decimal("10000000"))


@pytest.fixture
def engine(validator) -> ReconciliationEngine:
    return ReconciliationEngine(validator=validator, strict=False)


@pytest.fixture
def strict_engine(validator) -> ReconciliationEngine:
    return ReconciliationEngine(validator=validator, strict=True)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore(id_generator=SequentialIdGenerator())


@pytest.fixture
def make_record():
    """Build a PeriodRecord with sensible defaults."""
    counter = {"n": 0}

    def _make(
        period: str,
        collected,
        given=0,
        contributors: Optional[list[str]] = None,
        distributions: Optional[list[tuple[str, object]]] = None,
        record_id: Optional[str] = None,
        **extra,
    ) -> PeriodRecord:
        counter["n"] += 1
        return PeriodRecord(
            id=record_id or f"r{counter['n']}",
            period=period,
            contributors=contributors if contributors is not None else ["Ali"],
            amount_collected=Decimal(str(collected)),
            amount_given=Decimal(str(given)),
            distributions=(
                [Distribution(recipient=r, amount=Decimal(str(a))) for r, a in distributions]
                if distributions is not None
                else None
            ),
            **extra,
        )

    return _make
