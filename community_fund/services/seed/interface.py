"""
Seed Provider Interface

Seed records are the initial ledger used when nothing is stored yet.
They come from an external generator and are UNTRUSTED: every entry
goes through the same validation as any other load.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Union

from pydantic import ValidationError

from community_fund.ledger.store import SeedInvalidError
from community_fund.models.record import RecordDraft


class SeedFetchError(Exception):
    """The seed provider could not produce any records."""
    pass


class SeedProvider(ABC):
    """Source of initial ledger records."""

    name: str = "seed"

    @abstractmethod
    async def fetch_seed_records(self) -> list[RecordDraft]:
        """
        Fetch seed records.

        Returns:
            Partial records; required fields are checked by the record store

        Raises:
            SeedFetchError: If the provider fails to respond usefully
            SeedInvalidError: If an entry has malformed values
        """
        pass


def drafts_from_entries(entries: Iterable[Union[RecordDraft, Mapping]]) -> list[RecordDraft]:
    """Validate raw seed entries into drafts, pointing at the bad entry on failure."""
    drafts = []
    for index, entry in enumerate(entries):
        if isinstance(entry, RecordDraft):
            drafts.append(entry)
            continue
        if not isinstance(entry, Mapping):
            raise SeedInvalidError(f"Seed entry {index} is not an object", index=index)
        try:
            drafts.append(RecordDraft.model_validate(dict(entry)))
        except ValidationError as e:
            raise SeedInvalidError(f"Seed entry {index} is malformed: {e}", index=index) from e
    return drafts


class StaticSeedProvider(SeedProvider):
    """Serves a fixed list of seed entries. Used offline and in tests."""

    name = "static"

    def __init__(self, entries: Iterable[Union[RecordDraft, Mapping]] = ()):
        self._entries = list(entries)

    async def fetch_seed_records(self) -> list[RecordDraft]:
        return drafts_from_entries(self._entries)
