"""Seed data providers package."""

from community_fund.services.seed.interface import (
    SeedFetchError,
    SeedProvider,
    StaticSeedProvider,
    drafts_from_entries,
)
from community_fund.services.seed.gemini_provider import (
    GeminiSeedProvider,
    parse_seed_response,
)

__all__ = [
    "GeminiSeedProvider",
    "SeedFetchError",
    "SeedProvider",
    "StaticSeedProvider",
    "drafts_from_entries",
    "parse_seed_response",
]
