"""Record validation package."""

from community_fund.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
