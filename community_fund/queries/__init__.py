"""Ledger query package."""

from community_fund.queries.executor import LedgerQueryExecutor, format_currency

__all__ = ["LedgerQueryExecutor", "format_currency"]
