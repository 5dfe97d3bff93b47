"""
Ledger Query Execution

DESIGN DECISION: Everything the renderer shows is read from one
Reconciliation. This module turns that view into the shapes the
summary cards, charts and table need, deterministically, without
ever recomputing balances itself.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

from community_fund.config import get_settings
from community_fund.models.record import (
    ZERO,
    PeriodRecord,
    Reconciliation,
    period_index,
)


def format_currency(amount: Optional[Decimal], label: str = "Rs.") -> str:
    """
    Format an amount for display, e.g. "Rs. 120,000" or "Rs. -10,000".

    Whole amounts drop the decimals; others keep two places.
    """
    amount = amount if amount is not None else ZERO
    if amount == amount.to_integral_value():
        return f"{label} {amount:,.0f}"
    return f"{label} {amount:,.2f}"


class LedgerQueryExecutor:
    """
    Read-side queries over a reconciled ledger.

    GUARANTEES:
    - Only returns figures present in the reconciliation
    - Preserves the reconciled period order
    """

    def __init__(self, view: Reconciliation, currency_label: Optional[str] = None):
        self._view = view
        self._label = currency_label or get_settings().ledger.currency_label

    def summary_cards(self) -> list[dict]:
        """The four headline figures, formatted."""
        summary = self._view.summary
        return [
            {"label": "Total Collected", "value": format_currency(summary.total_collected, self._label)},
            {"label": "Total Distributed", "value": format_currency(summary.total_distributed, self._label)},
            {"label": "Final Balance", "value": format_currency(summary.final_balance, self._label)},
            {"label": "Contributors", "value": str(summary.unique_contributors)},
        ]

    def balance_trend(self) -> list[dict]:
        """Cumulative balance per period, for the growth chart."""
        return [
            {"period": record.period, "cumulative_balance": record.cumulative_balance}
            for record in self._view.records
        ]

    def monthly_flows(self) -> list[dict]:
        """Collected versus given per period, for the comparison chart."""
        return [
            {
                "period": record.period,
                "collected": record.amount_collected,
                "given": record.amount_given,
            }
            for record in self._view.records
        ]

    def table_rows(self) -> list[dict]:
        """One display row per record, in ledger order."""
        return [self._record_to_row(record) for record in self._view.records]

    def recipient_totals(self) -> list[tuple[str, Decimal]]:
        """Total paid out per distribution recipient, largest first."""
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for record in self._view.records:
            for distribution in record.distributions or []:
                totals[distribution.recipient] += distribution.amount
        return sorted(totals.items(), key=lambda item: (-item[1], item[0]))

    def find_period(self, label: str) -> list[PeriodRecord]:
        """All records for a period (duplicates included), in ledger order."""
        index = period_index(label)
        if index is None:
            return [record for record in self._view.records if record.period == label]
        return [record for record in self._view.records if period_index(record.period) == index]

    def _record_to_row(self, record: PeriodRecord) -> dict:
        return {
            "id": record.id,
            "period": record.period,
            "contributors": ", ".join(record.contributors),
            "collected": format_currency(record.amount_collected, self._label),
            "given": format_currency(record.amount_given, self._label),
            "remaining": format_currency(record.remaining_balance, self._label),
            "cumulative": format_currency(record.cumulative_balance, self._label),
            "is_deficit": record.remaining_balance is not None and record.remaining_balance < ZERO,
            "distribution_count": len(record.distributions or []),
        }
