"""
Community Fund Ledger - Source Package

Records the monthly contributions and distributions of a small community
fund and derives ordered, balance-annotated views from them.

DESIGN PRINCIPLES:
1. The record store is the only authoritative copy
2. Derived balances are always recomputed, never trusted from storage
3. Money is Decimal, never float
4. Every mutation is auditable
5. Storage and seed data are swappable collaborators
"""

__version__ = "1.0.0"
__author__ = "Community Fund Team"
