"""Ledger data sources"""

from .base import TransactionStore, SummaryStore, PolicyStore

__all__ = ["TransactionStore", "SummaryStore", "PolicyStore"]
