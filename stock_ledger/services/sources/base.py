"""
Ledger Data Sources
Read-only interfaces the reconciliation service fetches its inputs through
"""
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Collection, Dict, List, Optional, Tuple

from stock_ledger.services.stock.records import ReorderPolicy, StockTransaction

DateRange = Tuple[Optional[date], Optional[date]]


class TransactionStore(ABC):
    """Append-only stock transaction log"""

    @abstractmethod
    def fetch_transactions(self, item_codes: Optional[Collection[str]] = None,
                           date_range: Optional[DateRange] = None) -> List[StockTransaction]:
        """
        Return every matching ledger record exactly once

        Records are returned as stored and are validated by the caller.
        date_range bounds are inclusive; either may be None.

        Raises:
            DataSourceUnavailable: the log cannot be read
        """
        pass


class SummaryStore(ABC):
    """Materialized per-item quantity, possibly stale"""

    @abstractmethod
    def fetch_summary_positions(self, item_codes: Optional[Collection[str]] = None) -> Dict[str, Decimal]:
        """
        Raises:
            DataSourceUnavailable: the summary cannot be read
        """
        pass


class PolicyStore(ABC):
    """Per-item reorder thresholds"""

    @abstractmethod
    def fetch_reorder_policies(self, item_codes: Optional[Collection[str]] = None) -> List[ReorderPolicy]:
        """
        Raises:
            DataSourceUnavailable: the policies cannot be read
        """
        pass
