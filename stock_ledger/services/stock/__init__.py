"""Stock Reconciliation Services - ledger aggregation, classification, integrity and turnover"""

from .records import (
    StockTransaction, StockPosition, ReorderPolicy, ClassificationResult,
    IntegrityDiscrepancy, TurnoverRecord, TransactionType, StockStatus,
    UrgencyLevel, TurnoverClass, INFINITE_DAYS
)
from .aggregator import compute_stock_position, aggregate_positions
from .classifier import classify
from .integrity import check_integrity, build_integrity_report
from .reporting import rank_alerts, classify_turnover, rank_turnover, summarize_turnover

__all__ = [
    "StockTransaction",
    "StockPosition",
    "ReorderPolicy",
    "ClassificationResult",
    "IntegrityDiscrepancy",
    "TurnoverRecord",
    "TransactionType",
    "StockStatus",
    "UrgencyLevel",
    "TurnoverClass",
    "INFINITE_DAYS",
    "compute_stock_position",
    "aggregate_positions",
    "classify",
    "check_integrity",
    "build_integrity_report",
    "rank_alerts",
    "classify_turnover",
    "rank_turnover",
    "summarize_turnover",
]
