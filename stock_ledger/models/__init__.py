"""Stock ledger database models"""

from .stock import StockTransactionRec, StockSummaryRec, ReorderPolicyRec

__all__ = ["StockTransactionRec", "StockSummaryRec", "ReorderPolicyRec"]
