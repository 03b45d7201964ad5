"""Stock Reconciliation API endpoints"""

from . import reconciliation

__all__ = ["reconciliation"]
