"""
API Dependencies
Common dependencies for API endpoints
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from stock_ledger.core.config import BusinessRules
from stock_ledger.core.database import get_db
from stock_ledger.services.sources.sql_stores import (
    SqlPolicyStore, SqlSummaryStore, SqlTransactionStore
)
from stock_ledger.services.stock.reconciliation import (
    ReconciliationCoordinator, ReconciliationService
)

# Shared by every request so identical concurrent runs are deduplicated
coordinator = ReconciliationCoordinator()


def get_reconciliation_service(db: Session = Depends(get_db)) -> ReconciliationService:
    """
    Reconciliation service bound to the request's database session.
    """
    return ReconciliationService(
        transaction_store=SqlTransactionStore(db),
        summary_store=SqlSummaryStore(db),
        policy_store=SqlPolicyStore(db),
        rules=BusinessRules.from_settings(),
    )


def get_coordinator() -> ReconciliationCoordinator:
    return coordinator


__all__ = [
    'get_db',
    'get_reconciliation_service',
    'get_coordinator',
]
