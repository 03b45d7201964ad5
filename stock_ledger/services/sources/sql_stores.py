"""
SQL Ledger Stores
SQLAlchemy-backed transaction log, stock summary and reorder policy sources
"""
from decimal import Decimal
from typing import Collection, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stock_ledger.core.config import settings
from stock_ledger.core.exceptions import DataSourceUnavailable
from stock_ledger.models.stock import ReorderPolicyRec, StockSummaryRec, StockTransactionRec
from stock_ledger.services.sources.base import (
    DateRange, PolicyStore, SummaryStore, TransactionStore
)
from stock_ledger.services.stock.records import ReorderPolicy, StockTransaction

logger = logging.getLogger(__name__)


class SqlTransactionStore(TransactionStore):
    """
    Reads stock_transactions in keyset-paginated batches

    Pages are ordered by transaction_id and each page starts after the last
    id seen, so no record is returned twice even while new rows are appended.
    """

    def __init__(self, db: Session, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.BATCH_SIZE

    def fetch_transactions(self, item_codes: Optional[Collection[str]] = None,
                           date_range: Optional[DateRange] = None) -> List[StockTransaction]:
        transactions = []
        last_id = None

        try:
            query = self.db.query(StockTransactionRec)

            if item_codes is not None:
                query = query.filter(StockTransactionRec.item_code.in_(list(item_codes)))

            if date_range:
                start, end = date_range
                if start is not None:
                    query = query.filter(StockTransactionRec.occurred_at >= start)
                if end is not None:
                    query = query.filter(StockTransactionRec.occurred_at <= end)

            while True:
                page = query
                if last_id is not None:
                    page = page.filter(StockTransactionRec.transaction_id > last_id)
                rows = page.order_by(StockTransactionRec.transaction_id).limit(self.batch_size).all()

                for row in rows:
                    transactions.append(self._to_transaction(row))

                if len(rows) < self.batch_size:
                    break
                last_id = rows[-1].transaction_id

        except SQLAlchemyError as e:
            logger.error(f"Database error reading stock transactions: {str(e)}")
            raise DataSourceUnavailable("stock_transactions", str(e))

        logger.debug(f"Fetched {len(transactions)} stock transactions")
        return transactions

    @staticmethod
    def _to_transaction(row: StockTransactionRec) -> StockTransaction:
        # Raw column values; validation happens in the aggregator
        return StockTransaction(
            item_code=row.item_code,
            transaction_type=row.transaction_type,
            quantity=row.quantity,
            occurred_at=row.occurred_at,
            source_reference=row.source_reference or str(row.transaction_id),
        )


class SqlSummaryStore(SummaryStore):
    """Reads the materialized stock_summary_view"""

    def __init__(self, db: Session):
        self.db = db

    def fetch_summary_positions(self, item_codes: Optional[Collection[str]] = None) -> Dict[str, Decimal]:
        try:
            query = self.db.query(StockSummaryRec.item_code, StockSummaryRec.current_qty)
            if item_codes is not None:
                query = query.filter(StockSummaryRec.item_code.in_(list(item_codes)))
            rows = query.all()
        except SQLAlchemyError as e:
            logger.error(f"Database error reading stock summary: {str(e)}")
            raise DataSourceUnavailable("stock_summary_view", str(e))

        return {
            item_code: Decimal(str(qty)) if qty is not None else Decimal("0")
            for item_code, qty in rows
        }


class SqlPolicyStore(PolicyStore):
    """Reads active reorder policies"""

    def __init__(self, db: Session):
        self.db = db

    def fetch_reorder_policies(self, item_codes: Optional[Collection[str]] = None) -> List[ReorderPolicy]:
        try:
            query = self.db.query(ReorderPolicyRec).filter(ReorderPolicyRec.is_active.is_(True))
            if item_codes is not None:
                query = query.filter(ReorderPolicyRec.item_code.in_(list(item_codes)))
            rows = query.order_by(ReorderPolicyRec.item_code).all()
        except SQLAlchemyError as e:
            logger.error(f"Database error reading reorder policies: {str(e)}")
            raise DataSourceUnavailable("reorder_policies", str(e))

        return [
            ReorderPolicy(
                item_code=row.item_code,
                reorder_level=row.reorder_level,
                reorder_quantity=row.reorder_quantity,
            )
            for row in rows
        ]
