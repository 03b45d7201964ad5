"""
Stock Ledger Models
SQLAlchemy models for the transaction log, stock summary view and reorder policies
"""
from sqlalchemy import (
    Column, String, Integer, Numeric, Date, DateTime, Boolean, Index
)
from sqlalchemy.sql import func

from stock_ledger.core.database import Base


class StockTransactionRec(Base):
    """
    Stock Transaction Record - append-only stock ledger

    One row per opening stock entry, goods received note or issue.
    Quantities are stored positive; the transaction type carries the sign.
    """
    __tablename__ = "stock_transactions"

    transaction_id = Column(Integer, primary_key=True, autoincrement=True, doc="Ledger sequence")
    item_code = Column(String(30), nullable=False, doc="Item code")
    transaction_type = Column(String(20), nullable=False, doc="OPENING_STOCK, GRN or ISSUE")
    quantity = Column(Numeric(15, 3), nullable=False, doc="Transaction quantity (always positive)")
    occurred_at = Column(Date, nullable=False, doc="Business date of the movement")
    source_reference = Column(String(50), nullable=False, default='', doc="GRN number, issue slip or import batch")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    __table_args__ = (
        Index('idx_stock_txn_item_date', 'item_code', 'occurred_at'),
    )


class StockSummaryRec(Base):
    """
    Stock Summary Record - materialized per-item quantity

    Possibly stale; read only to compare against the ledger.
    """
    __tablename__ = "stock_summary_view"

    item_code = Column(String(30), primary_key=True, doc="Item code")
    current_qty = Column(Numeric(15, 3), nullable=False, default=0, doc="Materialized quantity on hand")
    last_updated = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())


class ReorderPolicyRec(Base):
    """Reorder Policy Record - per-item replenishment thresholds"""
    __tablename__ = "reorder_policies"

    item_code = Column(String(30), primary_key=True, doc="Item code")
    reorder_level = Column(Numeric(15, 3), nullable=False, default=0, doc="Reorder level")
    reorder_quantity = Column(Numeric(15, 3), nullable=False, default=0, doc="Standard reorder quantity")
    is_active = Column(Boolean, nullable=False, default=True, doc="Inactive policies are ignored")

    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())
