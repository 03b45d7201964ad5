"""
Stock Ledger Records
Value types shared by the aggregation, classification and reporting services
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

INFINITE_DAYS = Decimal("Infinity")
ZERO = Decimal("0")


class TransactionType(str, Enum):
    """Stock ledger transaction types"""
    OPENING_STOCK = "OPENING_STOCK"
    GRN = "GRN"
    ISSUE = "ISSUE"

    @property
    def is_additive(self) -> bool:
        return self is not TransactionType.ISSUE


class StockStatus(str, Enum):
    ZERO = "ZERO"
    CRITICAL = "CRITICAL"
    LOW = "LOW"
    NORMAL = "NORMAL"


class UrgencyLevel(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def severity(self) -> int:
        """Higher is more urgent"""
        return _URGENCY_SEVERITY[self]


_URGENCY_SEVERITY = {
    UrgencyLevel.CRITICAL: 3,
    UrgencyLevel.HIGH: 2,
    UrgencyLevel.MEDIUM: 1,
    UrgencyLevel.LOW: 0,
}


class TurnoverClass(str, Enum):
    FAST = "Fast"
    MEDIUM = "Medium"
    SLOW = "Slow"
    DEAD = "Dead"


class AbcClass(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class DeadStockAction(str, Enum):
    DISPOSE = "DISPOSE"
    LIQUIDATE = "LIQUIDATE"
    REVIEW = "REVIEW"
    MONITOR = "MONITOR"


@dataclass(frozen=True)
class StockTransaction:
    """One immutable ledger entry; quantity is positive, the type gives the sign"""
    item_code: str
    transaction_type: TransactionType
    quantity: Decimal
    occurred_at: date
    source_reference: str = ""

    @property
    def signed_quantity(self) -> Decimal:
        if self.transaction_type is TransactionType.ISSUE:
            return -self.quantity
        return self.quantity


@dataclass(frozen=True)
class ReorderPolicy:
    item_code: str
    reorder_level: Decimal = ZERO
    reorder_quantity: Decimal = ZERO


@dataclass(frozen=True)
class StockPosition:
    """Quantity on hand derived from the ledger"""
    item_code: str
    current_quantity: Decimal
    opening_stock: Decimal = ZERO
    total_grns: Decimal = ZERO
    total_issues: Decimal = ZERO
    transaction_count: int = 0
    last_movement_date: Optional[date] = None
    last_computed_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def is_negative(self) -> bool:
        return self.current_quantity < 0


@dataclass(frozen=True)
class ClassificationResult:
    item_code: str
    stock_status: StockStatus
    urgency_level: UrgencyLevel
    estimated_days_of_stock: Decimal
    shortage_quantity: Decimal
    suggested_order_quantity: Decimal
    current_quantity: Decimal
    reorder_level: Decimal
    avg_daily_consumption: Decimal

    @property
    def has_infinite_cover(self) -> bool:
        return self.estimated_days_of_stock.is_infinite()


@dataclass(frozen=True)
class IntegrityDiscrepancy:
    item_code: str
    ledger_computed_quantity: Decimal
    materialized_view_quantity: Decimal
    delta: Decimal


@dataclass(frozen=True)
class IntegrityReport:
    """Result of comparing the ledger against the materialized summary"""
    total_items: int
    items_with_stock: int
    items_without_stock: int
    negative_stock_items: List[str]
    discrepancies: List[IntegrityDiscrepancy]
    items_checked: int
    integrity_percentage: Decimal
    is_healthy: bool


@dataclass(frozen=True)
class TurnoverRecord:
    item_code: str
    average_stock: Decimal
    total_issued_over_window: Decimal
    turnover_ratio: Decimal
    classification: TurnoverClass


@dataclass(frozen=True)
class TurnoverSummary:
    classification: TurnoverClass
    item_count: int
    percentage: Decimal
    avg_turnover: Decimal


@dataclass(frozen=True)
class AbcRecord:
    """One item in the ABC ranking, valued at the configured unit cost"""
    item_code: str
    current_quantity: Decimal
    total_value: Decimal
    value_percentage: Decimal
    cumulative_value: Decimal
    cumulative_percentage: Decimal
    ranking: int
    abc_class: AbcClass


@dataclass(frozen=True)
class AbcSummary:
    abc_class: AbcClass
    item_count: int
    total_value: Decimal
    percentage_items: Decimal
    percentage_value: Decimal


@dataclass(frozen=True)
class LowStockSummary:
    total_low_stock_items: int
    critical_items: int
    high_priority_items: int
    total_shortage_value: Decimal
    avg_days_to_stock_out: Decimal


@dataclass(frozen=True)
class DeadStockItem:
    item_code: str
    current_quantity: Decimal
    last_movement_date: Optional[date]
    days_since_movement: Optional[int]
    estimated_value: Decimal
    recommended_action: DeadStockAction


@dataclass(frozen=True)
class RecordFailure:
    """A rejected input record; the rest of the batch is still processed"""
    record_type: str
    item_code: Optional[str]
    reference: Optional[str]
    reason: str
