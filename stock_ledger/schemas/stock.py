"""Stock Reconciliation Schemas"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal

from stock_ledger.services.stock.records import (
    AbcClass, StockStatus, UrgencyLevel, TurnoverClass, DeadStockAction
)
from stock_ledger.services.stock.reconciliation import ReconciliationResult


# Request Schemas
class ReconciliationRequest(BaseModel):
    item_codes: Optional[List[str]] = Field(None, description="Restrict the run to these items")
    as_of: Optional[date] = Field(None, description="Reconcile as of this day (default today)")

    @field_validator('item_codes')
    @classmethod
    def validate_item_codes(cls, v):
        if v is None:
            return v
        codes = [code.strip() for code in v if code and code.strip()]
        if not codes:
            raise ValueError('item_codes must contain at least one non-blank code')
        return codes


# Response Schemas
class StockPositionResponse(BaseModel):
    item_code: str
    current_quantity: Decimal
    opening_stock: Decimal
    total_grns: Decimal
    total_issues: Decimal
    transaction_count: int
    last_movement_date: Optional[date] = None
    is_negative: bool

    model_config = ConfigDict(from_attributes=True)


class ClassificationResponse(BaseModel):
    item_code: str
    stock_status: StockStatus
    urgency_level: UrgencyLevel
    estimated_days_of_stock: Optional[Decimal] = Field(
        None, description="Days until stock-out; null when nothing is being consumed"
    )
    has_infinite_cover: bool
    shortage_quantity: Decimal
    suggested_order_quantity: Decimal
    current_quantity: Decimal
    reorder_level: Decimal
    avg_daily_consumption: Decimal

    model_config = ConfigDict(from_attributes=True)

    @field_validator('estimated_days_of_stock', mode='before')
    @classmethod
    def infinite_as_null(cls, v):
        if isinstance(v, Decimal) and v.is_infinite():
            return None
        return v


class IntegrityDiscrepancyResponse(BaseModel):
    item_code: str
    ledger_computed_quantity: Decimal
    materialized_view_quantity: Decimal
    delta: Decimal

    model_config = ConfigDict(from_attributes=True)


class IntegrityReportResponse(BaseModel):
    total_items: int
    items_with_stock: int
    items_without_stock: int
    negative_stock_items: List[str]
    discrepancies: List[IntegrityDiscrepancyResponse]
    items_checked: int
    integrity_percentage: Decimal
    is_healthy: bool

    model_config = ConfigDict(from_attributes=True)


class TurnoverRecordResponse(BaseModel):
    item_code: str
    average_stock: Decimal
    total_issued_over_window: Decimal
    turnover_ratio: Decimal
    classification: TurnoverClass

    model_config = ConfigDict(from_attributes=True)


class TurnoverSummaryResponse(BaseModel):
    classification: TurnoverClass
    item_count: int
    percentage: Decimal
    avg_turnover: Decimal

    model_config = ConfigDict(from_attributes=True)


class AbcRecordResponse(BaseModel):
    item_code: str
    current_quantity: Decimal
    total_value: Decimal
    value_percentage: Decimal
    cumulative_value: Decimal
    cumulative_percentage: Decimal
    ranking: int
    abc_class: AbcClass

    model_config = ConfigDict(from_attributes=True)


class AbcSummaryResponse(BaseModel):
    abc_class: AbcClass
    item_count: int
    total_value: Decimal
    percentage_items: Decimal
    percentage_value: Decimal

    model_config = ConfigDict(from_attributes=True)


class LowStockSummaryResponse(BaseModel):
    total_low_stock_items: int
    critical_items: int
    high_priority_items: int
    total_shortage_value: Decimal
    avg_days_to_stock_out: Decimal

    model_config = ConfigDict(from_attributes=True)


class DeadStockItemResponse(BaseModel):
    item_code: str
    current_quantity: Decimal
    last_movement_date: Optional[date] = None
    days_since_movement: Optional[int] = Field(None, description="Null when the item never moved")
    estimated_value: Decimal
    recommended_action: DeadStockAction

    model_config = ConfigDict(from_attributes=True)


class RecordFailureResponse(BaseModel):
    record_type: str
    item_code: Optional[str] = None
    reference: Optional[str] = None
    reason: str

    model_config = ConfigDict(from_attributes=True)


class ReconciliationResponse(BaseModel):
    item_codes: Optional[List[str]] = None
    as_of: date
    computed_at: Optional[datetime] = None
    positions: List[StockPositionResponse]
    classifications: List[ClassificationResponse]
    alerts: List[ClassificationResponse]
    discrepancies: List[IntegrityDiscrepancyResponse]
    integrity: IntegrityReportResponse
    turnover_ranking: List[TurnoverRecordResponse]
    turnover_summary: List[TurnoverSummaryResponse]
    low_stock_summary: LowStockSummaryResponse
    dead_stock: List[DeadStockItemResponse]
    abc_classification: List[AbcRecordResponse]
    abc_summary: List[AbcSummaryResponse]
    failures: List[RecordFailureResponse]

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> "ReconciliationResponse":
        return cls(
            item_codes=sorted(result.scope.item_codes) if result.scope.item_codes else None,
            as_of=result.scope.as_of,
            computed_at=result.computed_at,
            positions=[StockPositionResponse.model_validate(p) for _, p in sorted(result.positions.items())],
            classifications=[ClassificationResponse.model_validate(c) for c in result.classifications],
            alerts=[ClassificationResponse.model_validate(a) for a in result.alerts],
            discrepancies=[IntegrityDiscrepancyResponse.model_validate(d) for d in result.discrepancies],
            integrity=IntegrityReportResponse.model_validate(result.integrity),
            turnover_ranking=[TurnoverRecordResponse.model_validate(t) for t in result.turnover_ranking],
            turnover_summary=[TurnoverSummaryResponse.model_validate(s) for s in result.turnover_summary],
            low_stock_summary=LowStockSummaryResponse.model_validate(result.low_stock_summary),
            dead_stock=[DeadStockItemResponse.model_validate(d) for d in result.dead_stock],
            abc_classification=[AbcRecordResponse.model_validate(a) for a in result.abc_classification],
            abc_summary=[AbcSummaryResponse.model_validate(s) for s in result.abc_summary],
            failures=[RecordFailureResponse.model_validate(f) for f in result.failures],
        )


class AlertListResponse(BaseModel):
    as_of: date
    alerts: List[ClassificationResponse]
    summary: LowStockSummaryResponse
    failures: List[RecordFailureResponse]


class IntegrityCheckResponse(BaseModel):
    as_of: date
    report: IntegrityReportResponse
    failures: List[RecordFailureResponse]


class TurnoverAnalysisResponse(BaseModel):
    as_of: date
    ranking: List[TurnoverRecordResponse]
    summary: List[TurnoverSummaryResponse]
    dead_stock: List[DeadStockItemResponse]


class AbcAnalysisResponse(BaseModel):
    as_of: date
    items: List[AbcRecordResponse]
    summary: List[AbcSummaryResponse]
    unit_cost: Decimal = Field(..., description="Unit cost the stock values are priced at")
