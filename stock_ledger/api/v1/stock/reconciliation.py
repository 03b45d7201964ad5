"""Stock Reconciliation API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
from datetime import date
from decimal import Decimal
import logging

from stock_ledger.api import deps
from stock_ledger.core.exceptions import DataSourceUnavailable, ValidationError
from stock_ledger.schemas.stock import (
    AbcAnalysisResponse, AbcRecordResponse, AbcSummaryResponse, AlertListResponse,
    ClassificationResponse, DeadStockItemResponse,
    IntegrityCheckResponse, IntegrityReportResponse, LowStockSummaryResponse,
    ReconciliationRequest, ReconciliationResponse, RecordFailureResponse,
    TurnoverAnalysisResponse, TurnoverRecordResponse, TurnoverSummaryResponse
)
from stock_ledger.services.stock.reconciliation import (
    ReconciliationCoordinator, ReconciliationResult, ReconciliationScope,
    ReconciliationService
)
from stock_ledger.services.stock.records import AbcClass, UrgencyLevel
from stock_ledger.services.stock.reporting import filter_alerts, summarize_low_stock

logger = logging.getLogger(__name__)

router = APIRouter()


async def _run(scope: ReconciliationScope, service: ReconciliationService,
               coordinator: ReconciliationCoordinator) -> ReconciliationResult:
    try:
        return await coordinator.run(scope, service.reconcile)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except DataSourceUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Data source unavailable: {e.source}"
        )


@router.post("/", response_model=ReconciliationResponse)
async def run_reconciliation(
    request: ReconciliationRequest,
    service: ReconciliationService = Depends(deps.get_reconciliation_service),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """Reconcile the ledger against the stock summary for the requested scope"""
    scope = ReconciliationScope.create(request.item_codes, request.as_of)
    result = await _run(scope, service, coordinator)
    return ReconciliationResponse.from_result(result)


@router.get("/latest", response_model=ReconciliationResponse)
async def get_latest_reconciliation(
    item_codes: Optional[List[str]] = Query(None),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """Last completed reconciliation for the item scope"""
    result = coordinator.latest(item_codes)
    if result is None:
        raise HTTPException(status_code=404, detail="No reconciliation has completed for this scope")
    return ReconciliationResponse.from_result(result)


@router.get("/alerts", response_model=AlertListResponse)
async def get_stock_alerts(
    item_codes: Optional[List[str]] = Query(None),
    as_of: Optional[date] = Query(None),
    urgency_level: Optional[UrgencyLevel] = Query(None),
    max_days_stock: Optional[Decimal] = Query(None, ge=0),
    min_shortage: Optional[Decimal] = Query(None, ge=0),
    service: ReconciliationService = Depends(deps.get_reconciliation_service),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """Ranked replenishment alerts with optional urgency, days-of-stock and shortage filters"""
    result = await _run(ReconciliationScope.create(item_codes, as_of), service, coordinator)

    alerts = filter_alerts(result.alerts, urgency_level, max_days_stock, min_shortage)

    return AlertListResponse(
        as_of=result.scope.as_of,
        alerts=[ClassificationResponse.model_validate(a) for a in alerts],
        summary=LowStockSummaryResponse.model_validate(summarize_low_stock(alerts, service.rules)),
        failures=[RecordFailureResponse.model_validate(f) for f in result.failures],
    )


@router.get("/integrity", response_model=IntegrityCheckResponse)
async def get_integrity_check(
    item_codes: Optional[List[str]] = Query(None),
    as_of: Optional[date] = Query(None),
    service: ReconciliationService = Depends(deps.get_reconciliation_service),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """Ledger against stock summary drift and negative balances"""
    result = await _run(ReconciliationScope.create(item_codes, as_of), service, coordinator)

    if not result.integrity.is_healthy:
        logger.warning(
            f"Integrity check as of {result.scope.as_of}: "
            f"{result.integrity.integrity_percentage}% healthy"
        )

    return IntegrityCheckResponse(
        as_of=result.scope.as_of,
        report=IntegrityReportResponse.model_validate(result.integrity),
        failures=[RecordFailureResponse.model_validate(f) for f in result.failures],
    )


@router.get("/turnover", response_model=TurnoverAnalysisResponse)
async def get_turnover_analysis(
    item_codes: Optional[List[str]] = Query(None),
    as_of: Optional[date] = Query(None),
    service: ReconciliationService = Depends(deps.get_reconciliation_service),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """Turnover ranking, per-class summary and dead stock"""
    result = await _run(ReconciliationScope.create(item_codes, as_of), service, coordinator)

    return TurnoverAnalysisResponse(
        as_of=result.scope.as_of,
        ranking=[TurnoverRecordResponse.model_validate(t) for t in result.turnover_ranking],
        summary=[TurnoverSummaryResponse.model_validate(s) for s in result.turnover_summary],
        dead_stock=[DeadStockItemResponse.model_validate(d) for d in result.dead_stock],
    )


@router.get("/abc", response_model=AbcAnalysisResponse)
async def get_abc_analysis(
    item_codes: Optional[List[str]] = Query(None),
    as_of: Optional[date] = Query(None),
    abc_class: Optional[AbcClass] = Query(None),
    service: ReconciliationService = Depends(deps.get_reconciliation_service),
    coordinator: ReconciliationCoordinator = Depends(deps.get_coordinator)
):
    """ABC classification of stock on hand by cumulative value"""
    result = await _run(ReconciliationScope.create(item_codes, as_of), service, coordinator)

    items = result.abc_classification
    if abc_class is not None:
        items = [r for r in items if r.abc_class is abc_class]

    return AbcAnalysisResponse(
        as_of=result.scope.as_of,
        items=[AbcRecordResponse.model_validate(r) for r in items],
        summary=[AbcSummaryResponse.model_validate(s) for s in result.abc_summary],
        unit_cost=service.rules.default_unit_cost,
    )
