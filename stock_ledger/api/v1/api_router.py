"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from stock_ledger.api.v1.stock import reconciliation

api_router = APIRouter()

# Stock reconciliation routes
api_router.include_router(
    reconciliation.router,
    prefix="/stock/reconciliation",
    tags=["stock-reconciliation"]
)
