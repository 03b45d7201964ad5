"""
Stock Integrity Checker
Compares ledger-derived quantities against the materialized stock summary
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping
import logging

from stock_ledger.core.config import BusinessRules, DEFAULT_RULES
from stock_ledger.services.stock.aggregator import to_decimal
from stock_ledger.services.stock.records import (
    IntegrityDiscrepancy, IntegrityReport, StockPosition, ZERO
)

logger = logging.getLogger(__name__)


def check_integrity(ledger_positions: Mapping[str, Decimal],
                    materialized_positions: Mapping[str, Decimal],
                    epsilon: Decimal = DEFAULT_RULES.integrity_epsilon) -> List[IntegrityDiscrepancy]:
    """
    Report items whose ledger and materialized quantities differ by more than epsilon

    An item missing from one side counts as zero there. Results are sorted
    by item code. Nothing is modified, so the check can be re-run at any time.

    Quantities may be Decimal, int, float or numeric strings; they are
    compared as Decimal.

    Raises:
        ValidationError: a quantity is not a finite number
    """
    discrepancies = []

    for item_code in sorted(set(ledger_positions) | set(materialized_positions)):
        ledger_qty = to_decimal(ledger_positions.get(item_code, ZERO), "ledger quantity", item_code)
        view_qty = to_decimal(materialized_positions.get(item_code, ZERO), "summary quantity", item_code)
        delta = ledger_qty - view_qty

        if abs(delta) > epsilon:
            discrepancies.append(IntegrityDiscrepancy(
                item_code=item_code,
                ledger_computed_quantity=ledger_qty,
                materialized_view_quantity=view_qty,
                delta=delta,
            ))

    return discrepancies


def build_integrity_report(positions: Mapping[str, StockPosition],
                           materialized_positions: Mapping[str, Decimal],
                           rules: BusinessRules = DEFAULT_RULES) -> IntegrityReport:
    """
    Full integrity report: stock counts, negative balances and drift

    The health percentage is the share of checked items without a
    discrepancy or a negative balance.
    """
    ledger: Dict[str, Decimal] = {
        code: pos.current_quantity for code, pos in positions.items()
    }
    discrepancies = check_integrity(ledger, materialized_positions, rules.integrity_epsilon)
    negative = sorted(code for code, pos in positions.items() if pos.is_negative)

    items_checked = len(set(ledger) | set(materialized_positions))
    with_stock = sum(1 for qty in ledger.values() if qty > 0)

    unhealthy = {d.item_code for d in discrepancies} | set(negative)
    if items_checked:
        percentage = (Decimal(items_checked - len(unhealthy)) * 100 / Decimal(items_checked)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        percentage = Decimal("100.00")

    if discrepancies or negative:
        logger.warning(
            f"Integrity check found {len(discrepancies)} discrepancies and "
            f"{len(negative)} negative balances across {items_checked} items"
        )

    return IntegrityReport(
        total_items=len(ledger),
        items_with_stock=with_stock,
        items_without_stock=len(ledger) - with_stock,
        negative_stock_items=negative,
        discrepancies=discrepancies,
        items_checked=items_checked,
        integrity_percentage=percentage,
        is_healthy=not unhealthy,
    )
