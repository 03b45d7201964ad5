"""
Alert and Turnover Reporter
Ranks replenishment alerts, classifies inventory turnover and stock value
(ABC), and analyses dead stock
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from stock_ledger.core.config import BusinessRules, DEFAULT_RULES
from stock_ledger.core.exceptions import ValidationError
from stock_ledger.services.stock.records import (
    AbcClass, AbcRecord, AbcSummary, ClassificationResult, DeadStockAction,
    DeadStockItem, LowStockSummary, StockPosition, StockStatus, TurnoverClass, TurnoverRecord, TurnoverSummary,
    UrgencyLevel, ZERO
)

TURNOVER_ORDER = (TurnoverClass.FAST, TurnoverClass.MEDIUM, TurnoverClass.SLOW, TurnoverClass.DEAD)
ABC_ORDER = (AbcClass.A, AbcClass.B, AbcClass.C)


def is_alert(result: ClassificationResult) -> bool:
    """Item is at or below its reorder level, or about to run out"""
    return (
        result.stock_status is not StockStatus.NORMAL
        or result.urgency_level.severity >= UrgencyLevel.HIGH.severity
    )


def rank_alerts(classifications: Iterable[ClassificationResult]) -> List[ClassificationResult]:
    """
    Order alerts by ascending quantity on hand

    Ties go to the more urgent item, then to item code, so the order is
    fully deterministic.
    """
    return sorted(
        classifications,
        key=lambda r: (r.current_quantity, -r.urgency_level.severity, r.item_code)
    )


def filter_alerts(alerts: Iterable[ClassificationResult],
                  urgency_level: Optional[UrgencyLevel] = None,
                  max_days_stock: Optional[Decimal] = None,
                  min_shortage: Optional[Decimal] = None) -> List[ClassificationResult]:
    """Apply the optional urgency, days-of-stock and shortage filters, keeping order"""
    result = []
    for alert in alerts:
        if urgency_level is not None and alert.urgency_level is not UrgencyLevel(urgency_level):
            continue
        if max_days_stock is not None and alert.estimated_days_of_stock > max_days_stock:
            continue
        if min_shortage is not None and alert.shortage_quantity < min_shortage:
            continue
        result.append(alert)
    return result


def summarize_low_stock(alerts: Iterable[ClassificationResult],
                        rules: BusinessRules = DEFAULT_RULES) -> LowStockSummary:
    """
    Headline figures for the low-stock panel

    Shortage value is priced at the configured unit cost. The average days
    to stock-out only counts items that are actually being consumed.
    """
    alerts = list(alerts)
    critical = sum(1 for a in alerts if a.urgency_level is UrgencyLevel.CRITICAL)
    high = sum(1 for a in alerts if a.urgency_level is UrgencyLevel.HIGH)

    shortage_value = sum((a.shortage_quantity for a in alerts), ZERO) * rules.default_unit_cost

    finite_days = [a.estimated_days_of_stock for a in alerts if not a.has_infinite_cover]
    if finite_days:
        avg_days = (sum(finite_days, ZERO) / len(finite_days)).quantize(
            rules.ratio_quantum, rounding=ROUND_HALF_UP
        )
    else:
        avg_days = ZERO

    return LowStockSummary(
        total_low_stock_items=len(alerts),
        critical_items=critical,
        high_priority_items=high,
        total_shortage_value=shortage_value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        avg_days_to_stock_out=avg_days,
    )


def turnover_class_for(ratio: Decimal, rules: BusinessRules = DEFAULT_RULES) -> TurnoverClass:
    if ratio >= rules.turnover_fast_ratio:
        return TurnoverClass.FAST
    if ratio >= rules.turnover_medium_ratio:
        return TurnoverClass.MEDIUM
    if ratio > 0:
        return TurnoverClass.SLOW
    return TurnoverClass.DEAD


def classify_turnover(item_code: str, average_stock: Decimal, total_issued: Decimal,
                      rules: BusinessRules = DEFAULT_RULES) -> TurnoverRecord:
    """
    Turnover ratio = issued over the window / average stock held

    The ratio is zero when there was no stock on average. The class is
    decided on the exact ratio; only the stored ratio is rounded.

    Raises:
        ValidationError: negative issued total
    """
    if total_issued < 0:
        raise ValidationError(f"total issued must not be negative, got {total_issued}", item_code)

    if average_stock > 0:
        ratio = total_issued / average_stock
    else:
        ratio = ZERO

    return TurnoverRecord(
        item_code=item_code,
        average_stock=average_stock,
        total_issued_over_window=total_issued,
        turnover_ratio=ratio.quantize(rules.ratio_quantum, rounding=ROUND_HALF_UP),
        classification=turnover_class_for(ratio, rules),
    )


def rank_turnover(records: Iterable[TurnoverRecord]) -> List[TurnoverRecord]:
    """Fastest movers first; equal ratios by item code"""
    return sorted(records, key=lambda r: (-r.turnover_ratio, r.item_code))


def summarize_turnover(records: Iterable[TurnoverRecord],
                       rules: BusinessRules = DEFAULT_RULES) -> List[TurnoverSummary]:
    """Count, share and mean ratio per turnover class, always in Fast/Medium/Slow/Dead order"""
    records = list(records)
    total = len(records)
    summary = []

    for turnover_class in TURNOVER_ORDER:
        members = [r for r in records if r.classification is turnover_class]
        count = len(members)
        if count:
            avg_turnover = (sum((r.turnover_ratio for r in members), ZERO) / count).quantize(
                rules.ratio_quantum, rounding=ROUND_HALF_UP
            )
        else:
            avg_turnover = ZERO
        percentage = (Decimal(count) * 100 / total).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        ) if total else ZERO

        summary.append(TurnoverSummary(
            classification=turnover_class,
            item_count=count,
            percentage=percentage,
            avg_turnover=avg_turnover,
        ))

    return summary


def abc_class_for(cumulative_percentage: Decimal, rules: BusinessRules = DEFAULT_RULES) -> AbcClass:
    if cumulative_percentage <= rules.abc_a_cutoff:
        return AbcClass.A
    if cumulative_percentage <= rules.abc_b_cutoff:
        return AbcClass.B
    return AbcClass.C


def classify_abc(positions: Iterable[StockPosition],
                 rules: BusinessRules = DEFAULT_RULES) -> List[AbcRecord]:
    """
    ABC classification by cumulative stock value

    Only items with stock on hand take part. Each is valued at the configured
    unit cost and ranked by descending value, then item code. Items inside
    the first 80% of cumulative value are class A, up to 95% class B, the
    rest class C (cut-offs configurable). Classes are decided on the exact
    cumulative share; stored percentages are rounded.
    """
    valued = sorted(
        (
            (p.item_code, p.current_quantity, p.current_quantity * rules.default_unit_cost)
            for p in positions if p.current_quantity > 0
        ),
        key=lambda v: (-v[2], v[0])
    )
    total_value = sum((value for _, _, value in valued), ZERO)
    hundredth = Decimal("0.01")

    records = []
    cumulative = ZERO
    for ranking, (item_code, quantity, value) in enumerate(valued, start=1):
        cumulative += value
        if total_value > 0:
            share = value * 100 / total_value
            cumulative_share = cumulative * 100 / total_value
        else:
            share = cumulative_share = ZERO

        records.append(AbcRecord(
            item_code=item_code,
            current_quantity=quantity,
            total_value=value.quantize(hundredth, rounding=ROUND_HALF_UP),
            value_percentage=share.quantize(hundredth, rounding=ROUND_HALF_UP),
            cumulative_value=cumulative.quantize(hundredth, rounding=ROUND_HALF_UP),
            cumulative_percentage=cumulative_share.quantize(hundredth, rounding=ROUND_HALF_UP),
            ranking=ranking,
            abc_class=abc_class_for(cumulative_share, rules),
        ))

    return records


def summarize_abc(records: Iterable[AbcRecord]) -> List[AbcSummary]:
    """Item count and value per ABC class, always in A/B/C order"""
    records = list(records)
    total_items = len(records)
    total_value = sum((r.total_value for r in records), ZERO)
    hundredth = Decimal("0.01")
    summary = []

    for abc_class in ABC_ORDER:
        members = [r for r in records if r.abc_class is abc_class]
        class_value = sum((r.total_value for r in members), ZERO)

        summary.append(AbcSummary(
            abc_class=abc_class,
            item_count=len(members),
            total_value=class_value,
            percentage_items=(Decimal(len(members)) * 100 / total_items).quantize(
                hundredth, rounding=ROUND_HALF_UP
            ) if total_items else ZERO,
            percentage_value=(class_value * 100 / total_value).quantize(
                hundredth, rounding=ROUND_HALF_UP
            ) if total_value > 0 else ZERO,
        ))

    return summary


def dead_stock_action_for(days_since_movement: Optional[int],
                          rules: BusinessRules = DEFAULT_RULES) -> DeadStockAction:
    """Never-moved items are treated as the oldest"""
    if days_since_movement is None or days_since_movement > rules.dead_stock_dispose_days:
        return DeadStockAction.DISPOSE
    if days_since_movement > rules.dead_stock_liquidate_days:
        return DeadStockAction.LIQUIDATE
    if days_since_movement > rules.dead_stock_review_days:
        return DeadStockAction.REVIEW
    return DeadStockAction.MONITOR


def analyse_dead_stock(positions: Iterable[StockPosition], as_of: date,
                       rules: BusinessRules = DEFAULT_RULES) -> List[DeadStockItem]:
    """
    Items holding stock with no ledger movement for the dead-stock period

    Returned oldest first; never-moved items lead, then by item code.
    """
    items = []
    for position in positions:
        if position.current_quantity <= 0:
            continue

        if position.last_movement_date is None:
            days = None
        else:
            days = (as_of - position.last_movement_date).days
            if days < rules.dead_stock_min_days:
                continue

        items.append(DeadStockItem(
            item_code=position.item_code,
            current_quantity=position.current_quantity,
            last_movement_date=position.last_movement_date,
            days_since_movement=days,
            estimated_value=(position.current_quantity * rules.default_unit_cost).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            ),
            recommended_action=dead_stock_action_for(days, rules),
        ))

    items.sort(key=lambda i: (
        i.days_since_movement is not None,
        -(i.days_since_movement or 0),
        i.item_code,
    ))
    return items
