"""
Stock Classifier
Maps quantity on hand, reorder policy and consumption rate to a stock
status and a replenishment urgency
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from stock_ledger.core.config import BusinessRules, DEFAULT_RULES
from stock_ledger.core.exceptions import ValidationError
from stock_ledger.services.stock.aggregator import to_decimal
from stock_ledger.services.stock.records import (
    ClassificationResult, ReorderPolicy, StockPosition, StockStatus,
    UrgencyLevel, INFINITE_DAYS, ZERO
)


def validate_policy(policy: ReorderPolicy, item_code: Optional[str] = None) -> ReorderPolicy:
    """
    Validate a reorder policy and return a normalised copy

    Raises:
        ValidationError: negative level or quantity, or a policy for another item
    """
    if not isinstance(policy.item_code, str) or not policy.item_code.strip():
        raise ValidationError("reorder policy without item_code")
    if item_code is not None and policy.item_code != item_code:
        raise ValidationError(
            f"reorder policy for {policy.item_code} passed for item {item_code}",
            policy.item_code
        )

    reorder_level = to_decimal(policy.reorder_level, "reorder_level", policy.item_code)
    reorder_quantity = to_decimal(policy.reorder_quantity, "reorder_quantity", policy.item_code)

    if reorder_level < 0:
        raise ValidationError(f"reorder_level must not be negative, got {reorder_level}", policy.item_code)
    if reorder_quantity < 0:
        raise ValidationError(f"reorder_quantity must not be negative, got {reorder_quantity}", policy.item_code)

    return ReorderPolicy(
        item_code=policy.item_code,
        reorder_level=reorder_level,
        reorder_quantity=reorder_quantity,
    )


def stock_status_for(quantity: Decimal, reorder_level: Decimal,
                     rules: BusinessRules = DEFAULT_RULES) -> StockStatus:
    """Status tier; quantity equal to the reorder level is LOW"""
    if quantity == 0:
        return StockStatus.ZERO
    if quantity <= reorder_level * rules.critical_stock_fraction:
        return StockStatus.CRITICAL
    if quantity <= reorder_level:
        return StockStatus.LOW
    return StockStatus.NORMAL


def days_of_stock(quantity: Decimal, avg_daily_consumption: Decimal) -> Decimal:
    """Days until stock-out at the current rate; infinite when nothing is consumed"""
    if avg_daily_consumption <= 0:
        return INFINITE_DAYS
    return quantity / avg_daily_consumption


def urgency_for(status: StockStatus, days: Decimal, quantity: Decimal,
                reorder_level: Decimal, rules: BusinessRules = DEFAULT_RULES) -> UrgencyLevel:
    if status is StockStatus.ZERO or days <= rules.urgency_critical_days:
        return UrgencyLevel.CRITICAL
    if days <= rules.urgency_high_days:
        return UrgencyLevel.HIGH
    if days <= rules.urgency_medium_days or quantity <= reorder_level:
        return UrgencyLevel.MEDIUM
    return UrgencyLevel.LOW


def classify(position: StockPosition, policy: Optional[ReorderPolicy],
             avg_daily_consumption: Decimal,
             rules: BusinessRules = DEFAULT_RULES) -> ClassificationResult:
    """
    Classify one item

    Args:
        position: Ledger-derived stock position
        policy: Reorder policy for the item; None means no replenishment thresholds
        avg_daily_consumption: Trailing average issued per day
        rules: Business constants

    Returns:
        ClassificationResult with status, urgency, days of stock,
        shortage and suggested order quantity

    Raises:
        ValidationError: invalid policy or consumption figure
    """
    if policy is None:
        policy = ReorderPolicy(item_code=position.item_code)
    policy = validate_policy(policy, position.item_code)

    consumption = to_decimal(avg_daily_consumption, "avg_daily_consumption", position.item_code)
    if consumption < 0:
        raise ValidationError(
            f"avg_daily_consumption must not be negative, got {consumption}", position.item_code
        )

    quantity = position.current_quantity
    reorder_level = policy.reorder_level

    status = stock_status_for(quantity, reorder_level, rules)
    days = days_of_stock(quantity, consumption)
    urgency = urgency_for(status, days, quantity, reorder_level, rules)

    shortage = max(ZERO, reorder_level - quantity)
    suggested = max(reorder_level, shortage + consumption * Decimal(rules.buffer_days))

    if days.is_finite():
        days = days.quantize(rules.ratio_quantum, rounding=ROUND_HALF_UP)

    return ClassificationResult(
        item_code=position.item_code,
        stock_status=status,
        urgency_level=urgency,
        estimated_days_of_stock=days,
        shortage_quantity=shortage.quantize(rules.quantity_quantum, rounding=ROUND_HALF_UP),
        suggested_order_quantity=suggested.quantize(rules.quantity_quantum, rounding=ROUND_HALF_UP),
        current_quantity=quantity,
        reorder_level=reorder_level,
        avg_daily_consumption=consumption.quantize(rules.quantity_quantum, rounding=ROUND_HALF_UP),
    )
