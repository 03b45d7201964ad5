"""
Tests for the Stock Classifier
Stock status tiers, urgency and order suggestions
"""

import pytest
from decimal import Decimal

from stock_ledger.core.config import BusinessRules
from stock_ledger.core.exceptions import ValidationError
from stock_ledger.services.stock.aggregator import compute_stock_position
from stock_ledger.services.stock.classifier import classify, validate_policy
from stock_ledger.services.stock.records import (
    INFINITE_DAYS, ReorderPolicy, StockPosition, StockStatus, UrgencyLevel
)

from tests.conftest import txn


def position(quantity, item_code="A"):
    return StockPosition(item_code=item_code, current_quantity=Decimal(str(quantity)))


def policy(level, quantity=0, item_code="A"):
    return ReorderPolicy(item_code, Decimal(str(level)), Decimal(str(quantity)))


class TestClassify:
    """Test suite for classify"""

    def test_end_to_end_normal_medium(self):
        """Test 100 on hand, level 40, 5 a day: NORMAL, 20 days, MEDIUM"""
        pos = compute_stock_position("A", [
            txn("A", "OPENING_STOCK", 100),
            txn("A", "GRN", 50),
            txn("A", "ISSUE", 30),
            txn("A", "ISSUE", 20),
        ])

        result = classify(pos, policy(40), Decimal("5"))

        assert result.stock_status == StockStatus.NORMAL
        assert result.estimated_days_of_stock == Decimal("20")
        assert result.urgency_level == UrgencyLevel.MEDIUM
        assert result.shortage_quantity == Decimal("0")

    @pytest.mark.parametrize("consumption", ["0", "0.5", "5", "1000"])
    def test_end_to_end_zero_is_critical(self, consumption):
        """Test GRN 10 then ISSUE 10 leaves ZERO, always CRITICAL"""
        pos = compute_stock_position("A", [txn("A", "GRN", 10), txn("A", "ISSUE", 10)])

        result = classify(pos, policy(20), Decimal(consumption))

        assert pos.current_quantity == Decimal("0")
        assert result.stock_status == StockStatus.ZERO
        assert result.urgency_level == UrgencyLevel.CRITICAL

    def test_quantity_at_reorder_level_is_low(self):
        """Test the reorder level boundary is inclusive on the low side"""
        result = classify(position(40), policy(40), Decimal("1"))

        assert result.stock_status == StockStatus.LOW

    def test_critical_at_half_reorder_level(self):
        """Test stock at or below half the reorder level is CRITICAL"""
        assert classify(position(20), policy(40), Decimal("0")).stock_status == StockStatus.CRITICAL
        assert classify(position("20.001"), policy(40), Decimal("0")).stock_status == StockStatus.LOW

    def test_above_reorder_level_is_normal(self):
        """Test stock above the reorder level is NORMAL"""
        assert classify(position("40.001"), policy(40), Decimal("0")).stock_status == StockStatus.NORMAL

    def test_zero_consumption_is_infinite(self):
        """Test no consumption gives infinite cover and is not CRITICAL"""
        result = classify(position(5), policy(2), Decimal("0"))

        assert result.estimated_days_of_stock == INFINITE_DAYS
        assert result.has_infinite_cover
        assert result.urgency_level != UrgencyLevel.CRITICAL
        assert result.urgency_level == UrgencyLevel.LOW

    def test_zero_consumption_at_reorder_level_is_medium(self):
        """Test infinite cover still flags stock at the reorder level"""
        result = classify(position(40), policy(40), Decimal("0"))

        assert result.has_infinite_cover
        assert result.urgency_level == UrgencyLevel.MEDIUM

    @pytest.mark.parametrize("quantity,expected", [
        ("1", UrgencyLevel.CRITICAL),
        ("7", UrgencyLevel.HIGH),
        ("30", UrgencyLevel.MEDIUM),
        ("31", UrgencyLevel.LOW),
    ])
    def test_urgency_tiers(self, quantity, expected):
        """Test urgency thresholds at 1, 7 and 30 days of stock"""
        result = classify(position(quantity), policy(0), Decimal("1"))

        assert result.urgency_level == expected

    def test_medium_threshold_is_configurable(self):
        """Test a 14 day medium threshold moves 20 days to LOW"""
        rules = BusinessRules(urgency_medium_days=Decimal("14"))

        result = classify(position(100), policy(40), Decimal("5"), rules)

        assert result.urgency_level == UrgencyLevel.LOW

    def test_shortage_and_suggested_order(self):
        """Test shortage and buffer-based order suggestion"""
        result = classify(position(10), policy(40), Decimal("2"))

        assert result.shortage_quantity == Decimal("30")
        # 30 short plus 30 days of 2 a day
        assert result.suggested_order_quantity == Decimal("90")

    def test_suggested_order_at_least_reorder_level(self):
        """Test the suggestion never falls below the reorder level"""
        result = classify(position(100), policy(40), Decimal("0"))

        assert result.suggested_order_quantity == Decimal("40")

    def test_missing_policy_means_zero_thresholds(self):
        """Test an item without a policy is judged on consumption only"""
        result = classify(position(3), None, Decimal("1"))

        assert result.reorder_level == Decimal("0")
        assert result.stock_status == StockStatus.NORMAL
        assert result.urgency_level == UrgencyLevel.HIGH

    def test_negative_stock_is_critical(self):
        """Test a negative balance classifies as CRITICAL"""
        result = classify(position(-5), policy(10), Decimal("1"))

        assert result.stock_status == StockStatus.CRITICAL
        assert result.urgency_level == UrgencyLevel.CRITICAL
        assert result.shortage_quantity == Decimal("15")

    def test_deterministic(self):
        """Test the same inputs classify identically"""
        args = (position("12.5"), policy(20), Decimal("0.75"))

        assert classify(*args) == classify(*args)

    def test_negative_consumption_rejected(self):
        """Test negative consumption is a validation error"""
        with pytest.raises(ValidationError):
            classify(position(5), policy(1), Decimal("-1"))


class TestValidatePolicy:
    """Test suite for reorder policy validation"""

    def test_negative_reorder_level_rejected(self):
        """Test a negative reorder level is rejected"""
        with pytest.raises(ValidationError, match="reorder_level"):
            validate_policy(policy(-1))

    def test_negative_reorder_quantity_rejected(self):
        """Test a negative reorder quantity is rejected"""
        with pytest.raises(ValidationError, match="reorder_quantity"):
            validate_policy(policy(1, -1))

    def test_policy_for_other_item_rejected(self):
        """Test classify refuses another item's policy"""
        with pytest.raises(ValidationError):
            classify(position(5), policy(1, item_code="B"), Decimal("1"))

    def test_raw_values_converted(self):
        """Test stored floats become decimals"""
        checked = validate_policy(ReorderPolicy("A", 12.5, 40))

        assert checked.reorder_level == Decimal("12.5")
        assert checked.reorder_quantity == Decimal("40")
