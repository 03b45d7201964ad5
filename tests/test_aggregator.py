"""
Tests for the Stock Aggregator
Quantity on hand derived from the ledger
"""

import random
import pytest
from decimal import Decimal
from datetime import date, datetime

from stock_ledger.core.exceptions import ValidationError
from stock_ledger.services.stock.aggregator import (
    aggregate_positions, average_daily_consumption, average_stock,
    balance_as_of, compute_stock_position, issued_between, validate_transaction
)
from stock_ledger.services.stock.records import StockTransaction, TransactionType

from tests.conftest import AS_OF, txn


class TestComputeStockPosition:
    """Test suite for compute_stock_position"""

    def test_opening_plus_grn_minus_issues(self):
        """Test the worked example: 100 + 50 - 30 - 20 = 100"""
        transactions = [
            txn("A", "OPENING_STOCK", 100),
            txn("A", "GRN", 50),
            txn("A", "ISSUE", 30),
            txn("A", "ISSUE", 20),
        ]

        position = compute_stock_position("A", transactions)

        assert position.current_quantity == Decimal("100")
        assert position.opening_stock == Decimal("100")
        assert position.total_grns == Decimal("50")
        assert position.total_issues == Decimal("50")
        assert position.transaction_count == 4
        assert not position.is_negative

    def test_no_transactions_is_zero(self):
        """Test an item without ledger entries has nothing on hand"""
        position = compute_stock_position("A", [])

        assert position.current_quantity == Decimal("0")
        assert position.transaction_count == 0
        assert position.last_movement_date is None

    def test_order_does_not_matter(self):
        """Test shuffling the ledger gives the same position"""
        transactions = [txn("A", "OPENING_STOCK", 500)]
        rng = random.Random(42)
        for i in range(200):
            kind = "GRN" if i % 3 else "ISSUE"
            transactions.append(txn("A", kind, Decimal(rng.randint(1, 999)) / 100))

        expected = compute_stock_position("A", transactions, computed_at=datetime(2024, 1, 1))
        for _ in range(5):
            shuffled = transactions[:]
            rng.shuffle(shuffled)
            assert compute_stock_position("A", shuffled, computed_at=datetime(2024, 1, 1)) == expected

    def test_conservation_of_quantity(self):
        """Test the balance equals additions minus issues exactly"""
        transactions = [txn("A", "GRN", "0.1") for _ in range(1000)]
        transactions += [txn("A", "ISSUE", "0.07") for _ in range(1000)]

        position = compute_stock_position("A", transactions)

        assert position.current_quantity == Decimal("30.0")
        assert position.current_quantity == Decimal("100.0") - Decimal("70.00")

    def test_negative_balance_is_flagged_not_clamped(self):
        """Test over-issuing produces a negative, flagged position"""
        position = compute_stock_position("A", [txn("A", "GRN", 5), txn("A", "ISSUE", 8)])

        assert position.current_quantity == Decimal("-3")
        assert position.is_negative

    def test_transactions_after_as_of_are_ignored(self):
        """Test future-dated entries do not count"""
        transactions = [
            txn("A", "OPENING_STOCK", 10, date(2024, 1, 1)),
            txn("A", "GRN", 90, date(2024, 5, 1)),
        ]

        position = compute_stock_position("A", transactions, as_of=date(2024, 3, 31))

        assert position.current_quantity == Decimal("10")
        assert position.last_movement_date == date(2024, 1, 1)

    def test_last_movement_date(self):
        """Test the latest business date is reported"""
        transactions = [
            txn("A", "GRN", 1, date(2024, 2, 1)),
            txn("A", "ISSUE", 1, date(2024, 3, 1)),
            txn("A", "GRN", 1, date(2024, 1, 1)),
        ]

        assert compute_stock_position("A", transactions).last_movement_date == date(2024, 3, 1)

    def test_transaction_for_other_item_rejected(self):
        """Test mixing items is a validation error"""
        with pytest.raises(ValidationError):
            compute_stock_position("A", [txn("B", "GRN", 1)])

    def test_recompute_is_idempotent(self):
        """Test computing twice gives equal positions"""
        transactions = [txn("A", "GRN", 3), txn("A", "ISSUE", 1)]

        assert compute_stock_position("A", transactions) == compute_stock_position("A", transactions)


class TestValidateTransaction:
    """Test suite for ledger record validation"""

    def test_raw_values_are_normalised(self):
        """Test store values are converted to proper types"""
        raw = StockTransaction(
            item_code=" A ",
            transaction_type="GRN",
            quantity=12.5,
            occurred_at=datetime(2024, 3, 1, 10, 30),
            source_reference=None,
        )

        checked = validate_transaction(raw)

        assert checked.item_code == "A"
        assert checked.transaction_type is TransactionType.GRN
        assert checked.quantity == Decimal("12.5")
        assert checked.occurred_at == date(2024, 3, 1)
        assert checked.source_reference == ""

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-5"), "abc", None, Decimal("NaN"), float("inf")])
    def test_bad_quantity_rejected(self, quantity):
        """Test zero, negative, missing and non-finite quantities are rejected"""
        raw = StockTransaction("A", TransactionType.GRN, quantity, AS_OF, "GRN-1")

        with pytest.raises(ValidationError) as exc_info:
            validate_transaction(raw)

        assert exc_info.value.item_code == "A"
        assert exc_info.value.reference == "GRN-1"

    def test_unknown_type_rejected(self):
        """Test unknown transaction types are rejected"""
        raw = StockTransaction("A", "ADJUSTMENT", Decimal("1"), AS_OF)

        with pytest.raises(ValidationError, match="unknown transaction type"):
            validate_transaction(raw)

    def test_missing_item_code_rejected(self):
        """Test blank item codes are rejected"""
        with pytest.raises(ValidationError, match="item_code"):
            validate_transaction(StockTransaction("  ", TransactionType.GRN, Decimal("1"), AS_OF))

    def test_missing_date_rejected(self):
        """Test records without a business date are rejected"""
        with pytest.raises(ValidationError, match="occurred_at"):
            validate_transaction(StockTransaction("A", TransactionType.GRN, Decimal("1"), None))


class TestAggregatePositions:
    """Test suite for batch aggregation"""

    def test_bad_record_isolated(self):
        """Test one malformed record does not abort the batch"""
        transactions = [
            txn("A", "GRN", 10),
            StockTransaction("A", TransactionType.ISSUE, Decimal("-4"), AS_OF, "ISS-BAD"),
            txn("B", "OPENING_STOCK", 7),
        ]

        snapshot = aggregate_positions(transactions, AS_OF)

        assert snapshot.positions["A"].current_quantity == Decimal("10")
        assert snapshot.positions["B"].current_quantity == Decimal("7")
        assert len(snapshot.failures) == 1
        assert snapshot.failures[0].reference == "ISS-BAD"
        assert snapshot.failures[0].record_type == "transaction"

    def test_groups_by_item(self):
        """Test validated records are grouped per item"""
        snapshot = aggregate_positions([txn("A", "GRN", 1), txn("B", "GRN", 2), txn("A", "ISSUE", 1)])

        assert sorted(snapshot.transactions_by_item) == ["A", "B"]
        assert len(snapshot.transactions_by_item["A"]) == 2

    def test_empty_batch(self):
        """Test an empty ledger gives an empty snapshot"""
        snapshot = aggregate_positions([])

        assert snapshot.positions == {}
        assert snapshot.failures == []


class TestWindowCalculations:
    """Test suite for consumption and average stock windows"""

    def test_average_daily_consumption(self):
        """Test issues inside the trailing window are averaged per day"""
        transactions = [
            txn("A", "OPENING_STOCK", 500, date(2024, 1, 1)),
            txn("A", "ISSUE", 60, date(2024, 3, 15)),
            txn("A", "ISSUE", 90, date(2024, 3, 31)),
            txn("A", "ISSUE", 400, date(2024, 2, 1)),
        ]

        assert average_daily_consumption(transactions, AS_OF, 30) == Decimal("5")

    def test_window_start_is_exclusive(self):
        """Test an issue exactly window_days ago falls outside the window"""
        transactions = [txn("A", "ISSUE", 30, date(2024, 3, 1))]

        assert issued_between(transactions, date(2024, 3, 1), AS_OF) == Decimal("0")
        assert average_daily_consumption(transactions, AS_OF, 30) == Decimal("0")

    def test_no_issues_means_zero_consumption(self):
        """Test an item only receiving stock consumes nothing"""
        assert average_daily_consumption([txn("A", "GRN", 5)], AS_OF, 30) == Decimal("0")

    def test_invalid_window_rejected(self):
        """Test the window must be positive"""
        with pytest.raises(ValueError):
            average_daily_consumption([], AS_OF, 0)

    def test_balance_as_of(self):
        """Test the signed balance at a past date"""
        transactions = [
            txn("A", "OPENING_STOCK", 100, date(2024, 1, 1)),
            txn("A", "ISSUE", 40, date(2024, 2, 1)),
            txn("A", "GRN", 10, date(2024, 3, 1)),
        ]

        assert balance_as_of(transactions, date(2024, 2, 15)) == Decimal("60")
        assert balance_as_of(transactions, AS_OF) == Decimal("70")

    def test_average_stock_is_mean_of_window_ends(self):
        """Test average stock uses opening and closing balance of the window"""
        transactions = [
            txn("A", "OPENING_STOCK", 100, date(2023, 12, 1)),
            txn("A", "ISSUE", 50, date(2024, 3, 1)),
        ]

        assert average_stock(transactions, AS_OF, 90) == Decimal("75")
