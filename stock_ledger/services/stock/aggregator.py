"""
Stock Aggregator
Derives quantity on hand from the append-only stock ledger
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional
import logging

from stock_ledger.core.exceptions import ValidationError
from stock_ledger.services.stock.records import (
    StockTransaction, StockPosition, TransactionType, RecordFailure, ZERO
)

logger = logging.getLogger(__name__)


def to_decimal(value, field_name: str, item_code: Optional[str] = None,
               reference: Optional[str] = None) -> Decimal:
    """
    Convert a stored quantity to Decimal without going through binary floats

    Raises:
        ValidationError: value is missing, not numeric, or not finite
    """
    if isinstance(value, Decimal):
        result = value
    elif value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is missing", item_code, reference)
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"{field_name} is not numeric: {value!r}", item_code, reference)

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite", item_code, reference)
    return result


def validate_transaction(txn: StockTransaction) -> StockTransaction:
    """
    Validate a ledger record and return a normalised copy

    Records read from a store may still carry raw values (type as a string,
    quantity as a float or string); the returned record has proper types.

    Raises:
        ValidationError: the record is malformed
    """
    reference = txn.source_reference or ""
    item_code = txn.item_code.strip() if isinstance(txn.item_code, str) else ""
    if not item_code:
        raise ValidationError("item_code is required", None, reference)

    try:
        txn_type = TransactionType(txn.transaction_type)
    except ValueError:
        raise ValidationError(
            f"unknown transaction type: {txn.transaction_type!r}", item_code, reference
        )

    quantity = to_decimal(txn.quantity, "quantity", item_code, reference)
    if quantity <= 0:
        raise ValidationError(
            f"quantity must be positive, got {quantity}", item_code, reference
        )

    occurred_at = txn.occurred_at
    if isinstance(occurred_at, datetime):
        occurred_at = occurred_at.date()
    elif not isinstance(occurred_at, date):
        raise ValidationError("occurred_at must be a date", item_code, reference)

    return StockTransaction(
        item_code=item_code,
        transaction_type=txn_type,
        quantity=quantity,
        occurred_at=occurred_at,
        source_reference=reference,
    )


def _summarise(item_code: str, transactions: Iterable[StockTransaction],
               as_of: Optional[date], computed_at: Optional[datetime]) -> StockPosition:
    """Sum already-validated transactions for one item"""
    totals = {t: ZERO for t in TransactionType}
    count = 0
    last_movement = None

    for txn in transactions:
        if as_of is not None and txn.occurred_at > as_of:
            continue
        totals[txn.transaction_type] += txn.quantity
        count += 1
        if last_movement is None or txn.occurred_at > last_movement:
            last_movement = txn.occurred_at

    opening = totals[TransactionType.OPENING_STOCK]
    grns = totals[TransactionType.GRN]
    issues = totals[TransactionType.ISSUE]

    return StockPosition(
        item_code=item_code,
        current_quantity=opening + grns - issues,
        opening_stock=opening,
        total_grns=grns,
        total_issues=issues,
        transaction_count=count,
        last_movement_date=last_movement,
        last_computed_at=computed_at or datetime.now(),
    )


def compute_stock_position(item_code: str, transactions: Iterable[StockTransaction],
                           as_of: Optional[date] = None,
                           computed_at: Optional[datetime] = None) -> StockPosition:
    """
    Current quantity = opening stock + GRNs - issues

    Order of the transactions does not matter. Entries dated after as_of
    are ignored. A negative result is returned as is and flagged through
    StockPosition.is_negative.

    Raises:
        ValidationError: a record is malformed or belongs to another item
    """
    valid = []
    for txn in transactions:
        checked = validate_transaction(txn)
        if checked.item_code != item_code:
            raise ValidationError(
                f"transaction for {checked.item_code} passed for item {item_code}",
                checked.item_code, checked.source_reference
            )
        valid.append(checked)

    return _summarise(item_code, valid, as_of, computed_at)


@dataclass
class LedgerSnapshot:
    """Validated ledger grouped by item, with the records that were rejected"""
    positions: Dict[str, StockPosition] = field(default_factory=dict)
    transactions_by_item: Dict[str, List[StockTransaction]] = field(default_factory=dict)
    failures: List[RecordFailure] = field(default_factory=list)


def aggregate_positions(transactions: Iterable[StockTransaction],
                        as_of: Optional[date] = None,
                        computed_at: Optional[datetime] = None) -> LedgerSnapshot:
    """
    Validate and aggregate a complete batch of ledger records

    A malformed record is rejected on its own and listed in the snapshot's
    failures; it never aborts the batch.
    """
    grouped = defaultdict(list)
    failures = []

    for txn in transactions:
        try:
            checked = validate_transaction(txn)
        except ValidationError as e:
            logger.warning(f"Rejected ledger record {e.reference!r} for {e.item_code!r}: {e.message}")
            failures.append(RecordFailure(
                record_type="transaction",
                item_code=e.item_code,
                reference=e.reference,
                reason=e.message,
            ))
            continue
        grouped[checked.item_code].append(checked)

    computed_at = computed_at or datetime.now()
    positions = {
        item_code: _summarise(item_code, item_txns, as_of, computed_at)
        for item_code, item_txns in grouped.items()
    }

    logger.debug(f"Aggregated {len(positions)} items, {len(failures)} records rejected")

    return LedgerSnapshot(
        positions=positions,
        transactions_by_item=dict(grouped),
        failures=failures,
    )


# Window calculations below expect validated transactions for a single item.

def balance_as_of(transactions: Iterable[StockTransaction], as_of: date) -> Decimal:
    """Signed ledger balance at the end of as_of"""
    return sum(
        (txn.signed_quantity for txn in transactions if txn.occurred_at <= as_of),
        ZERO
    )


def issued_between(transactions: Iterable[StockTransaction], start: date, end: date) -> Decimal:
    """Total issued in the half-open window (start, end]"""
    return sum(
        (
            txn.quantity for txn in transactions
            if txn.transaction_type is TransactionType.ISSUE and start < txn.occurred_at <= end
        ),
        ZERO
    )


def average_daily_consumption(transactions: Iterable[StockTransaction], as_of: date,
                              window_days: int) -> Decimal:
    """Issues over the trailing window divided by the window length in days"""
    if window_days <= 0:
        raise ValueError("window_days must be positive")
    start = as_of - timedelta(days=window_days)
    return issued_between(transactions, start, as_of) / Decimal(window_days)


def average_stock(transactions: List[StockTransaction], as_of: date, window_days: int) -> Decimal:
    """Mean of the opening and closing balance of the trailing window"""
    start = as_of - timedelta(days=window_days)
    return (balance_as_of(transactions, start) + balance_as_of(transactions, as_of)) / 2
