"""
Stock Reconciliation Service
Composes aggregation, classification, integrity checking and reporting into
a single reconciliation run, and coordinates concurrent runs
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple
import logging

from stock_ledger.core.config import BusinessRules
from stock_ledger.core.exceptions import DataSourceUnavailable, ValidationError
from stock_ledger.services.sources.base import PolicyStore, SummaryStore, TransactionStore
from stock_ledger.services.stock.aggregator import (
    aggregate_positions, average_daily_consumption, average_stock,
    compute_stock_position, issued_between
)
from stock_ledger.services.stock.classifier import classify, validate_policy
from stock_ledger.services.stock.integrity import build_integrity_report
from stock_ledger.services.stock.records import (
    AbcRecord, AbcSummary, ClassificationResult, DeadStockItem, IntegrityDiscrepancy,
    IntegrityReport, LowStockSummary, RecordFailure, ReorderPolicy, StockPosition, TurnoverRecord,
    TurnoverSummary
)
from stock_ledger.services.stock.reporting import (
    analyse_dead_stock, classify_abc, classify_turnover, is_alert, rank_alerts,
    rank_turnover, summarize_abc, summarize_low_stock, summarize_turnover
)

logger = logging.getLogger(__name__)

ScopeKey = Tuple[Optional[FrozenSet[str]], Optional[date]]


@dataclass(frozen=True)
class ReconciliationScope:
    """
    Which items to reconcile and as of which day

    item_codes None means every item; as_of None means today.
    """
    item_codes: Optional[FrozenSet[str]] = None
    as_of: Optional[date] = None

    @classmethod
    def create(cls, item_codes: Optional[Iterable[str]] = None,
               as_of: Optional[date] = None) -> "ReconciliationScope":
        codes = frozenset(c.strip() for c in item_codes if c and c.strip()) if item_codes else None
        return cls(item_codes=codes or None, as_of=as_of)

    def resolve(self, today: Optional[date] = None) -> "ReconciliationScope":
        """Pin the as-of date so the scope identifies one snapshot"""
        if self.as_of is not None:
            return self
        return ReconciliationScope(self.item_codes, today or date.today())

    @property
    def key(self) -> ScopeKey:
        return self.item_codes, self.as_of

    def includes(self, item_code: str) -> bool:
        return self.item_codes is None or item_code in self.item_codes


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Outcome of one reconciliation run

    An empty positions map with an empty failures list means the scope held
    no items; rejected input records are listed in failures alongside
    whatever could be computed.
    """
    scope: ReconciliationScope
    positions: Dict[str, StockPosition]
    classifications: List[ClassificationResult]
    alerts: List[ClassificationResult]
    discrepancies: List[IntegrityDiscrepancy]
    integrity: IntegrityReport
    turnover_ranking: List[TurnoverRecord]
    turnover_summary: List[TurnoverSummary]
    low_stock_summary: LowStockSummary
    dead_stock: List[DeadStockItem]
    abc_classification: List[AbcRecord]
    abc_summary: List[AbcSummary]
    failures: List[RecordFailure] = field(default_factory=list)
    computed_at: Optional[datetime] = field(default=None, compare=False)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class ReconciliationService:
    """
    Stock reconciliation
    Reads the ledger, summary view and reorder policies, then derives
    positions, classifications, integrity findings and turnover
    """

    def __init__(self, transaction_store: TransactionStore, summary_store: SummaryStore,
                 policy_store: PolicyStore, rules: Optional[BusinessRules] = None):
        self.transaction_store = transaction_store
        self.summary_store = summary_store
        self.policy_store = policy_store
        self.rules = rules or BusinessRules.from_settings()

    def reconcile(self, scope: Optional[ReconciliationScope] = None) -> ReconciliationResult:
        """
        Run a full reconciliation for the scope

        Raises:
            DataSourceUnavailable: any source failed; nothing is returned
        """
        scope = (scope or ReconciliationScope()).resolve()
        as_of = scope.as_of
        computed_at = datetime.now()
        scope_label = ",".join(sorted(scope.item_codes)) if scope.item_codes else "all items"

        logger.info(f"Reconciliation started for {scope_label} as of {as_of}")

        try:
            transactions = self.transaction_store.fetch_transactions(scope.item_codes, (None, as_of))
            summary = self.summary_store.fetch_summary_positions(scope.item_codes)
            raw_policies = self.policy_store.fetch_reorder_policies(scope.item_codes)
        except DataSourceUnavailable as e:
            logger.error(f"Reconciliation aborted for {scope_label}: {e}")
            raise

        snapshot = aggregate_positions(transactions, as_of, computed_at)
        failures = list(snapshot.failures)

        policies, rejected_policy_items = self._validate_policies(raw_policies, failures)

        item_codes = sorted(
            code for code in set(snapshot.positions) | set(summary) | set(policies) | rejected_policy_items
            if scope.includes(code)
        )

        positions = {}
        classifications = []
        turnover_records = []
        window_start = as_of - timedelta(days=self.rules.turnover_window_days)

        for item_code in item_codes:
            item_txns = snapshot.transactions_by_item.get(item_code, [])
            position = snapshot.positions.get(item_code)
            if position is None:
                position = compute_stock_position(item_code, [], as_of, computed_at)
            positions[item_code] = position

            if item_code not in rejected_policy_items:
                consumption = average_daily_consumption(
                    item_txns, as_of, self.rules.consumption_window_days
                )
                classifications.append(
                    classify(position, policies.get(item_code), consumption, self.rules)
                )

            turnover_records.append(classify_turnover(
                item_code,
                average_stock(item_txns, as_of, self.rules.turnover_window_days),
                issued_between(item_txns, window_start, as_of),
                self.rules,
            ))

        summary_in_scope = {
            code: qty for code, qty in summary.items() if scope.includes(code)
        }
        integrity = build_integrity_report(positions, summary_in_scope, self.rules)
        alerts = rank_alerts(c for c in classifications if is_alert(c))
        abc_records = classify_abc(positions.values(), self.rules)

        result = ReconciliationResult(
            scope=scope,
            positions=positions,
            classifications=classifications,
            alerts=alerts,
            discrepancies=integrity.discrepancies,
            integrity=integrity,
            turnover_ranking=rank_turnover(turnover_records),
            turnover_summary=summarize_turnover(turnover_records, self.rules),
            low_stock_summary=summarize_low_stock(alerts, self.rules),
            dead_stock=analyse_dead_stock(positions.values(), as_of, self.rules),
            abc_classification=abc_records,
            abc_summary=summarize_abc(abc_records),
            failures=failures,
            computed_at=computed_at,
        )

        logger.info(
            f"Reconciliation finished for {scope_label}: {len(positions)} items, "
            f"{len(alerts)} alerts, {len(integrity.discrepancies)} discrepancies, "
            f"{len(failures)} rejected records"
        )
        return result

    def _validate_policies(self, raw_policies: Iterable[ReorderPolicy],
                           failures: List[RecordFailure]) -> Tuple[Dict[str, ReorderPolicy], set]:
        """Valid policies by item code, plus the items whose policy was rejected"""
        policies = {}
        rejected = set()

        for raw in raw_policies:
            try:
                policy = validate_policy(raw)
            except ValidationError as e:
                logger.warning(f"Rejected reorder policy for {e.item_code!r}: {e.message}")
                failures.append(RecordFailure(
                    record_type="reorder_policy",
                    item_code=e.item_code,
                    reference=e.reference,
                    reason=e.message,
                ))
                if raw.item_code:
                    rejected.add(raw.item_code)
                continue
            policies[policy.item_code] = policy

        rejected -= set(policies)
        return policies, rejected


class ReconciliationCoordinator:
    """
    Runs reconciliations off the event loop

    Concurrent requests for the same scope and as-of date share one run.
    Every run started gets a generation number. A finished run is published
    for its item scope unless the published result is a later snapshot, or
    the same snapshot from a newer run. A slow old run therefore never
    overwrites a newer result, and a historical run never hides the current one.
    """

    def __init__(self):
        self._in_flight: Dict[ScopeKey, asyncio.Task] = {}
        self._published: Dict[Optional[FrozenSet[str]], Tuple[date, int, ReconciliationResult]] = {}
        self._generation = 0

    async def run(self, scope: Optional[ReconciliationScope],
                  runner: Callable[[ReconciliationScope], ReconciliationResult]) -> ReconciliationResult:
        """
        Reconcile the scope, joining an identical run already in progress

        runner is a blocking callable such as ReconciliationService.reconcile;
        it runs in a worker thread.

        Raises:
            DataSourceUnavailable: propagated from the runner
            asyncio.CancelledError: the run was cancelled
        """
        scope = (scope or ReconciliationScope()).resolve()
        key = scope.key

        task = self._in_flight.get(key)
        if task is None:
            self._generation += 1
            task = asyncio.create_task(self._execute(scope, runner, self._generation))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug(f"Joining in-flight reconciliation for {key}")

        # One caller going away must not cancel the run for the others
        return await asyncio.shield(task)

    async def _execute(self, scope: ReconciliationScope,
                       runner: Callable[[ReconciliationScope], ReconciliationResult],
                       generation: int) -> ReconciliationResult:
        result = await asyncio.to_thread(runner, scope)

        current = self._published.get(scope.item_codes)
        if current is None or current[:2] < (scope.as_of, generation):
            self._published[scope.item_codes] = (scope.as_of, generation, result)
        else:
            logger.debug(
                f"Not publishing reconciliation generation {generation} as of {scope.as_of}; "
                f"generation {current[1]} as of {current[0]} already published"
            )
        return result

    def _forget(self, key: ScopeKey, task: asyncio.Task):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def cancel(self, scope: ReconciliationScope) -> bool:
        """Cancel the in-flight run for the scope; it publishes nothing"""
        key = scope.resolve().key
        task = self._in_flight.get(key)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Reconciliation cancelled for {key}")
        return True

    def latest(self, item_codes: Optional[Iterable[str]] = None) -> Optional[ReconciliationResult]:
        """Published result with the latest snapshot for the item scope, or None if none has completed"""
        key = ReconciliationScope.create(item_codes).item_codes
        published = self._published.get(key)
        return published[2] if published else None

    def in_flight(self) -> int:
        return len(self._in_flight)
