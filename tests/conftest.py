"""
Test Configuration and Fixtures
Shared testing infrastructure for the stock ledger service
"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Collection, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from stock_ledger.main import app
from stock_ledger.api import deps
from stock_ledger.core.config import BusinessRules
from stock_ledger.core.database import get_db, Base
from stock_ledger.core.exceptions import DataSourceUnavailable
from stock_ledger.models.stock import ReorderPolicyRec, StockSummaryRec, StockTransactionRec
from stock_ledger.services.sources.base import PolicyStore, SummaryStore, TransactionStore
from stock_ledger.services.stock.reconciliation import ReconciliationCoordinator
from stock_ledger.services.stock.records import ReorderPolicy, StockTransaction, TransactionType

# Test database URL - in-memory SQLite shared across threads
TEST_DATABASE_URL = "sqlite://"

# Create test engine
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Create test session
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

AS_OF = date(2024, 3, 31)


def txn(item_code, transaction_type, quantity, occurred_at=AS_OF, reference=""):
    """Build a ledger record"""
    return StockTransaction(
        item_code=item_code,
        transaction_type=TransactionType(transaction_type),
        quantity=Decimal(str(quantity)),
        occurred_at=occurred_at,
        source_reference=reference,
    )


class FakeTransactionStore(TransactionStore):
    def __init__(self, transactions=None, error: Optional[Exception] = None):
        self.transactions = list(transactions or [])
        self.error = error
        self.calls = 0

    def fetch_transactions(self, item_codes: Optional[Collection[str]] = None,
                           date_range=None) -> List[StockTransaction]:
        self.calls += 1
        if self.error:
            raise self.error
        return [
            t for t in self.transactions
            if item_codes is None or t.item_code in item_codes
        ]


class FakeSummaryStore(SummaryStore):
    def __init__(self, positions=None, error: Optional[Exception] = None):
        self.positions = dict(positions or {})
        self.error = error

    def fetch_summary_positions(self, item_codes: Optional[Collection[str]] = None) -> Dict[str, Decimal]:
        if self.error:
            raise self.error
        return {
            code: qty for code, qty in self.positions.items()
            if item_codes is None or code in item_codes
        }


class FakePolicyStore(PolicyStore):
    def __init__(self, policies=None, error: Optional[Exception] = None):
        self.policies = list(policies or [])
        self.error = error

    def fetch_reorder_policies(self, item_codes: Optional[Collection[str]] = None) -> List[ReorderPolicy]:
        if self.error:
            raise self.error
        return [
            p for p in self.policies
            if item_codes is None or p.item_code in item_codes
        ]


@pytest.fixture
def rules() -> BusinessRules:
    """Default business rules"""
    return BusinessRules()


@pytest.fixture
def unavailable() -> DataSourceUnavailable:
    return DataSourceUnavailable("stock_transactions", "connection refused")


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    coordinator = ReconciliationCoordinator()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_ledger(db_session: Session) -> Session:
    """
    Ledger, summary view and policies for three items

    WIDGET: 100 on hand, summary agrees, reorder level 40
    BOLT: 0 on hand, summary stale at 5, reorder level 20
    NUT: 15 on hand, no summary row, reorder level 20
    """
    db_session.add_all([
        StockTransactionRec(item_code="WIDGET", transaction_type="OPENING_STOCK",
                            quantity=Decimal("100"), occurred_at=date(2024, 1, 1), source_reference="OPEN-1"),
        StockTransactionRec(item_code="WIDGET", transaction_type="GRN",
                            quantity=Decimal("50"), occurred_at=date(2024, 3, 5), source_reference="GRN-101"),
        StockTransactionRec(item_code="WIDGET", transaction_type="ISSUE",
                            quantity=Decimal("30"), occurred_at=date(2024, 3, 10), source_reference="ISS-201"),
        StockTransactionRec(item_code="WIDGET", transaction_type="ISSUE",
                            quantity=Decimal("20"), occurred_at=date(2024, 3, 20), source_reference="ISS-202"),
        StockTransactionRec(item_code="BOLT", transaction_type="GRN",
                            quantity=Decimal("10"), occurred_at=date(2024, 3, 1), source_reference="GRN-102"),
        StockTransactionRec(item_code="BOLT", transaction_type="ISSUE",
                            quantity=Decimal("10"), occurred_at=date(2024, 3, 15), source_reference="ISS-203"),
        StockTransactionRec(item_code="NUT", transaction_type="OPENING_STOCK",
                            quantity=Decimal("15"), occurred_at=date(2024, 1, 1), source_reference="OPEN-2"),
        StockSummaryRec(item_code="WIDGET", current_qty=Decimal("100")),
        StockSummaryRec(item_code="BOLT", current_qty=Decimal("5")),
        ReorderPolicyRec(item_code="WIDGET", reorder_level=Decimal("40"), reorder_quantity=Decimal("60")),
        ReorderPolicyRec(item_code="BOLT", reorder_level=Decimal("20"), reorder_quantity=Decimal("40")),
        ReorderPolicyRec(item_code="NUT", reorder_level=Decimal("20"), reorder_quantity=Decimal("40")),
        ReorderPolicyRec(item_code="OLD", reorder_level=Decimal("5"), reorder_quantity=Decimal("5"),
                         is_active=False),
    ])
    db_session.commit()
    return db_session
