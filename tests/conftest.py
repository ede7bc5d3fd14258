"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finsight.api.dependencies import get_engine
from finsight.api.main import create_app
from finsight.domain.engine import ReasoningEngine
from finsight.infrastructure.database.models import (
    Base,
    BudgetRecord,
    LoanRecord,
    Partnership,
    SavingsGoalRecord,
    TransactionRecord,
)
from finsight.infrastructure.database.repositories import SqlRecordStore
from tests.factories import AS_OF, OWNER, PARTNER, InMemoryRecordStore, budget, debt, expense, goal, income


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """Two months of records for OWNER plus a linked partner"""
    rows = [
        TransactionRecord(id="t1", owner_id=OWNER, kind="income", amount=4000, category="Salary",
                          description="Payroll", occurred_at=date(2024, 3, 1)),
        TransactionRecord(id="t2", owner_id=OWNER, kind="expense", amount=120.50, category="Groceries",
                          description="Market", occurred_at=date(2024, 3, 5)),
        TransactionRecord(id="t3", owner_id=OWNER, kind="expense", amount=60, category="Dining",
                          description="Bistro", occurred_at=date(2024, 3, 9)),
        TransactionRecord(id="t4", owner_id=OWNER, kind="expense", amount=1500, category="Rent",
                          description="Landlord", occurred_at=date(2024, 3, 2)),
        TransactionRecord(id="t5", owner_id=OWNER, kind="expense", amount=100, category="Groceries",
                          description="Market", occurred_at=date(2024, 2, 7)),
        TransactionRecord(id="t6", owner_id=PARTNER, kind="expense", amount=300, category="Shopping",
                          description="Mall", occurred_at=date(2024, 3, 6)),
        LoanRecord(id="l1", owner_id=OWNER, direction="received", principal=12000, remaining_balance=10000,
                   interest_rate_annual=6.0, installment_amount=300, installment_frequency="monthly",
                   due_date=date(2024, 4, 1), description="Car loan"),
        BudgetRecord(id="b1", owner_id=OWNER, category="Groceries", period="monthly", period_amount=100,
                     spent_amount=120.50),
        SavingsGoalRecord(id="g1", owner_id=OWNER, name="Vacation", target_amount=2000, current_amount=500),
        Partnership(owner_id=OWNER, partner_id=PARTNER),
    ]
    db.add_all(rows)
    db.commit()
    return db


@pytest.fixture
def client(seeded_db: Session) -> TestClient:
    """Create FastAPI test client backed by the seeded test database and a fixed clock"""
    app = create_app()

    def override_get_engine():
        return ReasoningEngine(SqlRecordStore(seeded_db), clock=lambda: AS_OF)

    app.dependency_overrides[get_engine] = override_get_engine
    return TestClient(app)


@pytest.fixture
def offline_client() -> TestClient:
    """Test client whose record store is unreachable"""
    app = create_app()
    app.dependency_overrides[get_engine] = lambda: ReasoningEngine(InMemoryRecordStore(fail=True), clock=lambda: AS_OF)
    return TestClient(app)


@pytest.fixture
def household_store() -> InMemoryRecordStore:
    """Three months of varied records for one owner"""
    return InMemoryRecordStore(
        transactions=[
            income("i1", 4000, date(2024, 1, 1)),
            income("i2", 4000, date(2024, 2, 1)),
            income("i3", 4000, date(2024, 3, 1)),
            expense("e1", 1500, "Rent", date(2024, 1, 2), "Landlord"),
            expense("e2", 1500, "Rent", date(2024, 2, 2), "Landlord"),
            expense("e3", 1500, "Rent", date(2024, 3, 2), "Landlord"),
            expense("e4", 400, "Groceries", date(2024, 1, 10), "Market"),
            expense("e5", 450, "Groceries", date(2024, 2, 10), "Market"),
            expense("e6", 300, "Groceries", date(2024, 3, 10), "Market"),
            expense("e7", 80, "Dining", date(2024, 3, 12), "Bistro"),
            expense("e8", 200, "Dining", date(2024, 2, 14), "Steakhouse"),
            expense("e9", 15.99, "Entertainment", date(2024, 1, 15), "Streamflix"),
            expense("e10", 15.99, "Entertainment", date(2024, 2, 15), "Streamflix"),
            expense("e11", 15.99, "Entertainment", date(2024, 3, 15), "Streamflix"),
            expense("e12", 120, "Health", date(2024, 2, 20), "Pharmacy"),
            expense("p1", 250, "Shopping", date(2024, 3, 8), "Mall", owner=PARTNER),
        ],
        loans=[
            debt("l1", 10000, rate=6.0, installment=300, due=date(2024, 4, 1), principal=12000, description="Car loan"),
            debt("l2", 1500, rate=19.9, installment=75, due=date(2024, 3, 28), description="Credit card"),
        ],
        budgets=[budget("b1", "Groceries", 250, 300), budget("b2", "Dining", 150, 80)],
        goals=[goal("g1", 5000, 2500, "Emergency"), goal("g2", 3000, 600, "Vacation", date(2024, 12, 31))],
        partners={OWNER: PARTNER, PARTNER: OWNER},
    )


@pytest.fixture
def reasoning_engine(household_store: InMemoryRecordStore) -> ReasoningEngine:
    return ReasoningEngine(household_store, clock=lambda: AS_OF)
