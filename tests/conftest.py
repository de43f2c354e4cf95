"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from installment_gateway.api.main import create_app
from installment_gateway.infrastructure.database.models import Base
from installment_gateway.infrastructure.database.session import build_engine, get_db
from installment_gateway.domain.installments import create_plan
from installment_gateway.domain.models import CustomerInfo, InstallmentUnit, Plan


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

NOW = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)

STAFF_HEADERS = {"X-User-Id": "manager-1", "X-User-Role": "manager"}
ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


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
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def customer() -> CustomerInfo:
    return CustomerInfo(
        customer_id="CUST-001",
        name="Ayesha Khan",
        email="ayesha@example.com",
        phone="+92-300-0000000",
        address="House 12, Street 4",
    )


@pytest.fixture
def flat_plan(customer: CustomerInfo) -> Plan:
    """5 installments of 1000, no advance, all due in the future relative to NOW"""
    return create_plan(
        customer=customer,
        product_name="Refrigerator",
        total_amount=5000,
        installment_count=5,
        installment_unit=InstallmentUnit.MONTHS,
        start_date=date(2025, 3, 1),
        due_day=10,
    )


def plan_balance(plan: Plan) -> int:
    """advance + collected + still scheduled; equals the plan total while the ledger is closed"""
    return plan.advance_amount + sum(
        (inst.actual_paid_amount or 0) if inst.is_paid else inst.amount
        for inst in plan.installments
    )


def amounts(plan: Plan) -> list[int]:
    return [inst.amount for inst in plan.installments]


def plan_request(**overrides) -> dict:
    """Plan creation body in the client's camelCase shape"""
    body = {
        "customerId": "CUST-001",
        "name": "Ayesha Khan",
        "email": "ayesha@example.com",
        "phone": "+92-300-0000000",
        "address": "House 12, Street 4",
        "productName": "Washing Machine",
        "productDescription": "Front load, 8kg",
        "totalAmount": 100000,
        "advanceAmount": 10000,
        "installmentCount": 3,
        "installmentUnit": "months",
        "monthlyInstallment": 30000,
        "startDate": (date.today() + timedelta(days=1)).isoformat(),
        "dueDate": 5,
    }
    body.update(overrides)
    return body
