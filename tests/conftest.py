"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from cepa_fees.api.main import create_app
from cepa_fees.api.dependencies import get_revenue_client
from cepa_fees.infrastructure.database.models import Base, FeeStructure
from cepa_fees.infrastructure.database.session import get_db
from cepa_fees.domain.models import FeeStructureRecord


# Test database
TEST_DATABASE_URL = "sqlite:///./test_fees.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingRevenueClient:
    """Revenue client stand-in that records events instead of posting them"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def send_invoice_event(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)


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
def revenue_client() -> RecordingRevenueClient:
    return RecordingRevenueClient()


@pytest.fixture
def client(db: Session, revenue_client: RecordingRevenueClient) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_revenue_client] = lambda: revenue_client
    return TestClient(app)


@pytest.fixture
def environment_permit_structure() -> FeeStructureRecord:
    """Fee structure for a new Level 1 Environment Permit"""
    return FeeStructureRecord(
        permit_type="Environment Permit",
        fee_category="Green Category",
        activity_type="new",
        annual_recurrent_fee=Decimal("36500"),
        work_plan_amount=Decimal("15500"),
        category_multiplier=Decimal("1.0"),
        base_processing_days=30,
        administration_form="Form 2",
        technical_form="Form 9",
    )


@pytest.fixture
def seeded_fee_structures(db: Session) -> List[FeeStructure]:
    """Active and inactive fee_structures rows"""
    rows = [
        FeeStructure(
            permit_type="Environment Permit",
            activity_type="new",
            fee_category="Green Category",
            annual_recurrent_fee=Decimal("36500.00"),
            work_plan_amount=Decimal("15500.00"),
            category_multiplier=Decimal("1.000"),
            base_processing_days=30,
            administration_form="Form 2",
            technical_form="Form 9",
        ),
        FeeStructure(
            permit_type="Environment Permit",
            activity_type="new",
            fee_category="Red Category",
            annual_recurrent_fee=Decimal("73000.00"),
            work_plan_amount=Decimal("40000.00"),
            category_multiplier=Decimal("1.500"),
            base_processing_days=90,
            administration_form="Form 2",
            technical_form="Form 9",
        ),
        FeeStructure(
            permit_type="Water Permit",
            activity_type="renewal",
            fee_category="Green Category",
            annual_recurrent_fee=Decimal("18250.00"),
            work_plan_amount=Decimal("5000.00"),
            category_multiplier=Decimal("1.000"),
            base_processing_days=21,
            administration_form="Form 2",
            technical_form="Form 10",
            is_active=False,
        ),
    ]
    db.add_all(rows)
    db.commit()
    return rows
