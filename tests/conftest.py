"""Pytest fixtures for testing"""

import uuid
import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from dataclasses import replace
from typing import Callable, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from negotiation_gateway.api.main import create_app
from negotiation_gateway.api.dependencies import get_code_client, get_wizard_store
from negotiation_gateway.domain.exceptions import CodeServiceError
from negotiation_gateway.domain.models import BillingItem, NegotiationSettings
from negotiation_gateway.infrastructure.database.models import Base, ContributionType, EmployerContribution
from negotiation_gateway.infrastructure.database.session import build_engine, get_db
from negotiation_gateway.services.wizard import WizardStore


# Test database
TEST_DATABASE_URL = "sqlite:///./test_negotiations.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 12:00 in São Paulo, so the business date is unambiguous
FIXED_NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)
AS_OF = date(2025, 3, 10)

CLINIC_ID = "clinic-1"
EMPLOYER_ID = "employer-1"


class FakeCodeClient:
    """Hands out queued codes, then sequential ones"""

    def __init__(self, codes: List[str] | None = None):
        self.codes = list(codes or [])
        self.calls = 0

    async def generate_code(self, clinic_id: str) -> str:
        self.calls += 1
        if self.codes:
            return self.codes.pop(0)
        return f"NEG-AUTO-{self.calls:04d}"


class FailingCodeClient:
    async def generate_code(self, clinic_id: str) -> str:
        raise CodeServiceError("Code service timeout after 5.0s")


def make_item(
    value_cents: int = 10_000,
    days_overdue: int = 60,
    employer_id: str = EMPLOYER_ID,
    status: str = "overdue",
    as_of: date = AS_OF,
    **kwargs,
) -> BillingItem:
    """Billing item due `days_overdue` days before as_of"""
    fields = dict(
        id=str(uuid.uuid4()),
        employer_id=employer_id,
        category_id=str(uuid.uuid4()),
        category_name="Contribuição Sindical",
        competence_month=1,
        competence_year=2025,
        value_cents=value_cents,
        due_date=as_of - timedelta(days=days_overdue),
        status=status,
    )
    fields.update(kwargs)
    return BillingItem(**fields)


@pytest.fixture
def negotiation_settings() -> NegotiationSettings:
    """Default rates (1% / 0.5% / 2%) with a low installment floor"""
    return replace(NegotiationSettings.defaults(), min_installment_cents=1_000)


@pytest.fixture
def strict_settings(negotiation_settings: NegotiationSettings) -> NegotiationSettings:
    return replace(
        negotiation_settings,
        require_down_payment=True,
        min_down_payment_percentage=Decimal("10"),
        allow_partial_selection=False,
    )


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
def seed_contributions(db: Session) -> Callable[..., List[EmployerContribution]]:
    """Insert contributions for an employer; each entry is (value_cents, days_overdue, status)"""

    def _seed(specs, employer_id: str = EMPLOYER_ID, clinic_id: str = CLINIC_ID) -> List[EmployerContribution]:
        contribution_type = ContributionType(clinic_id=clinic_id, name="Contribuição Sindical")
        db.add(contribution_type)
        db.flush()

        rows = []
        for month, (value_cents, days_overdue, status) in enumerate(specs, start=1):
            row = EmployerContribution(
                clinic_id=clinic_id,
                employer_id=employer_id,
                contribution_type_id=contribution_type.id,
                competence_month=month,
                competence_year=2025,
                value=value_cents,
                due_date=AS_OF - timedelta(days=days_overdue),
                status=status,
            )
            db.add(row)
            rows.append(row)
        db.commit()
        return rows

    return _seed


@pytest.fixture
def code_client() -> FakeCodeClient:
    return FakeCodeClient()


@pytest.fixture
def wizard_store() -> WizardStore:
    return WizardStore()


@pytest.fixture
def client(db: Session, code_client: FakeCodeClient, wizard_store: WizardStore) -> TestClient:
    """Create FastAPI test client with test database, fake code generator and fresh sessions"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_code_client] = lambda: code_client
    app.dependency_overrides[get_wizard_store] = lambda: wizard_store
    return TestClient(app)
