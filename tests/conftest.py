"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from payables_gateway.api.main import create_app
from payables_gateway.api.dependencies import get_change_notifier, get_identity_client, get_today
from payables_gateway.domain.exceptions import AuthenticationError
from payables_gateway.domain.models import Principal, TransactionDraft, PAYABLE
from payables_gateway.domain.reconciliation import ReconciliationService
from payables_gateway.infrastructure.database.models import Base
from payables_gateway.infrastructure.database.repositories import SqlRecordStore
from payables_gateway.infrastructure.database.session import build_engine, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2024, 3, 15)

PRINCIPALS = {
    "token-a": Principal(user_id="user-a", tenant_id="tenant-a", role="admin"),
    "token-b": Principal(user_id="user-b", tenant_id="tenant-b", role="user"),
}


class FakeIdentityClient:
    """Resolves the fixed test tokens without HTTP"""

    async def get_principal(self, token: str) -> Principal:
        if token not in PRINCIPALS:
            raise AuthenticationError("Session token rejected")
        return PRINCIPALS[token]


class RecordingNotifier:
    """Collects change events instead of posting them"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def send_change_event(self, payload: Dict[str, Any]) -> None:
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
def store(db: Session) -> SqlRecordStore:
    return SqlRecordStore(db)


@pytest.fixture
def second_store(db: Session) -> Generator[SqlRecordStore, None, None]:
    """Record store on its own session, standing in for a concurrent request"""
    other = TestingSessionLocal()
    try:
        yield SqlRecordStore(other)
    finally:
        other.close()


@pytest.fixture
def change_events() -> List[Dict[str, Any]]:
    return []


@pytest.fixture
def service(store: SqlRecordStore, change_events: List[Dict[str, Any]]) -> ReconciliationService:
    """Reconciliation service that records change hook calls"""

    def on_change(tenant_id: str, event: str, payload: Dict[str, Any]) -> None:
        change_events.append({"tenant_id": tenant_id, "event": event, **payload})

    return ReconciliationService(store, on_change=on_change)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database, fake identity and a fixed date"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_client] = lambda: FakeIdentityClient()
    app.dependency_overrides[get_change_notifier] = lambda: notifier
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def tenant_a_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer token-a"}


@pytest.fixture
def tenant_b_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer token-b"}


@pytest.fixture
def payable_draft() -> TransactionDraft:
    """Supplier invoice of 100.00"""
    return TransactionDraft(
        direction=PAYABLE,
        description="Supplier invoice 1042",
        amount=Decimal("100.00"),
        payment_method="boleto",
    )
