import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from scholarship_api.auth import issue_token
from scholarship_api.database import create_db_and_tables, get_session
from scholarship_api.main import app
from scholarship_api.payments import get_payment_gateway


class FakeGateway:
    """Records payment intent requests instead of calling the provider."""

    def __init__(self, secret="pi_123_secret_abc"):
        self.secret = secret
        self.calls = []

    def create_intent(self, amount, currency):
        self.calls.append({"amount": amount, "currency": currency})
        return self.secret


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(engine, gateway):
    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build bearer headers for an email."""
    def _headers(email="a@x.com"):
        return {"Authorization": f"Bearer {issue_token({'email': email})}"}
    return _headers
