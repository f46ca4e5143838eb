"""
Pytest configuration and fixtures for backend tests.

The app runs against an in-memory SQLite database (one shared connection),
with change events and rate limiting switched off.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["EVENTS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import httpx
import pytest
from fastapi.testclient import TestClient

from backoffice.main import app
from backoffice.models import (
    Base,
    Branch,
    Partner,
    PartnerSettings,
    PaymentMethod,
    Position,
    PositionBranch,
    PositionPermission,
    Shift,
    User,
    utcnow,
)
from backoffice.services.domain.auth_service import build_access_claims
from shared.infrastructure.db import SessionLocal, engine, get_db
from shared.security.auth import sign_jwt
from shared.security.password import hash_password

OWNER_PASSWORD = "owner-pass-123"
STAFF_PASSWORD = "staff-pass-123"


def headers_for(user: User) -> dict[str, str]:
    """Authorization header carrying the user's current claims."""
    return {"Authorization": f"Bearer {sign_jwt(build_access_claims(user))}"}


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Tables are created before and dropped after every test.
    """
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seed_partner(db_session):
    """Active partner with default settings."""
    partner = Partner(name="Test Pizza", url_suffix="test-pizza", status="active")
    partner.settings = PartnerSettings(next_order_number=100)
    db_session.add(partner)
    db_session.commit()
    db_session.refresh(partner)
    return partner


@pytest.fixture
def other_partner(db_session):
    """A second partner used to check isolation."""
    partner = Partner(name="Other Sushi", url_suffix="other-sushi", status="active")
    partner.settings = PartnerSettings()
    db_session.add(partner)
    db_session.flush()
    db_session.add(Branch(partner_id=partner.id, name="Other Branch"))
    db_session.commit()
    db_session.refresh(partner)
    return partner


@pytest.fixture
def seed_branch(db_session, seed_partner):
    branch = Branch(
        partner_id=seed_partner.id,
        name="Center",
        address="Main St 1",
        phone="+38 (044) 123-45-67",
    )
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def second_branch(db_session, seed_partner):
    branch = Branch(partner_id=seed_partner.id, name="Riverside", address="River Rd 5")
    db_session.add(branch)
    db_session.commit()
    db_session.refresh(branch)
    return branch


@pytest.fixture
def seed_owner(db_session, seed_partner):
    user = User(
        partner_id=seed_partner.id,
        login="owner",
        password_hash=hash_password(OWNER_PASSWORD),
        name="Olena",
        role="OWNER",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def owner_headers(seed_owner):
    return headers_for(seed_owner)


@pytest.fixture
def make_staff(db_session, seed_partner):
    """
    Factory for staff members with a fresh position.

        user = make_staff(sections=["orders"], branch_ids=[branch.id], can_skip_order_status=True)
    """
    counter = {"n": 0}

    def _make(sections=(), branch_ids=(), **flags):
        counter["n"] += 1
        n = counter["n"]
        position = Position(
            partner_id=seed_partner.id,
            name=f"Position {n}",
            can_delete_orders=flags.get("can_delete_orders", False),
            can_revert_order_status=flags.get("can_revert_order_status", False),
            can_skip_order_status=flags.get("can_skip_order_status", False),
        )
        position.permissions = [PositionPermission(section=s) for s in sections]
        position.branches = [PositionBranch(branch_id=b) for b in branch_ids]
        db_session.add(position)
        db_session.flush()

        user = User(
            partner_id=seed_partner.id,
            login=f"staff{n}",
            password_hash=hash_password(STAFF_PASSWORD),
            name=f"Staff {n}",
            role="STAFF",
            position_id=position.id,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def open_shift(db_session, seed_partner, seed_branch, seed_owner):
    shift = Shift(
        partner_id=seed_partner.id,
        branch_id=seed_branch.id,
        status="open",
        opened_at=utcnow(),
        opened_by=seed_owner.id,
    )
    db_session.add(shift)
    db_session.commit()
    db_session.refresh(shift)
    return shift


@pytest.fixture
def cash_method(db_session, seed_partner):
    method = PaymentMethod(partner_id=seed_partner.id, name="Cash", method_type="cash")
    db_session.add(method)
    db_session.commit()
    db_session.refresh(method)
    return method


@pytest.fixture
def cashless_method(db_session, seed_partner):
    method = PaymentMethod(partner_id=seed_partner.id, name="Card online", method_type="cashless")
    db_session.add(method)
    db_session.commit()
    db_session.refresh(method)
    return method


@pytest.fixture
def create_order(client, owner_headers, seed_branch, open_shift):
    """Create an order through the API and return its JSON."""

    def _create(headers=None, **overrides):
        body = {
            "branch_id": seed_branch.id,
            "delivery_type": "delivery",
            "client_name": "Ivan",
            "phone": "050 123 45 67",
            "address_line": "Shevchenka 10",
            "delivery_price_uah": 50,
            "items": [
                {"product_name": "Margherita", "quantity": 2, "base_price": 150},
            ],
        }
        body.update(overrides)
        response = client.post("/api/orders", headers=headers or owner_headers, json=body)
        assert response.status_code == 201, response.json()
        return response.json()

    return _create


class HttpRoutes:
    """
    Canned answers for outgoing httpx calls, keyed by method, host and path.

    A route answers with a response or raises an error; unmatched requests
    get a 404 so a missing route shows up as a failed call.
    """

    def __init__(self):
        self._routes: dict[tuple[str, str, str], dict] = {}

    def add(self, method: str, url: str, response: httpx.Response | None = None, error: Exception | None = None) -> dict:
        target = httpx.URL(url)
        route = {"response": response, "error": error, "calls": []}
        self._routes[(method.upper(), target.host, target.path)] = route
        return route

    def handle(self, request: httpx.Request) -> httpx.Response:
        route = self._routes.get((request.method, request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "no route"})
        route["calls"].append(request)
        if route["error"] is not None:
            raise route["error"]
        return route["response"]


@pytest.fixture
def http_routes(monkeypatch):
    """Route every httpx.AsyncClient through an in-memory transport."""
    routes = HttpRoutes()
    real_client = httpx.AsyncClient

    def client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(routes.handle)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    return routes
