"""
tests/conftest.py -- Shared test fixtures for StaffDesk integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for principals + org
  - _patch_lifespan(): wires test services into app.state, bypassing real startup
  - api_client: TestClient over the real app with fresh, empty stores
  - register / token_for: helpers that create principals and tokens directly
    through the services on app.state (no HTTP round trip)

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
Each client gets a uniquely named database so tests never see each other's
rows, and setup mode (no admin yet) is the starting state of every test.

SECRET_KEY, BCRYPT_ROUNDS and ALLOWED_HOSTS must be set before any api/ or
core/ import: api/main.py reads settings at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: configure the environment before importing the app.
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ALLOWED_HOSTS"] = '["*"]'

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Principal, PrincipalKind
from auth.registration import Registrar
from auth.store import PrincipalStore
from auth.tokens import PasswordHasher, TokenIssuer
from org.store import OrgStore

TEST_SECRET = os.environ["SECRET_KEY"]

# ---------------------------------------------------------------------------
# Sample payloads (camelCase, as sent over the wire)
# ---------------------------------------------------------------------------


def employee_payload(**overrides) -> dict:
    body = {
        "fullName": "Ali Raza",
        "fatherName": "Raza Khan",
        "email": "ali@example.com",
        "mobileNo": "03001234567",
        "cnic": "1234567890123",
        "dob": "1995-05-01",
        "gender": "Male",
        "address": "House 1, Street 2, Lahore",
        "cityId": "1",
        "branchId": "1",
        "departmentId": "1",
        "role": "staff",
        "password": "staffpass123",
    }
    body.update(overrides)
    return body


def seeker_payload(**overrides) -> dict:
    body = {
        "fullName": "Sana Malik",
        "mobileNo": "03111234567",
        "cnic": "35202-1234567-1",
        "gender": "Female",
        "address": "Flat 4, Gulberg, Lahore",
        "cityId": "1",
        "branchId": "1",
        "departmentId": "2",
    }
    body.update(overrides)
    return body


def user_payload(**overrides) -> dict:
    body = {
        "fullName": "Bilal Ahmed",
        "fatherName": "Ahmed Ali",
        "email": "bilal@example.com",
        "mobileNo": "03211234567",
        "cnic": "4210112345671",
        "dob": "1992-11-20",
        "gender": "male",
        "address": "12 Clifton, Karachi",
        "cityId": "2",
        "password": "userpass123",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[PrincipalStore, OrgStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB names so no two clients
                   share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    org_url = f"sqlite:///file:test_org_{db_suffix}?mode=memory&cache=shared&uri=true"
    return PrincipalStore(db_url=auth_url), OrgStore(db_url=org_url)


def _patch_lifespan(principal_store: PrincipalStore, org_store: OrgStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        hasher = PasswordHasher(rounds=4)
        app.state.principal_store = principal_store
        app.state.org_store = org_store
        app.state.password_hasher = hasher
        app.state.token_issuer = TokenIssuer(TEST_SECRET, expire_seconds=3600)
        app.state.registrar = Registrar(principal_store, hasher)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with empty, isolated stores."""
    principal_store, org_store = _make_test_stores(uuid.uuid4().hex)
    app.router.lifespan_context = _patch_lifespan(principal_store, org_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    principal_store.close()
    org_store.close()


@pytest.fixture
def register(api_client: TestClient) -> Callable[..., Principal]:
    """Return register(kind, payload) -> stored Principal, bypassing HTTP and gates."""

    def _register(kind: PrincipalKind, payload: dict) -> Principal:
        return api_client.app.state.registrar.register(kind, payload)

    return _register


@pytest.fixture
def token_for(api_client: TestClient) -> Callable[[Principal], dict]:
    """Return token_for(principal) -> Authorization headers for that principal."""

    def _headers(principal: Principal) -> dict:
        token = api_client.app.state.token_issuer.issue(principal)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(register, token_for) -> dict:
    """Register an employee admin (closing setup mode) and return its headers."""
    admin = register(
        PrincipalKind.employee,
        employee_payload(
            fullName="Admin One",
            email="admin@example.com",
            cnic="9999999999999",
            mobileNo="03009999999",
            role="admin",
            password="adminpass123",
        ),
    )
    return token_for(admin)


@pytest.fixture
def store() -> Generator[PrincipalStore, None, None]:
    """In-memory PrincipalStore for unit tests on a single thread."""
    s = PrincipalStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)
