"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files: pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from booking_ledger.deps import get_current_user, get_notifications_client
from booking_ledger.routers import auth, orders, resources

from .factories import make_admin, make_customer, make_manager

# ---------------------------------------------------------------------------
# Default no-op client mocks: prevent real HTTP calls in tests
# ---------------------------------------------------------------------------


def _noop_notifications_client():
    mock = MagicMock()
    mock.send_email = AsyncMock(return_value=True)
    return mock


# ---------------------------------------------------------------------------
# App builder: used by all client fixtures
# ---------------------------------------------------------------------------


def _bare_app() -> FastAPI:
    app = FastAPI()
    app.include_router(auth.router)
    app.include_router(orders.router)
    app.include_router(resources.router)
    return app


def build_app(current_user, notifications_client=None) -> FastAPI:
    """
    Fresh FastAPI app with the identity resolver overridden to return
    `current_user` unconditionally (None = anonymous). Role guards still run.
    """
    app = _bare_app()

    async def _user():
        return current_user

    app.dependency_overrides[get_current_user] = _user

    nc = (
        notifications_client
        if notifications_client is not None
        else _noop_notifications_client()
    )
    app.dependency_overrides[get_notifications_client] = lambda: nc
    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_client():
    return TestClient(build_app(make_customer()), raise_server_exceptions=True)


@pytest.fixture()
def manager_client():
    return TestClient(build_app(make_manager()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_client():
    return TestClient(build_app(None), raise_server_exceptions=True)


@pytest.fixture()
def bare_app():
    """
    App with NO dependency overrides.
    Use this when the real identity resolver should run.
    """
    return _bare_app()


@pytest.fixture()
def client_factory():
    def _make(current_user, notifications_client=None) -> TestClient:
        return TestClient(
            build_app(current_user, notifications_client=notifications_client),
            raise_server_exceptions=True,
        )

    return _make
