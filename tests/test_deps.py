"""
Tests for booking_ledger/deps.py: get_current_user, require_user, require_any_role,
NotificationsClient.
These tests use the real identity resolver (no overrides) to get coverage.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from booking_ledger import settings
from booking_ledger.deps import (
    CurrentUser,
    NotificationsClient,
    get_current_user,
    get_notifications_client,
)
from booking_ledger.roles import Capability, Role
from booking_ledger.tokens import get_credential_binder

from .factories import USER_AGENT, book_payload, make_customer, user_record

USER_CRUD_PATH = "booking_ledger.deps.user_crud"
ORDER_CRUD_PATH = "booking_ledger.routers.orders.order_crud"
RESOURCE_CRUD_PATH = "booking_ledger.routers.resources.resource_crud"


def _authed_client(bare_app, token: str | None, sid: str | None, user_agent=USER_AGENT):
    headers = {"User-Agent": user_agent}
    if token is not None:
        headers["Authorization"] = f"Bearer {token}"
    client = TestClient(bare_app, headers=headers)
    if sid is not None:
        client.cookies.set(settings.SESSION_COOKIE_NAME, sid)
    return client


class TestGetCurrentUser:
    def test_valid_token_and_cookie_authenticate(self, bare_app):
        issued = get_credential_binder().issue("customer1@example.com", USER_AGENT)
        with (
            patch(USER_CRUD_PATH) as mock_users,
            patch(ORDER_CRUD_PATH) as mock_orders,
        ):
            mock_users.get_by_email = AsyncMock(return_value=user_record())
            mock_orders.list_for_user = AsyncMock(return_value=[])
            with _authed_client(bare_app, issued.token, issued.sid) as c:
                resp = c.get("/orders/me")
        assert resp.status_code == 200
        mock_users.get_by_email.assert_awaited_once_with("customer1@example.com")

    def test_no_credentials_is_anonymous_401(self, bare_app):
        with _authed_client(bare_app, None, None) as c:
            resp = c.get("/orders/me")
        assert resp.status_code == 401

    def test_missing_cookie_degrades_to_anonymous(self, bare_app):
        issued = get_credential_binder().issue("customer1@example.com", USER_AGENT)
        with patch(USER_CRUD_PATH) as mock_users:
            mock_users.get_by_email = AsyncMock(return_value=user_record())
            with _authed_client(bare_app, issued.token, None) as c:
                resp = c.get("/orders/me")
        assert resp.status_code == 401
        mock_users.get_by_email.assert_not_called()

    def test_other_browser_degrades_to_anonymous(self, bare_app):
        issued = get_credential_binder().issue("customer1@example.com", USER_AGENT)
        with patch(USER_CRUD_PATH) as mock_users:
            mock_users.get_by_email = AsyncMock(return_value=user_record())
            with _authed_client(
                bare_app, issued.token, issued.sid, user_agent="curl/8.0"
            ) as c:
                resp = c.get("/orders/me")
        assert resp.status_code == 401

    def test_failure_reason_not_exposed(self, bare_app):
        issued = get_credential_binder().issue("customer1@example.com", USER_AGENT)
        with _authed_client(bare_app, issued.token, "wrong-sid") as c:
            resp = c.get("/orders/me")
        assert resp.json() == {"detail": "Authentication required"}

    def test_unknown_user_degrades_to_anonymous(self, bare_app):
        issued = get_credential_binder().issue("ghost@example.com", USER_AGENT)
        with patch(USER_CRUD_PATH) as mock_users:
            mock_users.get_by_email = AsyncMock(return_value=None)
            with _authed_client(bare_app, issued.token, issued.sid) as c:
                resp = c.get("/orders/me")
        assert resp.status_code == 401

    def test_inactive_user_degrades_to_anonymous(self, bare_app):
        issued = get_credential_binder().issue("customer1@example.com", USER_AGENT)
        with patch(USER_CRUD_PATH) as mock_users:
            mock_users.get_by_email = AsyncMock(
                return_value=user_record(is_active=False)
            )
            with _authed_client(bare_app, issued.token, issued.sid) as c:
                resp = c.get("/orders/me")
        assert resp.status_code == 401

    def test_roles_loaded_from_store(self, bare_app):
        issued = get_credential_binder().issue("boss@example.com", USER_AGENT)
        captured = {}

        async def _capture(user=Depends(get_current_user)):
            captured["user"] = user
            return {"id": user.id}

        bare_app.get("/whoami")(_capture)
        with patch(USER_CRUD_PATH) as mock_users:
            mock_users.get_by_email = AsyncMock(
                return_value=user_record(
                    id=7, email="boss@example.com", roles=["admin", "resource_manager"]
                )
            )
            with _authed_client(bare_app, issued.token, issued.sid) as c:
                c.get("/whoami")
        user = captured["user"]
        assert user.id == 7
        assert user.roles == {Role.ADMIN, Role.RESOURCE_MANAGER}


class TestRequireAnyRole:
    def test_customer_cannot_list_orders(self, customer_client):
        resp = customer_client.get("/orders/")
        assert resp.status_code == 403

    def test_anonymous_cannot_list_orders(self, anon_client):
        resp = anon_client.get("/orders/")
        assert resp.status_code == 401

    def test_manager_cannot_book(self, manager_client):
        resp = manager_client.post(
            "/resources/101/book",
            json={"date": "2026-06-01", "start_time": "10:00", "end_time": "10:30"},
        )
        assert resp.status_code == 403


class TestRequireCapability:
    def test_role_without_booking_capability_forbidden(self, client_factory):
        client = client_factory(make_customer(roles=set()))
        resp = client.post("/resources/101/book", json=book_payload())
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Requires capability: resources:book"

    def test_capability_granted_by_any_role(self, client_factory):
        client = client_factory(
            make_customer(roles={Role.RESOURCE_MANAGER, Role.CUSTOMER})
        )
        with patch(RESOURCE_CRUD_PATH) as mock_resources:
            mock_resources.get_resource = AsyncMock(return_value=None)
            resp = client.post("/resources/101/book", json=book_payload())
        # Past the guard: the missing resource is reported, not the role
        assert resp.status_code == 404


class TestCurrentUser:
    def test_capabilities_follow_roles(self):
        user = CurrentUser(id=1, email="a@b.c", name="a", roles=frozenset({Role.ADMIN}))
        assert Capability.ORDERS_ALL in user.capabilities

    def test_customer_has_no_order_listing_capability(self):
        caps = make_customer().capabilities
        assert Capability.ORDERS_ALL not in caps
        assert Capability.ORDERS_MANAGED not in caps


class TestNotificationsClient:
    def test_returns_module_singleton(self):
        assert get_notifications_client() is get_notifications_client()
        assert isinstance(get_notifications_client(), NotificationsClient)

    @pytest.mark.asyncio
    async def test_send_email_success(self):
        client = NotificationsClient()
        http = MagicMock()
        http.post = AsyncMock(return_value=httpx.Response(202))
        with patch.object(NotificationsClient, "_client", http):
            ok = await client.send_email("a@b.c", "Hi", "booking-confirmation", {"k": "v"})
        assert ok is True
        body = http.post.call_args.kwargs["json"]
        assert body["recipient"] == "a@b.c"
        assert body["context"] == {"k": "v"}
        assert body["is_html"] is True

    @pytest.mark.asyncio
    async def test_send_email_upstream_error_swallowed(self):
        client = NotificationsClient()
        http = MagicMock()
        http.post = AsyncMock(return_value=httpx.Response(500))
        with patch.object(NotificationsClient, "_client", http):
            assert await client.send_email("a@b.c", "Hi", "t", {}) is False

    @pytest.mark.asyncio
    async def test_send_email_network_error_swallowed(self):
        client = NotificationsClient()
        http = MagicMock()
        http.post = AsyncMock(side_effect=httpx.ConnectError("down"))
        with patch.object(NotificationsClient, "_client", http):
            assert await client.send_email("a@b.c", "Hi", "t", {}) is False
