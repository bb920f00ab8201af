from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import httpx
from fastapi import Cookie, Depends, Header, HTTPException, status
from loguru import logger

from booking_ledger import settings
from booking_ledger.crud import user_crud
from booking_ledger.roles import Capability, Role, capabilities_for, parse_roles
from booking_ledger.tokens import AuthFailure, CredentialBinder, get_credential_binder


@dataclass
class CurrentUser:
    id: int
    email: str
    name: str
    roles: frozenset[Role] = field(default_factory=frozenset)

    @property
    def capabilities(self) -> frozenset[Capability]:
        return capabilities_for(self.roles)


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer ") :].strip() or None
    return None


async def get_current_user(
    authorization: str | None = Header(default=None),
    user_agent: str | None = Header(default=None),
    session_id: str | None = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    binder: CredentialBinder = Depends(get_credential_binder),
) -> CurrentUser | None:
    """
    Resolve the caller from the bearer token + session cookie + User-Agent.

    Never raises: any credential problem leaves the request anonymous (None)
    and the reason is only logged. Endpoints that need a principal depend on
    require_user / require_any_role instead.
    """
    token = _bearer_token(authorization)
    if token is None:
        return None

    result = binder.validate(token, user_agent, session_id)
    if isinstance(result, AuthFailure):
        logger.warning("Token rejected ({}), continuing unauthenticated", result)
        return None

    user = await user_crud.get_by_email(result.subject)
    if user is None or not user.is_active:
        logger.warning(
            "Token subject {!r} unknown or inactive, continuing unauthenticated",
            result.subject,
        )
        return None

    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.name,
        roles=parse_roles(user.roles),
    )


async def require_user(
    current_user: CurrentUser | None = Depends(get_current_user),
) -> CurrentUser:
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return current_user


def require_any_role(*allowed: Role):
    """
    Factory that returns a dependency passing if the caller holds at least one
    of the given roles.

    Usage:
        @router.get("/orders")
        async def route(user = Depends(require_any_role(Role.ADMIN))):
            ...
    """

    async def _dep(current_user: CurrentUser = Depends(require_user)) -> CurrentUser:
        if not current_user.roles.intersection(allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of roles: {', '.join(allowed)}",
            )
        return current_user

    return _dep


def require_capability(capability: Capability):
    """Dependency factory passing if any of the caller's roles grants `capability`."""

    async def _dep(current_user: CurrentUser = Depends(require_user)) -> CurrentUser:
        if capability not in current_user.capabilities:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires capability: {capability}",
            )
        return current_user

    return _dep


# ---------------------------------------------------------------------------
# Pre-built role dependencies
# ---------------------------------------------------------------------------

can_list_orders = require_any_role(Role.ADMIN, Role.RESOURCE_MANAGER)
can_book_resource = require_capability(Capability.BOOK)


# ---------------------------------------------------------------------------
# NotificationsClient: thin async wrapper around notifications-ms
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_notifications_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.notifications_ms_url,
        timeout=httpx.Timeout(5.0),
        follow_redirects=True,
    )


class NotificationsClient:
    """
    Thin async wrapper around the notifications-ms e-mail API.
    notifications-ms renders `template` with the flat `context` and delivers it.
    Fire-and-forget: failures are logged and swallowed so they never roll back
    the order that triggered them.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_notifications_http_client()

    async def send_email(
        self,
        recipient: str,
        subject: str,
        template: str,
        context: dict[str, Any],
        is_html: bool = True,
    ) -> bool:
        try:
            resp = await self._client.post(
                "/notifications/email",
                json={
                    "recipient": recipient,
                    "subject": subject,
                    "template": template,
                    "context": context,
                    "is_html": is_html,
                },
            )
        except httpx.RequestError:
            logger.warning("Email to {} could not be sent", recipient, exc_info=True)
            return False
        if resp.status_code >= 400:
            logger.warning(
                "notifications-ms returned {} for email to {}",
                resp.status_code,
                recipient,
            )
            return False
        return True


_notifications_client = NotificationsClient()


def get_notifications_client() -> NotificationsClient:
    return _notifications_client
