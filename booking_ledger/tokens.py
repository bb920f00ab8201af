"""
Session-bound access tokens.

A token is only honoured when it comes back together with the client it was
issued to: the token carries a hash of the client's User-Agent (`ua`) and a
random session id (`sid`) that is also handed out as an HttpOnly cookie.
A stolen bearer token alone therefore does not authenticate.

There is no server-side session store; expiry is the only way a token/cookie
pair stops working.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from booking_ledger import settings


def hash_fingerprint(raw: str | None) -> str:
    """SHA-256 hex digest of a client fingerprint. Missing input hashes to ''."""
    if raw is None:
        return ""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str
    sid: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: str
    issued_at: datetime
    expires_at: datetime
    fingerprint: str
    sid: str


@dataclass(frozen=True, slots=True)
class AuthFailure:
    # Internal only, never returned to the client.
    reasons: tuple[str, ...]

    def __str__(self) -> str:
        return "; ".join(self.reasons)


class CredentialBinder:
    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=30),
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self.ttl = ttl

    def issue(self, email: str, fingerprint_raw: str | None) -> IssuedToken:
        now = datetime.now(tz=UTC)
        expires_at = now + self.ttl
        sid = str(uuid4())
        payload: dict[str, Any] = {
            "sub": email,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "ua": hash_fingerprint(fingerprint_raw),
            "sid": sid,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedToken(token=token, sid=sid, expires_at=expires_at)

    def validate(
        self,
        token: str,
        fingerprint_raw: str | None,
        sid_from_cookie: str | None,
    ) -> TokenClaims | AuthFailure:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except ExpiredSignatureError:
            return AuthFailure(("token expired",))
        except InvalidTokenError as e:
            return AuthFailure((f"invalid token: {e}",))

        reasons: list[str] = []

        subject = str(payload.get("sub") or "")
        if not subject:
            reasons.append("empty subject")

        expected_ua = str(payload.get("ua") or "")
        if not expected_ua:
            reasons.append("token has no fingerprint binding")
        elif expected_ua != hash_fingerprint(fingerprint_raw):
            reasons.append("fingerprint mismatch")

        sid = str(payload.get("sid") or "")
        if not sid:
            reasons.append("token has no session id")
        if not sid_from_cookie:
            reasons.append("session cookie missing")
        elif sid and sid != sid_from_cookie:
            reasons.append("session id mismatch")

        if reasons:
            return AuthFailure(tuple(reasons))

        return TokenClaims(
            subject=subject,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
            fingerprint=expected_ua,
            sid=sid,
        )


_binder = CredentialBinder(
    secret=settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    ttl=timedelta(days=settings.TOKEN_TTL_DAYS),
)


def get_credential_binder() -> CredentialBinder:
    return _binder
