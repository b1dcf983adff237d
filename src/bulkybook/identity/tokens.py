"""Signed tokens for the authentication cookie and account workflows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import jwt
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError

from .errors import InvalidTokenError, TokenExpiredError

AUTH_TICKET = "auth"
EMAIL_CONFIRMATION = "email_confirmation"
PASSWORD_RESET = "password_reset"

_ALGORITHM = "HS256"


def _utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(tz=timezone.utc)


@dataclass(slots=True)
class AuthTicket:
    user_id: str
    email: str
    name: str
    roles: tuple[str, ...]
    issued_at: datetime
    expires_at: datetime


@dataclass(slots=True)
class TokenService:
    """Issue and validate HS256 tokens bound to a purpose."""

    signing_key: str
    ticket_ttl: timedelta = timedelta(days=14)
    purpose_ttl: timedelta = timedelta(days=1)

    def __post_init__(self) -> None:
        if not self.signing_key:
            raise ValueError("token signing key is not configured")

    def issue_ticket(
        self,
        *,
        user_id: str,
        email: str,
        name: str = "",
        roles: Iterable[str] = (),
        now: datetime | None = None,
    ) -> str:
        issued_at = now or _utcnow()
        payload: dict[str, Any] = {
            "sub": user_id,
            "email": email,
            "name": name,
            "roles": sorted(set(roles)),
            "purpose": AUTH_TICKET,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ticket_ttl).timestamp()),
        }
        return jwt.encode(payload, self.signing_key, algorithm=_ALGORITHM)

    def read_ticket(self, token: str) -> AuthTicket:
        payload = self._decode(token, AUTH_TICKET)
        return AuthTicket(
            user_id=payload["sub"],
            email=payload.get("email", ""),
            name=payload.get("name", ""),
            roles=tuple(payload.get("roles", ())),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def issue_purpose_token(
        self,
        purpose: str,
        *,
        user_id: str,
        stamp: str,
        now: datetime | None = None,
    ) -> str:
        """Token usable once per security stamp for ``purpose``."""
        issued_at = now or _utcnow()
        payload = {
            "sub": user_id,
            "purpose": purpose,
            "stamp": stamp,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.purpose_ttl).timestamp()),
        }
        return jwt.encode(payload, self.signing_key, algorithm=_ALGORITHM)

    def read_purpose_token(self, token: str, purpose: str) -> dict[str, Any]:
        return self._decode(token, purpose)

    def _decode(self, token: str, purpose: str) -> dict[str, Any]:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.signing_key,
                algorithms=[_ALGORITHM],
                options={"require": ["exp", "iat", "sub", "purpose"]},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token expired") from exc
        except PyJWTInvalidTokenError as exc:
            raise InvalidTokenError("Invalid token") from exc
        if payload.get("purpose") != purpose:
            raise InvalidTokenError("Token issued for a different purpose")
        return payload


__all__ = [
    "AUTH_TICKET",
    "AuthTicket",
    "EMAIL_CONFIRMATION",
    "PASSWORD_RESET",
    "TokenService",
]
