"""Cookie authentication backend for Starlette's AuthenticationMiddleware."""

from __future__ import annotations

import structlog
from starlette.authentication import AuthCredentials, AuthenticationBackend, BaseUser
from starlette.requests import HTTPConnection

from .cookies import CookieAuthenticationOptions
from .errors import InvalidTokenError
from .tokens import AuthTicket, TokenService

logger = structlog.get_logger(__name__)

AUTHENTICATED = "authenticated"


class AuthenticatedUser(BaseUser):
    def __init__(self, ticket: AuthTicket) -> None:
        self.ticket = ticket

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self.ticket.name or self.ticket.email

    @property
    def identity(self) -> str:
        return self.ticket.user_id

    @property
    def email(self) -> str:
        return self.ticket.email

    @property
    def roles(self) -> tuple[str, ...]:
        return self.ticket.roles

    def is_in_role(self, role: str) -> bool:
        return role.lower() in {r.lower() for r in self.ticket.roles}


class CookieAuthBackend(AuthenticationBackend):
    """Read the signed authentication ticket from the identity cookie."""

    def __init__(self, tokens: TokenService, options: CookieAuthenticationOptions) -> None:
        self._tokens = tokens
        self._options = options

    async def authenticate(self, conn: HTTPConnection) -> tuple[AuthCredentials, BaseUser] | None:
        token = conn.cookies.get(self._options.cookie_name)
        if not token:
            return None
        try:
            ticket = self._tokens.read_ticket(token)
        except InvalidTokenError as exc:
            logger.info("auth.cookie.rejected", reason=str(exc), path=conn.url.path)
            return None
        scopes = [AUTHENTICATED, *ticket.roles]
        return AuthCredentials(scopes), AuthenticatedUser(ticket)


__all__ = ["AUTHENTICATED", "AuthenticatedUser", "CookieAuthBackend"]
