"""Role based authorization for controller actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from starlette.requests import Request
from starlette.responses import RedirectResponse

from .cookies import CookieAuthenticationOptions
from .errors import AccessDeniedError, NotAuthenticatedError

F = TypeVar("F", bound=Callable[..., Any])

_POLICY_ATTR = "__authorization_policy__"


@dataclass(frozen=True, slots=True)
class AuthorizationPolicy:
    """Require a signed-in user, optionally in one of ``roles``."""

    roles: tuple[str, ...] = ()

    def evaluate(self, request: Request) -> None:
        user = request.user
        if not user.is_authenticated:
            raise NotAuthenticatedError(request.url.path)
        if self.roles and not any(role in request.auth.scopes for role in self.roles):
            raise AccessDeniedError(request.url.path)


def authorize(*roles: str) -> Callable[[F], F]:
    """Mark a controller class or action as requiring authorization."""

    def decorator(target: F) -> F:
        setattr(target, _POLICY_ATTR, AuthorizationPolicy(tuple(roles)))
        return target

    return decorator


def policy_for(*targets: Any) -> AuthorizationPolicy | None:
    """First policy found on ``targets`` (action first, then controller)."""
    for target in targets:
        policy = getattr(target, _POLICY_ATTR, None)
        if policy is not None:
            return policy
    return None


def _return_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def challenge_handler(options: CookieAuthenticationOptions):
    async def handle(request: Request, exc: NotAuthenticatedError) -> RedirectResponse:
        return RedirectResponse(options.login_redirect(_return_url(request)), status_code=302)

    return handle


def forbid_handler(options: CookieAuthenticationOptions):
    async def handle(request: Request, exc: AccessDeniedError) -> RedirectResponse:
        return RedirectResponse(options.access_denied_redirect(_return_url(request)), status_code=302)

    return handle


__all__ = [
    "AuthorizationPolicy",
    "authorize",
    "challenge_handler",
    "forbid_handler",
    "policy_for",
]
