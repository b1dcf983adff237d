"""FastAPI dependencies resolving services from the application registry."""

from __future__ import annotations

from typing import Iterator

from fastapi import Depends, Request

from ..identity.cookies import CookieAuthenticationOptions
from ..identity.external import ExternalLoginRegistry
from ..identity.tokens import TokenService
from ..identity.user_manager import UserManager
from ..notifications import EmailSender
from ..services.registry import ServiceRegistry, ServiceScope


def get_services(request: Request) -> ServiceRegistry:
    try:
        return request.app.state.services  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - misconfigured app
        raise RuntimeError("ServiceRegistry is not configured") from exc


def get_scope(services: ServiceRegistry = Depends(get_services)) -> Iterator[ServiceScope]:
    """Per-request scope, disposed once the response has been produced."""
    with services.scope() as scope:
        yield scope


def get_user_manager(scope: ServiceScope = Depends(get_scope)) -> UserManager:
    return scope.resolve(ServiceRegistry.USER_MANAGER)


def get_email_sender(services: ServiceRegistry = Depends(get_services)) -> EmailSender:
    return services.resolve(ServiceRegistry.EMAIL_SENDER)


def get_token_service(services: ServiceRegistry = Depends(get_services)) -> TokenService:
    return services.resolve(ServiceRegistry.TOKEN_SERVICE)


def get_cookie_options(services: ServiceRegistry = Depends(get_services)) -> CookieAuthenticationOptions:
    return services.resolve(ServiceRegistry.COOKIE_OPTIONS)


def get_external_logins(services: ServiceRegistry = Depends(get_services)) -> ExternalLoginRegistry:
    return services.resolve(ServiceRegistry.EXTERNAL_LOGINS)
