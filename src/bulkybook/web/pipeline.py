"""Request pipeline: middleware order and error handling.

Middleware is listed outermost first, matching the order a request passes
through it:

1. HSTS (outside Development)
2. HTTPS redirection
3. authentication (reads the identity cookie)
4. session

Static files are mounted on the application and routing happens last, once
every middleware has run. Authorization is evaluated by the controller
dispatcher after the route has been selected.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from starlette.authentication import AuthenticationBackend
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..config import AppConfig
from ..identity.authorization import challenge_handler, forbid_handler
from ..identity.cookies import CookieAuthenticationOptions
from ..identity.errors import AccessDeniedError, NotAuthenticatedError
from .middleware import HSTSMiddleware
from .templating import render

logger = structlog.get_logger(__name__)

ERROR_TEMPLATE = "Customer/Home/Error.html"


def build_middleware(config: AppConfig, auth_backend: AuthenticationBackend) -> list[Middleware]:
    development = config.is_development()
    stack: list[Middleware] = []
    if not development:
        stack.append(Middleware(HSTSMiddleware))
    if config.application.https_redirection:
        stack.append(Middleware(HTTPSRedirectMiddleware))
    stack.append(Middleware(AuthenticationMiddleware, backend=auth_backend))
    stack.append(
        Middleware(
            SessionMiddleware,
            secret_key=config.application.secret_key,
            session_cookie=config.session.cookie_name,
            max_age=config.session.idle_timeout_minutes * 60,
            same_site="lax",
            https_only=not development,
        )
    )
    return stack


def install_middleware(app: FastAPI, stack: list[Middleware]) -> None:
    """Add ``stack`` so that its first entry ends up outermost."""
    for item in reversed(stack):
        app.add_middleware(item.cls, *item.args, **item.kwargs)


def install_error_handling(
    app: FastAPI,
    config: AppConfig,
    cookie_options: CookieAuthenticationOptions,
) -> None:
    app.add_exception_handler(NotAuthenticatedError, challenge_handler(cookie_options))
    app.add_exception_handler(AccessDeniedError, forbid_handler(cookie_options))
    if config.is_development():
        return

    async def error_page(request: Request, exc: Exception) -> Response:
        logger.error("request.unhandled_error", path=request.url.path, error=repr(exc))
        return render(
            request,
            ERROR_TEMPLATE,
            {"request_id": request.headers.get("x-request-id")},
            status_code=500,
        )

    app.add_exception_handler(Exception, error_page)


__all__ = ["build_middleware", "install_error_handling", "install_middleware"]
