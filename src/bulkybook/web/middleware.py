"""HTTP middleware not provided by Starlette."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

HSTS_MAX_AGE_SECONDS = 30 * 24 * 60 * 60
_EXCLUDED_HOSTS = frozenset({"localhost", "127.0.0.1", "[::1]", "::1"})


class HSTSMiddleware(BaseHTTPMiddleware):
    """Add ``Strict-Transport-Security`` to responses served over HTTPS."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_age: int = HSTS_MAX_AGE_SECONDS,
        include_subdomains: bool = False,
        excluded_hosts: frozenset[str] = _EXCLUDED_HOSTS,
    ) -> None:
        super().__init__(app)
        value = f"max-age={max_age}"
        if include_subdomains:
            value += "; includeSubDomains"
        self.header_value = value
        self.excluded_hosts = excluded_hosts

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if request.url.scheme == "https" and request.url.hostname not in self.excluded_hosts:
            response.headers.setdefault("Strict-Transport-Security", self.header_value)
        return response


__all__ = ["HSTS_MAX_AGE_SECONDS", "HSTSMiddleware"]
