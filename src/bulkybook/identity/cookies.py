"""Authentication cookie settings and sign-in/sign-out helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable
from urllib.parse import urlencode

from starlette.responses import Response

from .tokens import TokenService

LOGIN_PATH = "/Identity/Account/Login"
LOGOUT_PATH = "/Identity/Account/Logout"
ACCESS_DENIED_PATH = "/Identity/Account/AccessDenied"


@dataclass(frozen=True, slots=True)
class CookieAuthenticationOptions:
    cookie_name: str = ".BulkyBook.Identity"
    login_path: str = LOGIN_PATH
    logout_path: str = LOGOUT_PATH
    access_denied_path: str = ACCESS_DENIED_PATH
    return_url_parameter: str = "ReturnUrl"
    expire: timedelta = timedelta(days=14)
    secure: bool = True

    def login_redirect(self, return_url: str) -> str:
        return f"{self.login_path}?{urlencode({self.return_url_parameter: return_url})}"

    def access_denied_redirect(self, return_url: str) -> str:
        return f"{self.access_denied_path}?{urlencode({self.return_url_parameter: return_url})}"


def sign_in(
    response: Response,
    *,
    tokens: TokenService,
    options: CookieAuthenticationOptions,
    user_id: str,
    email: str,
    name: str,
    roles: Iterable[str],
) -> None:
    ticket = tokens.issue_ticket(user_id=user_id, email=email, name=name, roles=roles)
    response.set_cookie(
        options.cookie_name,
        ticket,
        max_age=int(options.expire.total_seconds()),
        path="/",
        httponly=True,
        secure=options.secure,
        samesite="lax",
    )


def sign_out(response: Response, *, options: CookieAuthenticationOptions) -> None:
    response.delete_cookie(options.cookie_name, path="/")


def is_local_url(url: str | None) -> bool:
    """Only same-site absolute paths are accepted as return URLs."""
    return bool(url) and url.startswith("/") and not url.startswith("//") and not url.startswith("/\\")


__all__ = [
    "ACCESS_DENIED_PATH",
    "CookieAuthenticationOptions",
    "LOGIN_PATH",
    "LOGOUT_PATH",
    "is_local_url",
    "sign_in",
    "sign_out",
]
