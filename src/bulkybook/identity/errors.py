"""Identity failures."""

from __future__ import annotations

from ..exceptions import AppError


class IdentityError(AppError):
    """Base class for account and authentication failures."""


class DuplicateUserError(IdentityError):
    """Raised when an account with the same email already exists."""


class InvalidTokenError(IdentityError):
    """Raised when a token cannot be decoded or was issued for another purpose."""


class TokenExpiredError(InvalidTokenError):
    """Raised when token is expired."""


class NotAuthenticatedError(IdentityError):
    """Raised when an anonymous request reaches a protected action."""


class AccessDeniedError(IdentityError):
    """Raised when the signed-in user lacks a required role."""


__all__ = [
    "AccessDeniedError",
    "DuplicateUserError",
    "IdentityError",
    "InvalidTokenError",
    "NotAuthenticatedError",
    "TokenExpiredError",
]
