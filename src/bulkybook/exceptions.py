"""Application level exceptions and helpers for persistence layers."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import exc as sa_exc

__all__ = [
    "AppError",
    "ConfigurationError",
    "RepositoryError",
    "NotFoundError",
    "IntegrityConstraintViolation",
    "DatabaseOperationError",
    "EmailDeliveryError",
    "ExternalLoginError",
    "ensure_found",
    "handle_sqlalchemy_errors",
]


class AppError(Exception):
    """Base class for application specific errors."""


class ConfigurationError(AppError):
    """Raised when a required configuration value is missing or invalid."""


class RepositoryError(AppError):
    """Base class for persistence layer failures."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""


class IntegrityConstraintViolation(RepositoryError):
    """Raised when a database constraint is violated."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


class EmailDeliveryError(AppError):
    """Raised when an email sender cannot hand a message to its backend."""


class ExternalLoginError(AppError):
    """Raised when an external OAuth login cannot be completed."""


@dataclass(slots=True)
class _EntityContext:
    """Internal helper describing the entity for error messages."""

    entity: str | None = None

    def format(self, message: str) -> str:
        if self.entity:
            return f"{self.entity}: {message}"
        return message


def ensure_found(record: object | None, *, entity: str, identifier: object) -> object:
    """Ensure a record exists, otherwise raise :class:`NotFoundError`."""

    if record is None:
        raise NotFoundError(f"{entity} '{identifier}' not found")
    return record


def _translate_sqlalchemy_error(exc: Exception, *, context: _EntityContext) -> RepositoryError:
    if isinstance(exc, sa_exc.IntegrityError):
        return IntegrityConstraintViolation(context.format("integrity constraint violated"))
    if isinstance(exc, sa_exc.DBAPIError):
        return DatabaseOperationError(context.format("database operation failed"))
    return RepositoryError(context.format(str(exc)))


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into domain specific ones."""

    context = _EntityContext(entity)
    try:
        yield
    except (sa_exc.IntegrityError, sa_exc.DBAPIError) as exc:
        raise _translate_sqlalchemy_error(exc, context=context) from exc
