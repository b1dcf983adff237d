"""Transactional boundary shared by request handlers and the seeder."""

from __future__ import annotations

from typing import Callable, Protocol

from sqlalchemy.orm import Session

from ..exceptions import handle_sqlalchemy_errors
from .catalog import (
    ApplicationUserRepository,
    CategoryRepository,
    CompanyRepository,
    CoverTypeRepository,
    ProductRepository,
)


class UnitOfWork(Protocol):
    """Represents an atomic transactional boundary."""

    category: CategoryRepository
    cover_type: CoverTypeRepository
    company: CompanyRepository
    product: ProductRepository
    application_user: ApplicationUserRepository

    def save(self) -> None:
        """Commit staged changes."""

        raise NotImplementedError

    def rollback(self) -> None:
        """Discard staged changes."""

        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying connection."""

        raise NotImplementedError


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Unit of work owning one SQLAlchemy session for its lifetime."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session = session_factory()
        self.category = CategoryRepository(self._session)
        self.cover_type = CoverTypeRepository(self._session)
        self.company = CompanyRepository(self._session)
        self.product = ProductRepository(self._session)
        self.application_user = ApplicationUserRepository(self._session)
        self._closed = False

    @property
    def session(self) -> Session:
        return self._session

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object,
    ) -> None:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.close()

    def save(self) -> None:
        if self._closed:
            raise RuntimeError("unit of work is closed")
        try:
            with handle_sqlalchemy_errors():
                self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def rollback(self) -> None:
        if self._closed:
            return
        self._session.rollback()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._session.close()

    @property
    def closed(self) -> bool:
        return self._closed


__all__ = ["SqlAlchemyUnitOfWork", "UnitOfWork"]
