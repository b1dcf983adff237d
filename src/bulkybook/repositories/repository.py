"""Generic repository over a SQLAlchemy session."""

from __future__ import annotations

from typing import Any, Generic, Iterable, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..db.db_models import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """Basic query/add/remove operations shared by entity repositories.

    Writes are staged on the session; the owning unit of work commits them.
    """

    model: Type[ModelT]

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_all(
        self,
        *criteria: Any,
        include: Iterable[str] = (),
        order_by: Any | None = None,
    ) -> Sequence[ModelT]:
        stmt = self._select(criteria, include)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list(self._session.scalars(stmt).all())

    def get_first_or_default(self, *criteria: Any, include: Iterable[str] = ()) -> ModelT | None:
        stmt = self._select(criteria, include).limit(1)
        return self._session.scalars(stmt).first()

    def get(self, identifier: Any) -> ModelT | None:
        return self._session.get(self.model, identifier)

    def add(self, entity: ModelT) -> ModelT:
        self._session.add(entity)
        return entity

    def remove(self, entity: ModelT) -> None:
        self._session.delete(entity)

    def remove_range(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            self._session.delete(entity)

    def count(self) -> int:
        return self._session.scalar(select(func.count()).select_from(self.model)) or 0

    def _select(self, criteria: tuple, include: Iterable[str]):
        stmt = select(self.model)
        for clause in criteria:
            stmt = stmt.where(clause)
        for relation in include:
            stmt = stmt.options(selectinload(getattr(self.model, relation)))
        return stmt
