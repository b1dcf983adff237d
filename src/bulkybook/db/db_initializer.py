"""Database initialization and seeding."""

from __future__ import annotations

from typing import Protocol

import structlog
from sqlalchemy.engine import Engine

from ..config import AdminConfig
from ..identity.roles import ALL_ROLES, ROLE_ADMIN
from ..identity.user_manager import UserManager
from ..repositories.unit_of_work import SqlAlchemyUnitOfWork
from .db_models import Base, Category, CoverType

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES = (
    ("Action", 1),
    ("SciFi", 2),
    ("History", 3),
)

DEFAULT_COVER_TYPES = ("Hardcover", "Paperback", "Audio CD")


class DbInitializer(Protocol):
    """Seeding abstraction invoked once at startup."""

    def initialize(self) -> None:
        raise NotImplementedError


class SqlAlchemyDbInitializer(DbInitializer):
    """Create the schema, roles, the admin account and reference data."""

    def __init__(
        self,
        *,
        engine: Engine,
        uow: SqlAlchemyUnitOfWork,
        user_manager: UserManager,
        admin: AdminConfig,
    ) -> None:
        self._engine = engine
        self._uow = uow
        self._user_manager = user_manager
        self._admin = admin

    def initialize(self) -> None:
        Base.metadata.create_all(self._engine)
        self._seed_roles_and_admin()
        self._seed_reference_data()

    def _seed_roles_and_admin(self) -> None:
        if self._user_manager.role_exists(ROLE_ADMIN):
            return
        for role in ALL_ROLES:
            self._user_manager.create_role(role)

        admin = self._admin
        user = self._user_manager.create(
            email=admin.email,
            password=admin.password,
            name=admin.name,
            phone_number=admin.phone_number,
            street_address=admin.street_address,
            city=admin.city,
            state=admin.state,
            postal_code=admin.postal_code,
            email_confirmed=True,
        )
        self._user_manager.add_to_role(user, ROLE_ADMIN)
        logger.info("db.seed.admin_created", email=admin.email, roles=list(ALL_ROLES))

    def _seed_reference_data(self) -> None:
        added = False
        if not self._uow.category.count():
            for name, order in DEFAULT_CATEGORIES:
                self._uow.category.add(Category(name=name, display_order=order))
            added = True
        if not self._uow.cover_type.count():
            for name in DEFAULT_COVER_TYPES:
                self._uow.cover_type.add(CoverType(name=name))
            added = True
        if added:
            self._uow.save()
            logger.info("db.seed.reference_data_created")


__all__ = ["DbInitializer", "SqlAlchemyDbInitializer"]
