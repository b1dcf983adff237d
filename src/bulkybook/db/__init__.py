"""Database models, session factory and seeding."""

from .db_models import (
    ApplicationUser,
    Base,
    Category,
    Company,
    CoverType,
    IdentityRole,
    Product,
    UserLogin,
    UserRole,
)
from .db_session import Database, build_database, create_db_engine

__all__ = [
    "ApplicationUser",
    "Base",
    "Category",
    "Company",
    "CoverType",
    "Database",
    "IdentityRole",
    "Product",
    "UserLogin",
    "UserRole",
    "build_database",
    "create_db_engine",
]
