"""Repositories and the unit of work."""

from .catalog import (
    ApplicationUserRepository,
    CategoryRepository,
    CompanyRepository,
    CoverTypeRepository,
    ProductRepository,
)
from .repository import Repository
from .unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

__all__ = [
    "ApplicationUserRepository",
    "CategoryRepository",
    "CompanyRepository",
    "CoverTypeRepository",
    "ProductRepository",
    "Repository",
    "SqlAlchemyUnitOfWork",
    "UnitOfWork",
]
