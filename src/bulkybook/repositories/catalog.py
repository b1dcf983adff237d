"""Repositories for catalog entities."""

from __future__ import annotations

from typing import Any

from ..db.db_models import ApplicationUser, Category, Company, CoverType, Product
from ..exceptions import ensure_found
from .repository import Repository


class CategoryRepository(Repository[Category]):
    model = Category

    def update(self, category_id: int, *, name: str, display_order: int) -> Category:
        category = ensure_found(self.get(category_id), entity="Category", identifier=category_id)
        category.name = name
        category.display_order = display_order
        return category


class CoverTypeRepository(Repository[CoverType]):
    model = CoverType

    def update(self, cover_type_id: int, *, name: str) -> CoverType:
        cover_type = ensure_found(self.get(cover_type_id), entity="CoverType", identifier=cover_type_id)
        cover_type.name = name
        return cover_type


class CompanyRepository(Repository[Company]):
    model = Company

    def update(self, company_id: int, **fields: Any) -> Company:
        company = ensure_found(self.get(company_id), entity="Company", identifier=company_id)
        for key, value in fields.items():
            setattr(company, key, value)
        return company


class ProductRepository(Repository[Product]):
    model = Product

    def update(self, product_id: int, **fields: Any) -> Product:
        """Apply ``fields``; an empty ``image_url`` keeps the stored image."""
        product = ensure_found(self.get(product_id), entity="Product", identifier=product_id)
        if not fields.get("image_url"):
            fields.pop("image_url", None)
        for key, value in fields.items():
            setattr(product, key, value)
        return product


class ApplicationUserRepository(Repository[ApplicationUser]):
    model = ApplicationUser
