"""Customer storefront."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from ...db.db_models import Product
from ...services.registry import ServiceRegistry
from ..routing import Controller, action

CATALOG_CACHE_KEY = "catalog:products"
CATALOG_CACHE_TTL = timedelta(minutes=1)
RECENTLY_VIEWED_KEY = "RecentlyViewed"
RECENTLY_VIEWED_LIMIT = 5


def _product_card(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "title": product.title,
        "author": product.author,
        "list_price": float(product.list_price),
        "price100": float(product.price100),
        "image_url": product.image_url,
        "category": product.category.name if product.category else None,
    }


class HomeController(Controller):
    area = "Customer"
    name = "Home"

    @action("Index")
    def index(self):
        cache = self.services.resolve(ServiceRegistry.DISTRIBUTED_CACHE)
        products = cache.get_or_set(CATALOG_CACHE_KEY, self._load_catalog, ttl=CATALOG_CACHE_TTL)
        recently_viewed = self.request.session.get(RECENTLY_VIEWED_KEY, [])
        return self.view("Index", {"products": products, "recently_viewed": recently_viewed})

    @action("Details")
    def details(self, id: int | None = None):
        if id is None:
            self.not_found()
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        product = uow.product.get_first_or_default(Product.id == id, include=("category", "cover_type"))
        if product is None:
            self.not_found()
        viewed = [pid for pid in self.request.session.get(RECENTLY_VIEWED_KEY, []) if pid != product.id]
        self.request.session[RECENTLY_VIEWED_KEY] = [product.id, *viewed][:RECENTLY_VIEWED_LIMIT]
        return self.view("Details", {"product": product})

    @action("Privacy")
    def privacy(self):
        return self.view("Privacy")

    @action("Error", methods=("GET", "POST"))
    def error(self):
        return self.view("Error", {"request_id": self.request.headers.get("x-request-id")}, status_code=500)

    def _load_catalog(self) -> list[dict[str, Any]]:
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        products = uow.product.get_all(include=("category",), order_by=Product.title)
        return [_product_card(product) for product in products]
