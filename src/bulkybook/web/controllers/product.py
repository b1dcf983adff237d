"""Product administration."""

from __future__ import annotations

from ...db.db_models import Product
from ...identity.authorization import authorize
from ...identity.roles import ROLE_ADMIN, ROLE_EMPLOYEE
from ...services.registry import ServiceRegistry
from ..routing import Controller, action


@authorize(ROLE_ADMIN, ROLE_EMPLOYEE)
class ProductController(Controller):
    area = "Admin"
    name = "Product"

    @action("Index")
    def index(self):
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        products = uow.product.get_all(include=("category", "cover_type"), order_by=Product.title)
        return self.view("Index", {"products": products})
