"""Category administration."""

from __future__ import annotations

from ...db.db_models import Category
from ...identity.authorization import authorize
from ...identity.roles import ROLE_ADMIN
from ...services.registry import ServiceRegistry
from ..routing import Controller, action


@authorize(ROLE_ADMIN)
class CategoryController(Controller):
    area = "Admin"
    name = "Category"

    @action("Index")
    def index(self):
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        categories = uow.category.get_all(order_by=Category.display_order)
        return self.view("Index", {"categories": categories})

    @action("Create")
    def create_form(self):
        return self.view("Create", {"errors": {}, "values": {}})

    @action("Create", methods=("POST",))
    async def create(self):
        form = await self.request.form()
        name = str(form.get("name", "")).strip()
        order_raw = str(form.get("display_order", "")).strip()
        errors: dict[str, str] = {}
        if not name:
            errors["name"] = "Name is required."
        try:
            display_order = int(order_raw)
        except ValueError:
            errors["display_order"] = "Display order must be a number."
            display_order = 0
        else:
            if not 1 <= display_order <= 100:
                errors["display_order"] = "Display order must be between 1 and 100."
        if name and name == order_raw:
            errors["name"] = "Display order cannot exactly match the name."
        if errors:
            return self.view("Create", {"errors": errors, "values": dict(form)}, status_code=400)
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        uow.category.add(Category(name=name, display_order=display_order))
        uow.save()
        return self.redirect_to_action("Index")

    @action("Delete", methods=("POST",))
    def delete(self, id: int | None = None):
        uow = self.services.resolve(ServiceRegistry.UNIT_OF_WORK)
        category = uow.category.get(id) if id is not None else None
        if category is None:
            self.not_found()
        uow.category.remove(category)
        uow.save()
        return self.redirect_to_action("Index")
