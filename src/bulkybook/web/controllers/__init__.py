"""MVC controllers grouped by area."""

from ..routing import ControllerRegistry
from .category import CategoryController
from .home import HomeController
from .product import ProductController


def default_controllers() -> ControllerRegistry:
    registry = ControllerRegistry()
    for controller in (HomeController, CategoryController, ProductController):
        registry.register(controller)
    return registry


__all__ = ["CategoryController", "HomeController", "ProductController", "default_controllers"]
