"""Service composition primitives."""

from .cache import MemoryCache
from .registry import ServiceProvider, ServiceRegistry, ServiceScope

__all__ = ["MemoryCache", "ServiceProvider", "ServiceRegistry", "ServiceScope"]
