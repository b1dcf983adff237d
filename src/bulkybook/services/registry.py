"""Service registry used by the application bootstrapper.

Services are registered under string keys with one of two lifetimes:

* singleton: one instance for the whole process, created at registration
  or on first resolution;
* scoped: one instance per :class:`ServiceScope`, disposed when the scope
  is closed.

A scope is normally opened per request and once around database seeding at
startup.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, Iterator, TypeAlias

import structlog

ServiceKey: TypeAlias = str
Factory: TypeAlias = Callable[["ServiceProvider"], Any]

logger = structlog.get_logger(__name__)

SINGLETON = "singleton"
SCOPED = "scoped"


class ServiceProvider:
    """Read access to registered services."""

    def resolve(self, key: ServiceKey) -> Any:  # pragma: no cover - interface
        raise NotImplementedError

    def get(self, key: ServiceKey) -> Any | None:
        try:
            return self.resolve(key)
        except KeyError:
            return None


@dataclass(slots=True)
class _Registration:
    lifetime: str
    factory: Factory


@dataclass(eq=False)
class ServiceRegistry(ServiceProvider):
    """Registry of singleton and scoped service factories."""

    APP_CONFIG: ClassVar[ServiceKey] = "config.app"
    EMAIL_SENDER: ClassVar[ServiceKey] = "service.email_sender"
    DISTRIBUTED_CACHE: ClassVar[ServiceKey] = "service.distributed_cache"
    SESSION_FACTORY: ClassVar[ServiceKey] = "db.session_factory"
    TOKEN_SERVICE: ClassVar[ServiceKey] = "identity.token_service"
    COOKIE_OPTIONS: ClassVar[ServiceKey] = "identity.cookie_options"
    EXTERNAL_LOGINS: ClassVar[ServiceKey] = "identity.external_logins"
    PAYMENT_KEYS: ClassVar[ServiceKey] = "payment.keys"

    UNIT_OF_WORK: ClassVar[ServiceKey] = "db.unit_of_work"
    DB_INITIALIZER: ClassVar[ServiceKey] = "db.initializer"
    USER_MANAGER: ClassVar[ServiceKey] = "identity.user_manager"

    _registrations: Dict[ServiceKey, _Registration] = field(default_factory=dict)
    _singletons: Dict[ServiceKey, Any] = field(default_factory=dict)
    _frozen: bool = False

    def register_singleton(self, key: ServiceKey, instance: Any = None, *, factory: Factory | None = None) -> None:
        """Register a process-wide service, either as instance or factory."""

        self._ensure_mutable(key)
        if factory is None:
            self._singletons[key] = instance
            factory = lambda _provider: instance  # noqa: E731
        else:
            self._singletons.pop(key, None)
        self._registrations[key] = _Registration(SINGLETON, factory)

    def register_scoped(self, key: ServiceKey, factory: Factory) -> None:
        """Register a factory invoked once per scope."""

        self._ensure_mutable(key)
        self._singletons.pop(key, None)
        self._registrations[key] = _Registration(SCOPED, factory)

    def freeze(self) -> None:
        """Disallow further registrations once the application is built."""

        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lifetime(self, key: ServiceKey) -> str:
        return self._registrations[key].lifetime

    def is_registered(self, key: ServiceKey) -> bool:
        return key in self._registrations

    def resolve(self, key: ServiceKey) -> Any:
        """Return the singleton registered under ``key``."""

        registration = self._registrations[key]
        if registration.lifetime == SCOPED:
            raise LookupError(f"Service '{key}' is scoped; resolve it from a scope")
        if key not in self._singletons:
            self._singletons[key] = registration.factory(self)
        return self._singletons[key]

    def create_scope(self) -> "ServiceScope":
        return ServiceScope(self)

    @contextmanager
    def scope(self) -> Iterator["ServiceScope"]:
        """Open a scope that is always disposed, even when the block raises."""

        scope = self.create_scope()
        try:
            yield scope
        finally:
            scope.close()

    def snapshot(self) -> Dict[ServiceKey, str]:
        """Mapping of registered keys to their lifetimes."""

        return {key: reg.lifetime for key, reg in self._registrations.items()}

    def _ensure_mutable(self, key: ServiceKey) -> None:
        if self._frozen:
            raise RuntimeError(f"Cannot register '{key}': service registry is frozen")

    def _scoped_factory(self, key: ServiceKey) -> Factory | None:
        registration = self._registrations[key]
        if registration.lifetime == SCOPED:
            return registration.factory
        return None


class ServiceScope(ServiceProvider):
    """A disposable resolution scope over a :class:`ServiceRegistry`."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self._registry = registry
        self._instances: Dict[ServiceKey, Any] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, key: ServiceKey) -> Any:
        if self._closed:
            raise RuntimeError("service scope is closed")
        factory = self._registry._scoped_factory(key)
        if factory is None:
            return self._registry.resolve(key)
        if key not in self._instances:
            self._instances[key] = factory(self)
        return self._instances[key]

    def close(self) -> None:
        """Dispose scoped instances in reverse creation order."""

        if self._closed:
            return
        self._closed = True
        instances = list(self._instances.items())
        self._instances.clear()
        first_error: Exception | None = None
        for key, instance in reversed(instances):
            closer = getattr(instance, "close", None)
            if closer is None:
                continue
            try:
                closer()
            except Exception as exc:
                logger.exception("service_scope.dispose_failed", service=key)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __enter__(self) -> "ServiceScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ServiceKey", "ServiceProvider", "ServiceRegistry", "ServiceScope", "SCOPED", "SINGLETON"]
