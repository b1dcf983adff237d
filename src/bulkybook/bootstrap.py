"""Application bootstrapper.

Startup is linear: load configuration, register services, build the
application, seed the database, install the request pipeline and map
routes. Any failure along the way propagates and no listener is started.

Stages only move forward::

    UNCONFIGURED -> CONFIGURED -> SEEDED -> LISTENING
"""

from __future__ import annotations

import enum
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import AppConfig, load_config
from .db.db_initializer import SqlAlchemyDbInitializer
from .db.db_session import Database, build_database
from .identity.authentication import CookieAuthBackend
from .identity.cookies import CookieAuthenticationOptions
from .identity.external import ExternalLoginRegistry, FacebookHandler, GoogleHandler
from .identity.identity_api import router as identity_router
from .identity.tokens import TokenService
from .identity.user_manager import UserManager
from .logging import configure_logging
from .notifications import create_email_sender, describe_sender
from .repositories.unit_of_work import SqlAlchemyUnitOfWork
from .services.cache import MemoryCache
from .services.registry import ServiceProvider, ServiceRegistry
from .web.controllers import default_controllers
from .web.pipeline import build_middleware, install_error_handling, install_middleware
from .web.routing import map_controller_route

logger = structlog.get_logger(__name__)

DEFAULT_ROUTE_NAME = "default"
DEFAULT_ROUTE_PATTERN = "{area=Customer}/{controller=Home}/{action=Index}/{id?}"
STATIC_DIR = Path(__file__).resolve().parent / "wwwroot"


class StartupStage(enum.Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    SEEDED = "seeded"
    LISTENING = "listening"


_ORDER = list(StartupStage)


class Bootstrapper:
    """Compose services and the HTTP application for one process."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or load_config()
        self.registry = ServiceRegistry()
        self.database: Database | None = None
        self._stage = StartupStage.UNCONFIGURED

    @property
    def stage(self) -> StartupStage:
        return self._stage

    def _require(self, stage: StartupStage) -> None:
        if self._stage is not stage:
            raise RuntimeError(f"expected stage {stage.value}, bootstrapper is {self._stage.value}")

    def _advance(self, stage: StartupStage) -> None:
        self._require(_ORDER[_ORDER.index(stage) - 1])
        self._stage = stage
        logger.info("bootstrap.stage", stage=stage.value)

    def configure_services(self) -> ServiceRegistry:
        """Register every service with its lifetime."""
        self._require(StartupStage.UNCONFIGURED)
        config = self.config
        registry = self.registry
        database = build_database(config.default_connection)
        self.database = database

        registry.register_singleton(ServiceRegistry.APP_CONFIG, config)
        registry.register_singleton(ServiceRegistry.EMAIL_SENDER, create_email_sender(config))
        registry.register_singleton(ServiceRegistry.DISTRIBUTED_CACHE, MemoryCache())
        registry.register_singleton(ServiceRegistry.SESSION_FACTORY, database.session_factory)
        registry.register_singleton(
            ServiceRegistry.TOKEN_SERVICE, TokenService(config.application.secret_key)
        )
        registry.register_singleton(
            ServiceRegistry.COOKIE_OPTIONS,
            CookieAuthenticationOptions(secure=not config.is_development()),
        )
        external_logins = ExternalLoginRegistry(
            [GoogleHandler.from_config(config.google), FacebookHandler.from_config(config.facebook)]
        )
        registry.register_singleton(ServiceRegistry.EXTERNAL_LOGINS, external_logins)
        registry.register_singleton(ServiceRegistry.PAYMENT_KEYS, config.stripe)

        registry.register_scoped(
            ServiceRegistry.UNIT_OF_WORK,
            lambda provider: SqlAlchemyUnitOfWork(provider.resolve(ServiceRegistry.SESSION_FACTORY)),
        )
        registry.register_scoped(ServiceRegistry.USER_MANAGER, _user_manager)
        registry.register_scoped(
            ServiceRegistry.DB_INITIALIZER,
            lambda provider: SqlAlchemyDbInitializer(
                engine=database.engine,
                uow=provider.resolve(ServiceRegistry.UNIT_OF_WORK),
                user_manager=provider.resolve(ServiceRegistry.USER_MANAGER),
                admin=config.admin,
            ),
        )

        for provider in external_logins.unconfigured():
            logger.warning("bootstrap.external_login.unconfigured", provider=provider)
        self._advance(StartupStage.CONFIGURED)
        return registry

    def seed_database(self) -> None:
        """Run the database initializer once inside a disposable scope."""
        self._require(StartupStage.CONFIGURED)
        with self.registry.scope() as scope:
            scope.resolve(ServiceRegistry.DB_INITIALIZER).initialize()
        self._advance(StartupStage.SEEDED)

    def build(self) -> FastAPI:
        configure_logging()
        try:
            return self._build()
        except Exception:
            logger.exception("bootstrap.failed", stage=self._stage.value)
            if self.database is not None:
                self.database.dispose()
            raise

    def _build(self) -> FastAPI:
        config = self.config
        registry = self.configure_services()

        app = FastAPI(
            title=config.application.name,
            version=__version__,
            debug=config.is_development(),
            lifespan=self._lifespan,
        )
        app.state.services = registry
        app.state.config = config
        app.state.stripe_keys = registry.resolve(ServiceRegistry.PAYMENT_KEYS)
        app.state.bootstrapper = self

        self.seed_database()

        cookie_options = registry.resolve(ServiceRegistry.COOKIE_OPTIONS)
        auth_backend = CookieAuthBackend(registry.resolve(ServiceRegistry.TOKEN_SERVICE), cookie_options)
        install_middleware(app, build_middleware(config, auth_backend))
        install_error_handling(app, config, cookie_options)

        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
        app.include_router(identity_router)
        app.state.default_route = map_controller_route(
            app,
            name=DEFAULT_ROUTE_NAME,
            pattern=DEFAULT_ROUTE_PATTERN,
            controllers=default_controllers(),
        )
        registry.freeze()

        sender_type = describe_sender(registry.resolve(ServiceRegistry.EMAIL_SENDER))
        logger.info(f"Email Sender : {sender_type}", sender=sender_type)
        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        self._advance(StartupStage.LISTENING)
        try:
            yield
        finally:
            if self.database is not None:
                self.database.dispose()

    def run(self, app: FastAPI, *, host: str = "127.0.0.1", port: int = 5000) -> None:
        import uvicorn

        uvicorn.run(app, host=host, port=port)


def _user_manager(provider: ServiceProvider) -> UserManager:
    return UserManager(
        uow=provider.resolve(ServiceRegistry.UNIT_OF_WORK),
        tokens=provider.resolve(ServiceRegistry.TOKEN_SERVICE),
    )


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build a fully configured, seeded application."""
    return Bootstrapper(config).build()


__all__ = [
    "Bootstrapper",
    "DEFAULT_ROUTE_PATTERN",
    "StartupStage",
    "create_app",
]
