from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.bulkybook.config import AppConfig, SETTINGS_FILE_ENV
from src.bulkybook.logging import configure_logging
from tests.helpers.web_app import ADMIN_EMAIL, ADMIN_PASSWORD, TEST_SECRET

# Keep a developer's appsettings.json out of the test runs.
os.environ.setdefault(SETTINGS_FILE_ENV, str(Path(__file__).resolve().parent / "data" / "missing.json"))

# Route structlog through stdlib logging before any logger is first used.
configure_logging()


def build_config(**sections: Any) -> AppConfig:
    """AppConfig on a fresh in-memory database; ``sections`` update the defaults."""

    values: dict[str, Any] = {
        "environment": "Development",
        "connection_strings": {"default_connection": "sqlite:///:memory:"},
        "application": {"https_redirection": False, "secret_key": TEST_SECRET},
        "admin": {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "name": "Admin"},
    }
    for key, value in sections.items():
        if isinstance(value, dict) and isinstance(values.get(key), dict):
            values[key] = {**values[key], **value}
        else:
            values[key] = value
    return AppConfig(**values)


@pytest.fixture
def config_factory() -> Callable[..., AppConfig]:
    return build_config


@pytest.fixture
def app_config() -> AppConfig:
    return build_config()


@pytest.fixture
def app(app_config: AppConfig) -> FastAPI:
    from src.bulkybook.bootstrap import create_app

    return create_app(app_config)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, base_url="https://testserver", raise_server_exceptions=False)
