from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from src.bulkybook.config import SETTINGS_FILE_ENV, AppConfig, load_config


@pytest.fixture
def settings_file(tmp_path, monkeypatch):
    path = tmp_path / "appsettings.json"
    path.write_text(
        json.dumps(
            {
                "environment": "Development",
                "connection_strings": {"default_connection": "sqlite:///bulky-json.db"},
                "application": {"email_sender": "SendGridEmailSender", "name": "Bulky JSON"},
                "smtp": {"host": "smtp.json.test", "port": 2525},
                "google": {"client_id": "gid", "client_secret": "gsecret"},
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv(SETTINGS_FILE_ENV, str(path))
    return path


@pytest.mark.unit
def test_defaults_without_settings_file(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(SETTINGS_FILE_ENV, str(tmp_path / "absent.json"))

    config = load_config()

    assert config.environment == "Production"
    assert not config.is_development()
    assert config.application.email_sender is None
    assert config.session.idle_timeout_minutes == 100
    assert config.default_connection == "sqlite:///bulkybook.db"


@pytest.mark.unit
def test_json_settings_file_populates_sections(settings_file) -> None:
    config = load_config()

    assert config.is_development()
    assert config.default_connection == "sqlite:///bulky-json.db"
    assert config.application.email_sender == "SendGridEmailSender"
    assert config.application.name == "Bulky JSON"
    assert config.smtp.host == "smtp.json.test"
    assert config.smtp.port == 2525
    assert config.google.client_id == "gid"


@pytest.mark.unit
def test_environment_variables_override_json(settings_file, monkeypatch) -> None:
    monkeypatch.setenv("BULKYBOOK_APPLICATION__EMAIL_SENDER", "SmtpEmailSender")
    monkeypatch.setenv("BULKYBOOK_ENVIRONMENT", "Production")

    config = load_config()

    assert config.application.email_sender == "SmtpEmailSender"
    assert config.environment == "Production"


@pytest.mark.unit
def test_keyword_overrides_win(settings_file) -> None:
    config = load_config(environment="Staging")

    assert config.environment == "Staging"
    assert not config.is_development()


@pytest.mark.unit
def test_sections_are_read_only(app_config: AppConfig) -> None:
    with pytest.raises(ValidationError):
        app_config.application.email_sender = "SmtpEmailSender"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        app_config.environment = "Production"  # type: ignore[misc]


@pytest.mark.unit
def test_invalid_port_is_rejected(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(SETTINGS_FILE_ENV, str(tmp_path / "absent.json"))
    with pytest.raises(ValidationError):
        load_config(smtp={"port": 0})


@pytest.mark.unit
def test_is_development_ignores_case(config_factory) -> None:
    assert config_factory(environment="development").is_development()
    assert not config_factory(environment="Production").is_development()
