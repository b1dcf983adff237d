"""Application configuration for BulkyBook.

Every named section of the external configuration is bound to a typed,
read-only model. Values are layered the usual way for the deployment:
explicit keyword arguments, then ``BULKYBOOK_*`` environment variables
(``__`` separates nested keys, e.g. ``BULKYBOOK_SMTP__HOST``), then a local
``.env`` file and finally the JSON settings file (``appsettings.json`` unless
``BULKYBOOK_SETTINGS_FILE`` points elsewhere).
"""

from __future__ import annotations

import os
from typing import Any, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

SETTINGS_FILE_ENV = "BULKYBOOK_SETTINGS_FILE"
DEFAULT_SETTINGS_FILE = "appsettings.json"

DEVELOPMENT = "Development"
PRODUCTION = "Production"


class _Section(BaseModel):
    """Base for configuration sections; sections never change after load."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class ConnectionStrings(_Section):
    default_connection: str = Field(
        default="sqlite:///bulkybook.db",
        description="SQLAlchemy URL of the primary database (DefaultConnection).",
    )


class ApplicationConfig(_Section):
    name: str = Field(default="BulkyBook")
    email_sender: str | None = Field(
        default=None,
        description="Name of the notification sender implementation to register.",
    )
    base_url: str = Field(
        default="https://localhost:5001",
        description="Public URL used to build links in outgoing emails.",
    )
    https_redirection: bool = Field(
        default=True,
        description="Redirect plain HTTP requests to HTTPS.",
    )
    secret_key: str = Field(
        default="change-me",
        min_length=1,
        description="Signing key for authentication, session and purpose tokens.",
    )


class AdminConfig(_Section):
    name: str = "Administrator"
    email: str = "admin@bulkybook.local"
    password: str = "Admin123*"
    phone_number: str = "0000000000"
    street_address: str = "1 Admin Way"
    city: str = "Chicago"
    state: str = "IL"
    postal_code: str = "60601"


class StripeKeys(_Section):
    publishable_key: str = ""
    secret_key: str = ""


class SmtpConfig(_Section):
    host: str = "localhost"
    port: int = Field(default=587, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    from_address: str = "no-reply@bulkybook.local"
    from_name: str = "BulkyBook"
    timeout_seconds: float = Field(default=10.0, gt=0)


class SendGridConfig(_Section):
    api_key: str = ""
    from_address: str = "no-reply@bulkybook.local"
    from_name: str = "BulkyBook"
    api_url: str = "https://api.sendgrid.com/v3/mail/send"
    timeout_seconds: float = Field(default=10.0, gt=0)


class GoogleConfig(_Section):
    client_id: str = ""
    client_secret: str = ""


class FacebookConfig(_Section):
    app_id: str = ""
    app_secret: str = ""


class SessionConfig(_Section):
    idle_timeout_minutes: int = Field(default=100, ge=1)
    cookie_name: str = ".BulkyBook.Session"


class AppConfig(BaseSettings):
    """Root settings object holding every configuration section."""

    model_config = SettingsConfigDict(
        env_prefix="BULKYBOOK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    environment: str = Field(
        default=PRODUCTION,
        description="Hosting environment name (Development or Production).",
    )
    connection_strings: ConnectionStrings = Field(default_factory=ConnectionStrings)
    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    stripe: StripeKeys = Field(default_factory=StripeKeys)
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    sendgrid: SendGridConfig = Field(default_factory=SendGridConfig)
    google: GoogleConfig = Field(default_factory=GoogleConfig)
    facebook: FacebookConfig = Field(default_factory=FacebookConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        json_file = os.getenv(SETTINGS_FILE_ENV, DEFAULT_SETTINGS_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file),
            file_secret_settings,
        )

    def is_development(self) -> bool:
        return self.environment.lower() == DEVELOPMENT.lower()

    @property
    def default_connection(self) -> str:
        return self.connection_strings.default_connection


def load_config(**overrides: Any) -> AppConfig:
    """Load configuration from the environment and the JSON settings file."""

    return AppConfig(**overrides)


__all__ = [
    "AdminConfig",
    "AppConfig",
    "ApplicationConfig",
    "ConnectionStrings",
    "FacebookConfig",
    "GoogleConfig",
    "SendGridConfig",
    "SessionConfig",
    "SmtpConfig",
    "StripeKeys",
    "load_config",
]
