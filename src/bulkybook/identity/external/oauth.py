"""OAuth 2.0 authorization-code login handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Mapping
from urllib.parse import urlencode

import httpx
import structlog

from ...exceptions import ExternalLoginError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ExternalUserInfo:
    """Identity returned by an external provider."""

    provider: str
    provider_key: str
    email: str | None
    name: str | None
    email_verified: bool = False


class OAuthHandler(ABC):
    """Build the provider challenge and complete the callback.

    Credentials are checked when a challenge is issued, not when the handler
    is registered.
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    authorization_endpoint: ClassVar[str]
    token_endpoint: ClassVar[str]
    userinfo_endpoint: ClassVar[str]
    scopes: ClassVar[tuple[str, ...]] = ()
    token_request_method: ClassVar[str] = "POST"

    def __init__(self, client_id: str, client_secret: str, *, timeout_seconds: float = 10.0) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout_seconds = timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def ensure_configured(self) -> None:
        if not self.is_configured():
            raise ExternalLoginError(f"{self.display_name} login is not configured")

    def build_challenge_url(self, *, redirect_uri: str, state: str) -> str:
        self.ensure_configured()
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "state": state,
        }
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def complete(self, *, code: str, redirect_uri: str) -> ExternalUserInfo:
        """Exchange ``code`` for a token and fetch the user's profile."""
        self.ensure_configured()
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                if self.token_request_method == "GET":
                    token_response = await client.get(self.token_endpoint, params=form)
                else:
                    token_response = await client.post(self.token_endpoint, data=form)
                access_token = self._read_access_token(token_response)
                profile_response = await client.get(
                    self.userinfo_endpoint,
                    params=self.userinfo_params(),
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise ExternalLoginError(f"{self.display_name} request failed: {exc}") from exc
        if profile_response.status_code != 200:
            raise ExternalLoginError(
                f"{self.display_name} profile request failed with status {profile_response.status_code}"
            )
        try:
            info = self.parse_user(profile_response.json())
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ExternalLoginError(f"{self.display_name} returned an unreadable profile") from exc
        logger.info("identity.external.profile_loaded", provider=self.name, has_email=bool(info.email))
        return info

    def userinfo_params(self) -> Mapping[str, str]:
        return {}

    @abstractmethod
    def parse_user(self, data: Mapping[str, Any]) -> ExternalUserInfo:
        """Map the provider profile payload to :class:`ExternalUserInfo`."""

    def _read_access_token(self, response: httpx.Response) -> str:
        if response.status_code != 200:
            raise ExternalLoginError(
                f"{self.display_name} token exchange failed with status {response.status_code}"
            )
        try:
            token = response.json().get("access_token")
        except (AttributeError, ValueError) as exc:
            raise ExternalLoginError(f"{self.display_name} returned an unreadable token response") from exc
        if not token:
            raise ExternalLoginError(f"{self.display_name} did not return an access token")
        return str(token)


class ExternalLoginRegistry:
    """Registered external login handlers keyed by provider name."""

    def __init__(self, handlers: Iterable[OAuthHandler] = ()) -> None:
        self._handlers: dict[str, OAuthHandler] = {}
        for handler in handlers:
            self.add(handler)

    def add(self, handler: OAuthHandler) -> None:
        self._handlers[handler.name.lower()] = handler

    def get(self, provider: str) -> OAuthHandler:
        try:
            return self._handlers[provider.lower()]
        except KeyError as exc:
            raise ExternalLoginError(f"Unsupported external login provider '{provider}'") from exc

    def schemes(self) -> list[OAuthHandler]:
        return list(self._handlers.values())

    def unconfigured(self) -> list[str]:
        return [handler.name for handler in self._handlers.values() if not handler.is_configured()]


__all__ = ["ExternalLoginRegistry", "ExternalUserInfo", "OAuthHandler"]
