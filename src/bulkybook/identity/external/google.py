"""Google sign-in."""

from __future__ import annotations

from typing import Any, Mapping

from ...config import GoogleConfig
from .oauth import ExternalUserInfo, OAuthHandler


class GoogleHandler(OAuthHandler):
    name = "Google"
    display_name = "Google"
    authorization_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://openidconnect.googleapis.com/v1/userinfo"
    scopes = ("openid", "email", "profile")

    @classmethod
    def from_config(cls, config: GoogleConfig) -> "GoogleHandler":
        return cls(config.client_id, config.client_secret)

    def parse_user(self, data: Mapping[str, Any]) -> ExternalUserInfo:
        return ExternalUserInfo(
            provider=self.name,
            provider_key=str(data["sub"]),
            email=data.get("email"),
            name=data.get("name"),
            email_verified=data.get("email_verified") in (True, "true"),
        )
