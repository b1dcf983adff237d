"""Facebook login."""

from __future__ import annotations

from typing import Any, Mapping

from ...config import FacebookConfig
from .oauth import ExternalUserInfo, OAuthHandler


class FacebookHandler(OAuthHandler):
    name = "Facebook"
    display_name = "Facebook"
    authorization_endpoint = "https://www.facebook.com/v18.0/dialog/oauth"
    token_endpoint = "https://graph.facebook.com/v18.0/oauth/access_token"
    userinfo_endpoint = "https://graph.facebook.com/v18.0/me"
    scopes = ("email", "public_profile")
    token_request_method = "GET"

    @classmethod
    def from_config(cls, config: FacebookConfig) -> "FacebookHandler":
        return cls(config.app_id, config.app_secret)

    def userinfo_params(self) -> Mapping[str, str]:
        return {"fields": "id,name,email"}

    def parse_user(self, data: Mapping[str, Any]) -> ExternalUserInfo:
        # The Graph API only returns an email the account holder has confirmed.
        email = data.get("email")
        return ExternalUserInfo(
            provider=self.name,
            provider_key=str(data["id"]),
            email=email,
            name=data.get("name"),
            email_verified=bool(email),
        )
