"""External OAuth login providers."""

from .facebook import FacebookHandler
from .google import GoogleHandler
from .oauth import ExternalLoginRegistry, ExternalUserInfo, OAuthHandler

__all__ = [
    "ExternalLoginRegistry",
    "ExternalUserInfo",
    "FacebookHandler",
    "GoogleHandler",
    "OAuthHandler",
]
