"""
Credential resolution for channels.

Credential storage and decryption live outside this package. The default
resolver reads tokens from the environment: a channel may name its own
variable via ``settings["access_token_env"]``, otherwise META_ACCESS_TOKEN
is used. Tokens are never persisted or logged.
"""

import os
from typing import Protocol

from omnichat.core.config.settings import Settings, settings
from omnichat.core.exceptions import CredentialError
from omnichat.models.database_models import Channel

ACCESS_TOKEN_ENV_KEY = "access_token_env"


class CredentialResolver(Protocol):
    async def resolve(self, channel: Channel) -> str:
        """Return a bearer credential usable for the channel."""
        ...


class EnvironmentCredentialResolver:
    """Resolves channel tokens from environment variables."""

    def __init__(self, app_settings: Settings | None = None):
        self.settings = app_settings or settings

    async def resolve(self, channel: Channel) -> str:
        env_name = (channel.settings or {}).get(ACCESS_TOKEN_ENV_KEY)
        token = os.getenv(env_name) if env_name else self.settings.meta_access_token
        if not token:
            source = env_name or "META_ACCESS_TOKEN"
            raise CredentialError(f"No access token available for channel {channel.id} ({source})")
        return token
