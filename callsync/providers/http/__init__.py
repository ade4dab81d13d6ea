from typing import Optional
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..base import ProviderConfig


class HttpConfig(ProviderConfig, BaseSettings):
    """Configuration for the HTTP object store / metadata catalog."""

    model_config = SettingsConfigDict(env_prefix="CALLSYNC_HTTP_", case_sensitive=False, extra="ignore")

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the recording service"
    )

    api_key: Optional[SecretStr] = Field(
        default=None,
        description="Bearer token sent with every request"
    )

    timeout: int = Field(
        default=60,
        description="Request timeout in seconds"
    )


# Alias for Config loader
Config = HttpConfig

__all__ = ['HttpConfig', 'Config']
