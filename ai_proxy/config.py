# Configuration for the AI API proxy gateway

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "1.0.0"
USER_AGENT = f"AI API Proxy/{APP_VERSION}"


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class Settings(BaseSettings):
    """
    Settings loaded from environment variables only.
    In Docker: variables are injected via docker-compose env_file directive.
    In local dev: export variables before starting the service.
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
    )

    # Gateway auth (optional - if not set, proxy routes are not mounted)
    GATEWAY_API_KEY: Optional[str] = Field(None, description="Bearer key callers must present", alias="GATEWAY_API_KEY")

    # Provider selection and credentials
    AI_API_PROVIDER: Provider = Field(Provider.OPENAI, alias="AI_API_PROVIDER")
    OPENAI_API_KEY: str = Field("", alias="OPENAI_API_KEY")
    ANTHROPIC_API_KEY: str = Field("", alias="ANTHROPIC_API_KEY")

    # Upstream API roots
    OPENAI_API_ROOT: str = Field("https://api.openai.com/v1/", alias="OPENAI_API_ROOT")
    ANTHROPIC_API_ROOT: str = Field("https://api.anthropic.com/v1/", alias="ANTHROPIC_API_ROOT")
    ANTHROPIC_API_VERSION: str = Field("2023-06-01", alias="ANTHROPIC_API_VERSION")

    # Timeouts in seconds
    PROXY_TIMEOUT: float = Field(60, alias="PROXY_TIMEOUT")
    MODELS_TIMEOUT: float = Field(30, alias="MODELS_TIMEOUT")

    # Model list cache lifetime in seconds
    MODELS_CACHE_TTL: int = Field(30 * 60, alias="MODELS_CACHE_TTL")

    # Translation defaults
    DEFAULT_ANTHROPIC_MODEL: str = Field("claude-3-sonnet-20240229", alias="DEFAULT_ANTHROPIC_MODEL")
    DEFAULT_MAX_TOKENS: int = Field(1000, alias="DEFAULT_MAX_TOKENS")

    # Mount point for the gateway endpoints
    PROXY_ROUTE_PREFIX: str = Field("/ai-proxy/v1", alias="PROXY_ROUTE_PREFIX")

    # Logging
    LOG_REQUEST_BODY_MAX_LENGTH: int = Field(40000, alias="LOG_REQUEST_BODY_MAX_LENGTH")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def check_gateway_api_key(auth_header: Optional[str], settings: Optional[Settings] = None) -> bool:
    """
    Validate Authorization: Bearer <key> header.
    """
    if not auth_header:
        return False
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return False
    key = parts[1]
    s = settings or get_settings()
    return bool(s.GATEWAY_API_KEY) and key == s.GATEWAY_API_KEY
