"""Application configuration using pydantic-settings.

Holds the route API endpoint, retry/poll tuning and the Mixin keystore used
to authenticate every request.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ROUTE_API_BASE = "https://api.route.mixin.one"
MIXIN_API_BASE = "https://api.mixin.one"
ROUTE_BOT_USER_ID = "61cb8dd4-16b1-4744-ba0c-7b2d2e52fc59"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")

    # ======================
    # Route API
    # ======================
    route_api_base: str = Field(default=ROUTE_API_BASE, description="Route swap API base URL")
    route_bot_user_id: str = Field(
        default=ROUTE_BOT_USER_ID, description="User ID of the route bot (signing counterparty)"
    )
    route_bot_public_key: Optional[str] = Field(
        default=None,
        description="Pinned Ed25519 session public key of the route bot (hex or base64url)",
    )
    referral_user_id: Optional[str] = Field(
        default=None, description="Referral user ID attached to created swap orders"
    )

    # ======================
    # Mixin API
    # ======================
    mixin_api_base: str = Field(default=MIXIN_API_BASE, description="Mixin API base URL")

    # ======================
    # Transport
    # ======================
    request_timeout: float = Field(default=10.0, description="HTTP request timeout in seconds")
    retry_count: int = Field(default=0, ge=0, description="Retries on network errors and 5xx")
    retry_delay: float = Field(default=1.0, ge=0, description="Flat delay between retries in seconds")

    # ======================
    # Order tracking
    # ======================
    poll_interval: float = Field(default=5.0, gt=0, description="Order status poll interval in seconds")

    # ======================
    # Keystore
    # ======================
    mixin_client_id: Optional[str] = Field(default=None, description="App ID (app keystore)")
    mixin_user_id: Optional[str] = Field(default=None, description="User ID (network user keystore)")
    mixin_session_id: Optional[str] = Field(default=None, description="Session ID")
    mixin_session_private_key: Optional[str] = Field(
        default=None, description="Ed25519 session private key (hex seed)"
    )
    mixin_server_public_key: Optional[str] = Field(
        default=None, description="Server public key of the app keystore (hex)"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_keystore(self) -> bool:
        """Check if a usable keystore is configured."""
        return bool(
            (self.mixin_client_id or self.mixin_user_id)
            and self.mixin_session_id
            and self.mixin_session_private_key
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "route_api_base": self.route_api_base,
            "mixin_api_base": self.mixin_api_base,
            "route_bot_user_id": self.route_bot_user_id,
            "route_bot_public_key": self.route_bot_public_key or "(resolve via sessions)",
            "request_timeout": self.request_timeout,
            "retry_count": self.retry_count,
            "retry_delay": self.retry_delay,
            "poll_interval": self.poll_interval,
            "keystore": {
                "client_id": self.mixin_client_id or "(not set)",
                "user_id": self.mixin_user_id or "(not set)",
                "session_id": self.mixin_session_id or "(not set)",
                "session_private_key": "***" if self.mixin_session_private_key else "(not set)",
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
