"""
Settings for the Omnichat messaging pipeline.

Plain environment variable configuration. Webhook secrets are optional at
import time; the webhook gateway refuses to verify anything without them.
"""

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv

# Load .env file for local development - look in current working directory
load_dotenv(".env")


def _get_version_from_pyproject() -> str:
    """Read the project version from pyproject.toml, falling back to 0.1.0."""
    current_path = Path(__file__)
    for parent in [current_path.parent, *current_path.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            try:
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                    version = pyproject_data.get("project", {}).get("version")
                    if version:
                        return version
            except (OSError, tomllib.TOMLDecodeError):
                continue

    return "0.1.0"


def _get_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings with environment-based configuration."""

    def __init__(self):
        # ================================================================
        # Version & Environment
        # ================================================================
        self.version: str = _get_version_from_pyproject()
        self.port: int = int(os.getenv("PORT", "8000"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_dir: str = os.getenv("LOG_DIR", "./logs")
        self.environment: str = os.getenv("ENVIRONMENT", "DEV")

        # ================================================================
        # Meta Graph API
        # ================================================================
        self.api_version: str = os.getenv("API_VERSION", "v19.0")
        self.base_url: str = os.getenv("BASE_URL", "https://graph.facebook.com/")
        self.meta_access_token: str | None = os.getenv("META_ACCESS_TOKEN")
        self.whatsapp_business_account_id: str | None = os.getenv(
            "WHATSAPP_BUSINESS_ACCOUNT_ID"
        )

        # ================================================================
        # Webhook Verification
        # ================================================================
        # Both are required to accept webhooks; absence fails closed
        self.meta_app_secret: str | None = os.getenv("META_APP_SECRET")
        self.meta_webhook_verify_token: str | None = os.getenv(
            "META_WEBHOOK_VERIFY_TOKEN"
        )

        # ================================================================
        # Database
        # ================================================================
        self.database_url: str = os.getenv(
            "DATABASE_URL", "sqlite+aiosqlite:///./omnichat.db"
        )
        self.database_echo: bool = _get_bool("DATABASE_ECHO")

        # ================================================================
        # Broadcasts & Delivery
        # ================================================================
        self.broadcast_rate_per_second: float = float(
            os.getenv("BROADCAST_RATE_PER_SECOND", "50")
        )
        self.broadcast_burst: int = int(os.getenv("BROADCAST_BURST", "50"))
        self.default_template_language: str = os.getenv(
            "DEFAULT_TEMPLATE_LANGUAGE", "en"
        )
        self.delivery_status_monotonic: bool = _get_bool("DELIVERY_STATUS_MONOTONIC")

        self._validate_settings()

    def _validate_settings(self):
        """Validate settings values."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        self.log_level = self.log_level.upper()

        valid_environments = ["DEV", "PROD"]
        if self.environment.upper() not in valid_environments:
            self.environment = "DEV"  # Default fallback
        self.environment = self.environment.upper()

        if self.broadcast_rate_per_second <= 0:
            raise ValueError("BROADCAST_RATE_PER_SECOND must be positive")
        if self.broadcast_burst < 1:
            raise ValueError("BROADCAST_BURST must be at least 1")

    @property
    def has_webhook_secrets(self) -> bool:
        """Check if both webhook secrets are configured."""
        return bool(self.meta_app_secret) and bool(self.meta_webhook_verify_token)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "DEV"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "PROD"


# Global settings instance
settings = Settings()
