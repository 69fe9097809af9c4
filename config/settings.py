"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``AIDLEDGER_`` prefix; infrastructure settings use
their canonical environment variable names via ``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the AidLedger application.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``AIDLEDGER_``; infra keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="AIDLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"
    seed_demo_data: bool = True

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # ── Sessions ───────────────────────────────────────────────────────
    session_ttl_seconds: int = Field(default=3_600, ge=60)  # 1 hour

    # ── Contact verification (OTP) ─────────────────────────────────────
    otp_length: int = Field(default=6, ge=4, le=10)
    otp_resend_cooldown_seconds: int = Field(default=60, ge=0)
    otp_ttl_seconds: int = Field(default=600, ge=30)  # 10 minutes

    # ── Login throttling ───────────────────────────────────────────────
    login_failures_per_minute: int = Field(default=20, ge=0)  # 0 disables

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def expose_otp_codes(self) -> bool:
        """OTP delivery is simulated, so codes are echoed back outside production."""
        return not self.is_production


# Module-level singleton; import ``settings`` everywhere.
settings = Settings()
