"""Engine settings, read from the environment (or .env) by pydantic-settings.

Services and routes import ``settings`` instead of reading os.environ.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database - SQLite for local dev, PostgreSQL in production
    database_url: str = "sqlite:///./data/kot_engine.db"

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # one 12h shift

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # ==========================================================================
    # Billing
    # ==========================================================================
    tax_rate_primary: Decimal = Decimal("0.025")
    tax_rate_secondary: Decimal = Decimal("0.025")
    # A discount above the subtotal is clamped to it, or rejected outright
    discount_overflow: Literal["clamp", "reject"] = "clamp"

    # ==========================================================================
    # Kitchen tickets
    # ==========================================================================
    ticket_number_prefix: str = "KOT"

    # ==========================================================================
    # Outbound status notifications
    # ==========================================================================
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 5.0

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("tax_rate_primary", "tax_rate_secondary")
    @classmethod
    def validate_tax_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v >= 1:
            raise ValueError(f"tax rate must be a fraction in [0, 1), got {v}")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == "change-me-in-production" or len(v) < 32:
            import warnings
            warnings.warn(
                "SECRET_KEY is the default or shorter than 32 characters.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def require_real_secret_outside_debug(self) -> "Settings":
        if not self.debug and (self.secret_key == "change-me-in-production" or len(self.secret_key) < 32):
            raise ValueError("SECRET_KEY must be set to 32+ characters when DEBUG is off")
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
