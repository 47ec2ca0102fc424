"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Akwanda Booking Engine"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "akwanda"
    postgres_password: str = Field(default="akwanda_secret")
    postgres_db: str = "akwanda"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """Sync PostgreSQL connection URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT verification (tokens are issued by the identity service)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Pricing
    currency: str = "RWF"
    tax_rate_percent: Decimal = Decimal("3")
    default_children_percent: Decimal = Decimal("50")
    default_infant_percent: Decimal = Decimal("0")
    group_discount_min_size: int = 4
    promotion_min_percent: int = 1
    promotion_max_percent: int = 90

    # Commission tiers (percent); the admin band is [min, max] of these
    default_commission_base_rate: Decimal = Decimal("8")
    default_commission_premium_rate: Decimal = Decimal("10")
    default_commission_featured_rate: Decimal = Decimal("12")

    # Dues and enforcement
    dues_grace_days: int = 15
    late_penalty_percent: Decimal = Decimal("2")
    block_reason_overdue: str = "Commission/fine payment overdue"

    # Bookings
    confirmation_code_prefix: str = "AKW"
    confirmation_code_length: int = 6
    timezone: str = "Africa/Kigali"

    # Notifications (external sink)
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 5.0
    platform_admin_email: str = "finance@akwanda.rw"

    # Periodic jobs
    aggregation_day_of_month: int = 1
    aggregation_hour: int = 2
    reminder_hour: int = 9


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
