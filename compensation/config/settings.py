"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "postgresql+asyncpg://compensation@localhost:5432/compensation"
    database_echo: bool = False
    database_pool_size: int = Field(default=10, ge=1)

    # Redis (for Dramatiq and the batch run-lock)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str = "logs/compensation.log"

    # Batch runs
    batch_concurrency: int = Field(
        default=8, ge=1, le=256, description="Users processed concurrently per batch"
    )
    run_lock_timeout_seconds: int = Field(
        default=3600, ge=60, description="Run-lock expiry for a batch run"
    )
    store_retry_attempts: int = Field(
        default=3, ge=0, le=10, description="Retries on transient ledger failures"
    )
    store_retry_base_delay: float = Field(
        default=0.5, ge=0, description="First retry delay in seconds (doubles per retry)"
    )

    # Emergency stop: daily accrual is skipped while set
    emergency_stop_roi: bool = False

    # Scheduler (UTC)
    daily_accrual_hour: int = Field(default=0, ge=0, le=23)
    daily_accrual_minute: int = Field(default=5, ge=0, le=59)
    monthly_rewards_day: int = Field(default=1, ge=1, le=28)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith((
            'postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://'
        )):
            raise ValueError(
                'DATABASE_URL must start with postgresql://, '
                'postgresql+asyncpg:// or sqlite+aiosqlite://'
            )
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'Unknown LOG_LEVEL: {v}')
        return level

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.database_url.startswith('sqlite'):
                logger.warning(
                    'DATABASE_URL points to SQLite in production. '
                    'Row locks (SELECT ... FOR UPDATE) are not enforced.'
                )
        return self


# Global settings instance
settings = Settings()
