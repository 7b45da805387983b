"""Application settings and configuration.

This module defines all configuration options for the Postwatch application.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Moderation thresholds, view qualification rules and retry budgets are all
    exposed here so business logic never carries its own magic numbers.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Postwatch", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./postwatch.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration for view dedup, rate limiting and sweep leases
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Report aggregation and suspension cascade
    report_freeze_threshold: int = Field(default=5, alias="REPORT_FREEZE_THRESHOLD")
    suspended_posts_threshold: int = Field(default=3, alias="SUSPENDED_POSTS_THRESHOLD")

    # View qualification, dedup and rate limiting
    view_min_watch_sec: float = Field(default=3, alias="VIEW_MIN_WATCH_SEC")
    view_min_visibility_pct: float = Field(default=60, alias="VIEW_MIN_VISIBILITY_PCT")
    view_rate_limit_per_min: int = Field(default=100, alias="VIEW_RATE_LIMIT_PER_MIN")
    view_dedup_ttl_sec: int = Field(default=86_400, alias="VIEW_DEDUP_TTL_SEC")

    # View milestone notifications
    milestone_min_post_age_hours: float = Field(default=1, alias="MILESTONE_MIN_POST_AGE_HOURS")
    milestone_renotify_window_hours: float = Field(
        default=24,
        alias="MILESTONE_RENOTIFY_WINDOW_HOURS",
    )
    milestone_renotify_growth: float = Field(default=1.1, alias="MILESTONE_RENOTIFY_GROWTH")

    # Retry budgets for the like toggle race and transient transaction conflicts
    like_toggle_max_attempts: int = Field(default=3, alias="LIKE_TOGGLE_MAX_ATTEMPTS")
    like_toggle_backoff_seconds: float = Field(
        default=0.05,
        alias="LIKE_TOGGLE_BACKOFF_SECONDS",
    )
    transaction_max_attempts: int = Field(default=3, alias="TRANSACTION_MAX_ATTEMPTS")
    transaction_backoff_seconds: float = Field(
        default=0.1,
        alias="TRANSACTION_BACKOFF_SECONDS",
    )

    # Background moderation sweep
    sweep_enabled: bool = Field(default=False, alias="MODERATION_SWEEP_ENABLED")
    sweep_interval_seconds: float = Field(default=300.0, alias="MODERATION_SWEEP_INTERVAL_SECONDS")
    sweep_lease_ttl_seconds: int = Field(default=60, alias="MODERATION_SWEEP_LEASE_TTL_SECONDS")
    sweep_batch_size: int = Field(default=200, alias="MODERATION_SWEEP_BATCH_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
