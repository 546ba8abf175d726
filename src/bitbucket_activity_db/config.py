"""Configuration settings for Bitbucket Activity DB."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SyncModeName = Literal["full", "delta"]


class BitbucketConfig(BaseModel):
    """Connection settings for the Bitbucket Cloud REST API.

    Credentials are an OAuth consumer (client id + secret) exchanged for a
    bearer token via the client-credentials grant.
    """

    api_base_url: str = Field(
        default="https://api.bitbucket.org/2.0/",
        description="Base URL that relative resource paths are resolved against",
    )
    token_url: str = Field(
        default="https://bitbucket.org/site/oauth2/access_token",
        description="OAuth2 token endpoint",
    )
    client_id: str = Field(default="", description="OAuth consumer key")
    client_secret: str = Field(default="", description="OAuth consumer secret")
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout for a single HTTP request",
    )


class RateLimitConfig(BaseModel):
    """Configuration for 429 handling and retry behavior.

    The backoff cap stays below typical idle-connection timeouts so a
    pooled connection is not dropped while every caller is parked.
    """

    backoff_floor_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Minimum computed backoff after a 429 without Retry-After",
    )
    backoff_cap_seconds: float = Field(
        default=55.0,
        gt=0.0,
        description="Maximum computed backoff after a 429 without Retry-After",
    )
    heartbeat_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Longest single sleep while waiting; a heartbeat is logged per chunk",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Retries for 429 and transient failures before giving up",
    )

    @model_validator(mode="after")
    def _floor_below_cap(self) -> "RateLimitConfig":
        if self.backoff_floor_seconds > self.backoff_cap_seconds:
            raise ValueError("backoff_floor_seconds must not exceed backoff_cap_seconds")
        return self


class SyncTargets(BaseModel):
    """Which entity types a sync run touches."""

    commits: bool = True
    pull_requests: bool = True
    repositories: bool = True
    users: bool = True


class SyncConfig(BaseModel):
    """Configuration for the window-based sync engine."""

    mode: SyncModeName = Field(
        default="full",
        description="full = walk all history backward; delta = trailing window only",
    )
    batch_days: int = Field(
        default=10,
        ge=1,
        description="Window size in days for full mode",
    )
    delta_sync_days: int = Field(
        default=5,
        ge=0,
        description="Trailing days covered by delta mode",
    )
    overwrite: bool = Field(
        default=False,
        description="Re-ingest windows that already have a completed ledger entry",
    )
    max_window_attempts: int = Field(
        default=3,
        ge=1,
        description="Failed attempts at one window before a repository is given up for the run",
    )
    targets: SyncTargets = Field(default_factory=SyncTargets)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./bitbucket_activity.db",
        description="Async SQLAlchemy database connection string",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Bitbucket API & Rate Limiting
    # --------------------------------------------------------------------------
    bitbucket: BitbucketConfig = Field(
        default_factory=BitbucketConfig,
        description="Bitbucket API connection",
    )
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="429 backoff and retry configuration",
    )

    # --------------------------------------------------------------------------
    # Sync Configuration
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Window sync behavior configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
