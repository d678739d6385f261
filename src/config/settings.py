"""Application settings using Pydantic Settings for environment-based configuration."""

from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

DEFAULT_FEED_URL = "https://feeds.feedburner.com/TheHackersNews?format=xml"

# Settings attribute -> environment variable for values the job cannot run without
REQUIRED_SETTINGS = {
    "appwrite_endpoint": "APPWRITE_ENDPOINT",
    "appwrite_project_id": "APPWRITE_PROJECT_ID",
    "appwrite_api_key": "APPWRITE_API_KEY",
    "appwrite_database_id": "APPWRITE_DATABASE_ID",
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        invalid: list[str] | None = None,
    ):
        super().__init__(message)
        self.missing = missing or []
        self.invalid = invalid or []


class Settings(BaseSettings):
    """
    Central configuration for the sync job.

    All settings can be overridden via environment variables.
    Prefix is not used so the variable names match the ones the
    scheduler already exports (e.g., APPWRITE_ENDPOINT, THM_USERNAME).
    Empty values count as unset, since that is how the scheduler passes
    a secret that was never defined.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Document store (required)
    appwrite_endpoint: str | None = None
    appwrite_project_id: str | None = None
    appwrite_api_key: str | None = None
    appwrite_database_id: str | None = None

    # Collections
    appwrite_collection_id: str = "articles"
    appwrite_platform_collection_id: str = "platform_stats"

    # News feed
    rss_feed_url: str = DEFAULT_FEED_URL
    rss_source_label: str = "The Hacker News"
    news_url_max_length: int = Field(default=255, ge=1)

    # TryHackMe
    thm_username: str | None = None
    thm_total_users: int = Field(default=3_000_000, ge=1)

    # HackTheBox
    htb_username: str | None = None
    htb_user_id: str | None = None
    htb_api_token: str | None = None
    htb_field_priority: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Per-field key priority overrides, e.g. {\"rank\": [\"global_ranking\"]}",
    )

    # OffSec Proving Grounds (no public API, stats are supplied by the operator)
    offsec_username: str | None = None
    offsec_rank: int = Field(default=0, ge=0)
    offsec_pwned: int = Field(default=0, ge=0)
    offsec_percentile: str = "ELITE"

    # HTTP and run limits
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    max_http_retries: int = Field(default=2, ge=0, le=10)
    max_backoff_seconds: float = Field(default=10.0, ge=0.0, le=300.0)
    source_timeout_seconds: float = Field(default=60.0, gt=0)
    run_deadline_seconds: float = Field(default=300.0, gt=0)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def missing_required(self) -> list[str]:
        """Environment variable names of required settings that are unset."""
        return [
            env_name
            for attr, env_name in REQUIRED_SETTINGS.items()
            if not getattr(self, attr)
        ]

    def validate_required(self) -> None:
        """
        Fail fast when the document store cannot be reached.

        Raises:
            ConfigurationError: Listing every missing variable
        """
        missing = self.missing_required
        if missing:
            raise ConfigurationError(
                f"Missing required env vars: {', '.join(missing)}",
                missing=missing,
            )

    @property
    def tryhackme_configured(self) -> bool:
        """Check if TryHackMe sync is configured."""
        return bool(self.thm_username)

    @property
    def hackthebox_configured(self) -> bool:
        """Check if HackTheBox sync is configured."""
        return bool(self.htb_username or self.htb_user_id) and bool(self.htb_api_token)

    @property
    def offsec_configured(self) -> bool:
        """Check if OffSec stats are configured."""
        return bool(self.offsec_username) and (self.offsec_rank > 0 or self.offsec_pwned > 0)


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment.

    Raises:
        ConfigurationError: A variable is set but cannot be parsed
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        invalid = [str(error["loc"][0]).upper() for error in e.errors() if error["loc"]]
        raise ConfigurationError(
            f"Invalid env vars: {', '.join(invalid)}",
            invalid=invalid,
        ) from e
    except SettingsError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
