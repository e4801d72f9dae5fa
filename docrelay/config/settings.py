"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Variable names match the ones the relay has always read (PORT,
TTL_MINUTES, MAX_FILE_MB, PUBLIC_BASE_URL); matching is case-insensitive.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Document Relay"
    api_version: str = "0.1.0"
    port: int = Field(
        default=3000,
        description="Port the HTTP server listens on."
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Base URL used in fileUrl when the request carries no forwarding headers. Defaults to http://localhost:<port>."
    )

    # Storage behavior
    ttl_minutes: float = Field(
        default=10,
        description="Minutes an uploaded document stays retrievable. Fractions allowed."
    )
    max_file_mb: int = Field(
        default=5,
        description="Maximum upload size in MB. Everything is held in RAM, so keep it small."
    )
    sweep_interval_seconds: float = Field(
        default=120,
        description="Period of the background expiry sweep."
    )

    # Filenames
    max_filename_length: int = Field(
        default=120,
        description="Longer display names are truncated, keeping the extension."
    )
    default_filename: str = Field(
        default="document",
        description="Display name used when the uploaded name sanitizes to nothing."
    )

    # Viewer
    viewer_base_url: str = Field(
        default="https://view.officeapps.live.com/op/embed.aspx",
        description="Office Online embed endpoint. The file URL is passed as ?src=."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Uploads come from file:// pages too, hence * by default."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def max_bytes(self) -> int:
        return self.max_file_mb * 1024 * 1024

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_minutes * 60

    @property
    def resolved_public_base_url(self) -> str:
        """Configured base URL without trailing slash, or the localhost default."""
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Return configuration problems that would make the relay unusable.

        Kept separate from Pydantic validation so the app can log every
        problem at startup instead of failing on the first.
        """
        problems = []

        if self.ttl_minutes <= 0:
            problems.append("TTL_MINUTES must be positive")
        if self.max_file_mb <= 0:
            problems.append("MAX_FILE_MB must be positive")
        if self.sweep_interval_seconds <= 0:
            problems.append("SWEEP_INTERVAL_SECONDS must be positive")
        if self.max_filename_length < 8:
            problems.append("MAX_FILENAME_LENGTH must be at least 8")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
