"""
Configuration management using Pydantic Settings
Loads and validates environment variables (and an optional .env file)
"""

from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Platform access tokens are never configured here: they are supplied
    per call by the caller's credential storage.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # OAuth application credentials (only needed for the OAuth connect flow)
    vercel_client_id: str = Field(default="", description="Vercel integration client ID")
    vercel_client_secret: str = Field(default="", description="Vercel integration client secret")
    netlify_client_id: str = Field(default="", description="Netlify OAuth application client ID")
    netlify_client_secret: str = Field(default="", description="Netlify OAuth application secret")
    cloudflare_client_id: str = Field(default="", description="Cloudflare OAuth client ID")
    cloudflare_client_secret: str = Field(default="", description="Cloudflare OAuth client secret")

    # Platform API endpoints
    github_api_url: str = Field(default="https://api.github.com")
    vercel_api_url: str = Field(default="https://api.vercel.com")
    netlify_api_url: str = Field(default="https://api.netlify.com/api/v1")
    cloudflare_api_url: str = Field(default="https://api.cloudflare.com/client/v4")

    # HTTP behaviour
    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single platform API request"
    )
    http_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for idempotent requests on network/5xx/429 errors"
    )
    http_retry_min_wait: float = Field(default=2.0, ge=0)
    http_retry_max_wait: float = Field(default=10.0, ge=0)

    # Deployment defaults
    github_workflow_id: str = Field(
        default="hugo.yml",
        description="Workflow file dispatched when deploying to GitHub Pages"
    )
    default_branch: str = Field(default="main")
    hugo_version: str = Field(default="0.123.0")
    hugo_build_command: str = Field(default="hugo --gc --minify")
    hugo_output_directory: str = Field(default="public")
    log_page_size: int = Field(
        default=100,
        ge=1,
        description="Lines returned per page of build logs"
    )
    auto_setup_max_attempts: int = Field(
        default=20,
        ge=1,
        description="Name candidates tried by auto-setup before giving up"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_to_file: bool = Field(
        default=False,
        description="Also write a daily log file into logs_dir"
    )
    logs_dir: Path = Field(default=Path("logs"))

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("github_api_url", "vercel_api_url", "netlify_api_url", "cloudflare_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get or create the settings singleton instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If an environment variable is present but invalid
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reset_settings():
    """
    Reset the settings singleton (useful for testing)
    """
    global _settings
    _settings = None
