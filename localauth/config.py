"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from localauth import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "localauth"
    app_version: str = __version__
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_path: str = "./data/localauth.db"

    # Sessions
    session_secret_key: SecretStr = SecretStr("change-me")
    session_cookie_name: str = "auth.session"
    session_max_age_seconds: int = 14 * 24 * 60 * 60
    session_https_only: bool = False

    # One-time tokens
    token_backend: str = "sqlite"  # "sqlite" or "memory"
    token_purge_interval_seconds: float = 15 * 60

    # Email delivery (Mailgun). Without an API key messages are only logged.
    mailgun_domain: str | None = None
    mailgun_api_key: SecretStr | None = None
    mailgun_base_url: str = "https://api.mailgun.net/v3"
    email_timeout_seconds: float = 10.0

    # Circuit breaker for the email transport
    circuit_breaker_fail_max: int = 5
    circuit_breaker_timeout: float = 60.0

    # Transactional email metadata
    email_from: str = "from@example.com"
    welcome_email_subject: str = "Welcome New User"
    password_reset_email_subject: str = "Password Reset"
    password_reset_confirm_email_subject: str = "Password Reset Confirmation"
    password_reset_url_base: str = "http://localhost:8000/auth/forgot-password/"

    # Observability
    otel_enabled: bool = False
    otel_endpoint: str | None = None
    otel_console_export: bool = False
    otel_sample_rate: float = 1.0
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
