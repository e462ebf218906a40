"""
NGO Portal - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: No secrets are hardcoded. Use .env for local development.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        SECRET_KEY: Token signing key. Required; the app refuses to start without it.
        JWT_ISSUER / JWT_AUDIENCE: Fixed iss/aud claims checked on every token
        SUPERADMIN_BOOTSTRAP_KEY: Shared key for the one-time superadmin creation path
        DATABASE_URL: SQLModel connection string
        ALLOWED_ORIGINS: CORS allowed origins for the dashboard and public site
        ADMIN_NOTIFICATION_EMAIL: Inbox told about new membership applications
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Security
    SECRET_KEY: str = ""  # Must be set via environment
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "ngo-portal"
    JWT_AUDIENCE: str = "ngo-portal-clients"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    SUPERADMIN_BOOTSTRAP_KEY: str = ""  # Empty disables bootstrap

    # Account lockout
    MAX_FAILED_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 30

    # Password reset
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30
    USED_RESET_TOKEN_RETENTION_HOURS: int = 24

    # Database (PostgreSQL for production, SQLite for development)
    DATABASE_URL: str = "sqlite:///./ngo_portal.db"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Outbound email
    SITE_URL: str = "http://localhost:3000"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: Optional[str] = None
    MAIL_FROM_NAME: str = "NGO Portal"
    ADMIN_NOTIFICATION_EMAIL: Optional[str] = None  # New membership applications; unset skips the email

    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
