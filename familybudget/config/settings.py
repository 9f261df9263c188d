"""
Configuration Management for Family Budget API

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirestoreSettings(BaseSettings):
    """Firestore document database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIRESTORE_",
        extra="ignore"
    )

    project_id: str = Field(
        ...,
        description="Google Cloud project that hosts the Firestore database"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON file (application default credentials if unset)"
    )
    database: str = Field(
        default="(default)",
        description="Firestore database name"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firestore credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class FirebaseAuthSettings(BaseSettings):
    """Firebase ID token verification configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )

    project_id: str = Field(
        ...,
        description="Firebase project id (the expected token audience)"
    )


class MailSettings(BaseSettings):
    """Outbound SMTP configuration for invitation emails."""

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore"
    )

    host: str = Field(
        ...,
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    username: Optional[str] = Field(
        default=None,
        description="SMTP login user"
    )
    password: Optional[str] = Field(
        default=None,
        description="SMTP login password"
    )
    use_tls: bool = Field(
        default=True,
        description="Issue STARTTLS after connecting"
    )
    from_address: str = Field(
        ...,
        description="Sender address for invitation emails"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Socket timeout for the SMTP session"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    storage_backend: str = Field(
        default="firestore",
        pattern="^(firestore|memory)$",
        description="Document store backend"
    )

    # Reconciliation
    reconcile_batch_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Requests processed per reconciliation chunk"
    )

    # Edit history
    edit_history_days: int = Field(
        default=30,
        ge=1,
        description="Default look-back window for edit history reads"
    )

    # Invites
    invite_expiry_days: int = Field(
        default=7,
        ge=1,
        description="How long an invite link stays valid"
    )
    invite_base_url: str = Field(
        default="http://localhost:5173/accept-invite",
        description="Front-end URL that accepts invite tokens"
    )

    # HTTP
    api_host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to"
    )
    api_port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port the HTTP server listens on"
    )
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def firestore(self) -> FirestoreSettings:
        return FirestoreSettings()

    @property
    def firebase(self) -> FirebaseAuthSettings:
        return FirebaseAuthSettings()

    @property
    def mail(self) -> MailSettings:
        return MailSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("firestore", "firebase", "mail", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
