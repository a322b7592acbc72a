"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "CampusCare"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_prefix: str = "/api/v1"
    allowed_origins_str: str = Field(
        default="http://localhost:5173,http://localhost:8080",
        alias="ALLOWED_ORIGINS",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Parse allowed origins from string."""
        origins = self.allowed_origins_str
        if origins.startswith("["):
            import json
            try:
                return json.loads(origins)
            except ValueError:
                pass
        return [o.strip() for o in origins.split(",") if o.strip()]

    # Primary relational store (Supabase Postgres)
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    database_pool_size: int = Field(default=5, ge=1, le=50)
    database_max_overflow: int = Field(default=10, ge=0, le=100)
    database_echo: bool = False  # Log SQL queries

    # Supabase project (storage REST API)
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")
    storage_bucket: str = Field(default="report123", alias="STORAGE_BUCKET")

    @property
    def supabase_configured(self) -> bool:
        """Check if the primary data collaborator is fully configured."""
        return bool(self.supabase_url and self.supabase_anon_key and self.database_url)

    @property
    def storage_configured(self) -> bool:
        """Check if object storage can be reached."""
        return bool(self.supabase_url and self.supabase_anon_key)

    # Firebase (identity + Firestore fallback)
    firebase_project_id: str | None = Field(default=None, alias="FIREBASE_PROJECT_ID")
    firebase_client_email: str | None = Field(default=None, alias="FIREBASE_CLIENT_EMAIL")
    firebase_private_key: str | None = Field(default=None, alias="FIREBASE_PRIVATE_KEY")
    firebase_web_api_key: str | None = Field(default=None, alias="FIREBASE_WEB_API_KEY")
    firestore_fallback: bool = Field(default=True, alias="FIRESTORE_FALLBACK")

    @property
    def firebase_enabled(self) -> bool:
        """Check if Firebase Admin credentials are configured."""
        return bool(self.firebase_project_id and self.firebase_client_email and self.firebase_private_key)

    @property
    def firestore_fallback_enabled(self) -> bool:
        return self.firestore_fallback and self.firebase_enabled

    # Authorization bootstrap: emails granted the admin role when the
    # token carries no admin claim.
    admin_emails_str: str = Field(default="admin@pccoepune.org", alias="ADMIN_EMAILS")

    @property
    def admin_emails(self) -> set[str]:
        return {e.strip().lower() for e in self.admin_emails_str.split(",") if e.strip()}

    # Notifications
    notification_queue_size: int = Field(default=100, ge=1)
    notification_failure_log_size: int = Field(default=200, ge=1)

    # Outbound HTTP (storage, identity toolkit)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def database_url_async(self) -> str | None:
        """Get async database URL (uses asyncpg for Postgres)."""
        url = self.database_url
        if not url:
            return None
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
