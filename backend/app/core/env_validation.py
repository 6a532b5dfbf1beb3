"""
Runtime Environment Validation Module

Validates required environment variables at application startup.
If validation fails, the application refuses to start (hard fail).
"""

import os
import sys
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeSettings(BaseSettings):
    """Strict validation schema for the variables the API cannot run without."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # Firebase Authentication
    firebase_project_id: str
    google_application_credentials: Optional[str] = None

    # CORS
    allowed_origins: str

    app_name: str = "Buildstate"
    debug: bool = False

    # Optional integrations
    storage_provider: str = "gcs"
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    redis_url: Optional[str] = None
    smtp_host: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    blog_automation_enabled: bool = False


def _fail(*lines: str) -> None:
    for line in lines:
        print(line, file=sys.stderr)
    sys.exit(1)


def validate_environment() -> RuntimeSettings:
    """
    Validate all required environment variables at startup.

    Must be called before the FastAPI app starts.

    Raises:
        SystemExit: If validation fails (exit code 1)
    """
    try:
        settings = RuntimeSettings()
    except ValidationError as e:
        print("❌ FATAL: Environment validation failed", file=sys.stderr)
        print("\nMissing or invalid environment variables:", file=sys.stderr)
        for error in e.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            print(f"   • {field}: {error['msg']}", file=sys.stderr)
        _fail(
            "\nThe application cannot start with invalid configuration.",
            "Please check your .env file or environment variables.",
        )

    # 1. CORS: wildcard is not allowed outside debug
    if not settings.debug:
        origins = [o.strip() for o in settings.allowed_origins.split(",")]
        if "*" in origins:
            _fail(
                "❌ FATAL: Wildcard CORS origin (*) detected in production mode.",
                "   Set ALLOWED_ORIGINS to specific domains (comma-separated).",
            )

    # 2. Storage provider
    if settings.storage_provider not in ("gcs", "s3"):
        _fail(f"❌ FATAL: Invalid STORAGE_PROVIDER '{settings.storage_provider}'. Must be 'gcs' or 's3'.")

    # 3. Firebase credentials path
    if settings.google_application_credentials and not os.path.exists(settings.google_application_credentials):
        _fail(f"❌ FATAL: Firebase credentials file not found: {settings.google_application_credentials}")

    # 4. Database URL: PostgreSQL in production, anything SQLAlchemy accepts in debug
    if not settings.debug and not settings.database_url.startswith("postgresql"):
        _fail(
            "❌ FATAL: DATABASE_URL must be a PostgreSQL connection string "
            "(postgresql:// or postgresql+asyncpg://)"
        )

    # 5. Blog automation needs an Anthropic key
    if settings.blog_automation_enabled and not settings.anthropic_api_key:
        _fail("❌ FATAL: ANTHROPIC_API_KEY required when BLOG_AUTOMATION_ENABLED=true")

    if settings.stripe_secret_key and not settings.stripe_webhook_secret:
        print("⚠️  STRIPE_WEBHOOK_SECRET is not set; billing webhooks will be rejected", file=sys.stderr)

    print("✅ Environment validation passed")
    print(f"   App: {settings.app_name}")
    print(f"   Debug: {settings.debug}")
    print(f"   Redis cache: {'enabled' if settings.redis_url else 'disabled'}")
    print(f"   SMTP: {'enabled' if settings.smtp_host else 'disabled'}")
    print(f"   CORS Origins: {settings.allowed_origins}")

    return settings


if __name__ == "__main__":
    validate_environment()
    print("\n✅ All environment variables are valid!")
