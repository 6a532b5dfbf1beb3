"""Application configuration using Pydantic Settings."""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageProvider(str, Enum):
    GCS = "gcs"
    S3 = "s3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "Buildstate"
    debug: bool = False
    api_prefix: str = "/api"
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"
    allowed_origins: str = "http://localhost:5173"

    # Database
    database_url: str
    database_echo: bool = False

    # Firebase Auth
    firebase_project_id: str
    google_application_credentials: Optional[str] = None

    # Trial
    trial_days: int = 14

    # Invites
    invite_expiry_days: int = 7

    # Storage
    storage_provider: StorageProvider = StorageProvider.GCS
    gcs_bucket_name: Optional[str] = None
    gcs_project_id: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = "us-east-1"
    s3_bucket_name: Optional[str] = None
    presign_ttl_seconds: int = 300
    max_upload_size_mb: int = 10

    # Redis cache
    redis_url: Optional[str] = None
    cache_ttl_seconds: int = 300

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_id_starter: Optional[str] = None
    stripe_price_id_professional: Optional[str] = None
    stripe_price_id_enterprise: Optional[str] = None

    # SMTP
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    email_from: str = "Buildstate <no-reply@buildstate.com.au>"

    # Anthropic / blog automation
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-5-sonnet-latest"
    blog_automation_enabled: bool = False
    blog_auto_publish: bool = False
    blog_cron_schedule: str = "0 9 * * *"
    blog_target_word_count: int = 1500
    blog_bot_email: str = "blog-bot@buildstate.com.au"

    # Scheduler
    cron_timezone: str = "UTC"
    maintenance_plans_enabled: bool = True
    scheduler_enabled: bool = True

    @property
    def bucket_name(self) -> str:
        """Get the appropriate bucket name based on storage provider."""
        if self.storage_provider == StorageProvider.GCS:
            if not self.gcs_bucket_name:
                raise ValueError("GCS_BUCKET_NAME required when STORAGE_PROVIDER=gcs")
            return self.gcs_bucket_name
        if not self.s3_bucket_name:
            raise ValueError("S3_BUCKET_NAME required when STORAGE_PROVIDER=s3")
        return self.s3_bucket_name

    @property
    def origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def price_id_for_plan(self, plan: str) -> Optional[str]:
        """Map a subscription plan name to its configured Stripe price id."""
        return {
            "STARTER": self.stripe_price_id_starter,
            "PROFESSIONAL": self.stripe_price_id_professional,
            "ENTERPRISE": self.stripe_price_id_enterprise,
        }.get(plan.upper())

    def plan_for_price_id(self, price_id: Optional[str]) -> Optional[str]:
        if not price_id:
            return None
        for plan in ("STARTER", "PROFESSIONAL", "ENTERPRISE"):
            if self.price_id_for_plan(plan) == price_id:
                return plan
        return None


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
