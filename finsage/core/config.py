# finsage/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME

logger = logging.getLogger(__name__)


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )
    database_url: str = Field(
        default="sqlite:///./finsage.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the relational store",
    )
    redis_url: Optional[str] = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis URL shared by Celery and the change-feed broadcaster",
    )

    # Identity provider tokens
    jwt_secret: SecretStr = Field(
        default=SecretStr("dev-jwt-secret-not-for-production"),
        alias="JWT_SECRET",
        description="Shared secret used to verify identity-provider JWTs",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: Optional[str] = Field(
        default="authenticated",
        alias="JWT_AUDIENCE",
        description="Expected aud claim; empty disables the audience check",
    )

    # Razorpay
    razorpay_key_id: str = Field(default="", alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: SecretStr = Field(default=SecretStr(""), alias="RAZORPAY_KEY_SECRET")
    currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")
    gateway_timeout_seconds: float = Field(
        default=30.0,
        alias="GATEWAY_TIMEOUT_SECONDS",
        description="Timeout applied to every payment gateway call (no retries)",
    )
    mark_payment_completed_on_verify: bool = Field(
        default=False,
        alias="MARK_PAYMENT_COMPLETED_ON_VERIFY",
        description="Promote Payment.status to completed when a checkout is verified",
    )

    # Email
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        alias="EMAIL_PROVIDER",
        description="Email provider name",
    )
    resend_api_key: Optional[str] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    from_email: str = Field(
        default=f"{BRAND_NAME} <noreply@finsage.co>",
        alias="FROM_EMAIL",
    )
    notifications_via_task_queue: bool = Field(
        default=False,
        alias="NOTIFICATIONS_VIA_TASK_QUEUE",
        description="Hand notification emails to Celery instead of sending inline",
    )
    support_email: str = Field(default="support@finsage.co", alias="SUPPORT_EMAIL")
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # HTTP surface
    cors_origins_raw: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma separated list of allowed browser origins",
    )
    internal_api_token: SecretStr = Field(
        default=SecretStr(""),
        alias="INTERNAL_API_TOKEN",
        description="Bearer token for scheduler-triggered internal endpoints",
    )

    # Messaging
    read_receipt_delay_seconds: float = Field(
        default=1.0,
        alias="READ_RECEIPT_DELAY_SECONDS",
        description="Delay before a live client marks incoming messages as read",
    )
    client_timeout_seconds: float = Field(
        default=15.0,
        alias="CLIENT_TIMEOUT_SECONDS",
        description="Timeout for messaging gateway calls made by the conversation client",
    )

    # Scheduled work
    business_timezone: str = Field(
        default="Asia/Kolkata",
        alias="BUSINESS_TIMEZONE",
        description="Timezone used to interpret naive session date/time values",
    )
    sweeper_interval_minutes: int = Field(default=5, alias="SWEEPER_INTERVAL_MINUTES")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("client_timeout_seconds")
    @classmethod
    def _clamp_client_timeout(cls, value: float) -> float:
        return min(max(value, 10.0), 30.0)

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_raw.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.razorpay_key_id and self.razorpay_key_secret.get_secret_value())


settings = Settings()
