"""
Configuration helpers for the Nexus Cards backend.

Exposes a frozen Settings object read from environment variables so that
routers/services do not fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_JWT_SECRET = "dev-insecure-secret"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    log_level: str
    jwt_secret: str
    jwt_algorithm: str
    jwt_ttl_seconds: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    password_reset_ttl: int
    email_verification_ttl_seconds: int
    upload_dir: str
    max_upload_bytes: int
    stripe_secret_key: str
    stripe_webhook_secret: str
    stripe_price_id_pro: str
    stripe_price_id_premium: str
    admin_emails: frozenset[str]

    @property
    def billing_enabled(self) -> bool:
        return bool(self.stripe_secret_key)


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> frozenset[str]:
        return frozenset(x.strip().lower() for x in (value or "").split(",") if x.strip())

    settings = Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./nexus_cards.db"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_ttl_seconds=_int(os.getenv("JWT_TTL_SECONDS", "604800"), 604800),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        password_reset_ttl=_int(os.getenv("PASSWORD_RESET_TTL", "3600"), 3600),
        email_verification_ttl_seconds=_int(os.getenv("EMAIL_VERIFICATION_TTL_SECONDS", "86400"), 86400),
        upload_dir=os.getenv("UPLOAD_DIR", "./uploads"),
        max_upload_bytes=_int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)), 5 * 1024 * 1024),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
        stripe_price_id_pro=os.getenv("STRIPE_PRICE_ID_PRO", ""),
        stripe_price_id_premium=os.getenv("STRIPE_PRICE_ID_PREMIUM", ""),
        admin_emails=_list(os.getenv("ADMIN_EMAILS")),
    )
    if settings.app_env == "prod" and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be configured in production.")
    return settings
