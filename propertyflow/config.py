# propertyflow/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_name: str = "PropertyFlow HQ"
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./propertyflow.db"

    # ---- Logging ----
    log_level: str = "INFO"
    sql_log_level: str = "WARNING"

    # Public URL used in emailed links (signing, invoices, bookings)
    app_base_url: str = "http://localhost:3000"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth / tenancy ----
    auth_mode: str = "dev"  # dev|jwt
    dev_auto_provision: bool = True

    dev_header_landlord_slug: str = "X-Landlord-Slug"
    dev_header_user_email: str = "X-User-Email"
    dev_header_user_role: str = "X-User-Role"

    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    password_pbkdf2_iters: int = 210_000

    # ---- Lease documents / signing ----
    default_state: str = "NV"
    signature_request_ttl_days: int = 30
    landlord_signature_ttl_days: int = 7
    max_signature_bytes: int = 5 * 1024 * 1024
    signing_reminder_after_hours: int = 24

    # ---- Storage ----
    storage_root: str = "./var/storage"

    # ---- Email (SMTP) ----
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_ssl: bool = False
    smtp_sender: str = "no-reply@propertyflowhq.local"
    smtp_max_retries: int = 3

    # ---- Payments ----
    stripe_secret_key: str | None = None
    currency: str = "usd"

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
