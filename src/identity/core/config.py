from functools import lru_cache
from urllib.parse import urlparse

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Identity & Access"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True  # Set to False in production

    # Security
    log_user_emails: bool = False  # Set to False in production for GDPR compliance
    trusted_proxy_ips: list[str] = []  # List of trusted proxy IPs for X-Forwarded-For
    allowed_app_url_domains: list[str] = ["localhost", "127.0.0.1"]  # Allowed domains for APP_URL
    # CSP for production (no unsafe-inline, no external CDN) - set to empty string to use default
    csp_production: str = "default-src 'self'; frame-ancestors 'none'"

    # Database
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full

    # Password hashing
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1

    # Login rate limiting (persistent, per IP + identifier)
    login_max_attempts: int = 5
    login_window_minutes: int = 15

    # Sessions
    session_idle_timeout_minutes: int = 30
    session_cookie_name: str = "session"
    session_cookie_secure: bool = True
    csrf_header_name: str = "X-CSRF-Token"

    # TOTP
    totp_issuer: str = "Identity & Access"
    totp_challenge_ttl_seconds: int = 300

    # Invitations
    invite_expire_days: int = 7
    invite_max_expire_hours: int = 168

    # Endpoint throttling (slowapi, per client IP)
    rate_limit_storage_uri: str = "memory://"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: int = 10  # Timeout for email API calls
    app_url: str = "http://localhost:3000"  # Frontend URL for registration links

    @field_validator("login_max_attempts", "login_window_minutes", "session_idle_timeout_minutes")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("app_url")
    @classmethod
    def validate_app_url(cls, v: str, info: ValidationInfo) -> str:
        """Validate APP_URL is from allowed domain list to prevent SSRF in emails."""
        allowed = info.data.get("allowed_app_url_domains", ["localhost", "127.0.0.1"])
        parsed = urlparse(v)
        hostname = parsed.hostname or ""

        if not any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed):
            raise ValueError(
                f"APP_URL domain '{hostname}' not in allowed list. "
                f"Add it to ALLOWED_APP_URL_DOMAINS or use: {allowed}"
            )
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
