"""
Central configuration module for FYW Pay
Reads and validates environment variables with strict checks for production
"""
import os
import sys
from functools import lru_cache
from typing import Optional, List

from dotenv import load_dotenv

# Only load .env in development
if os.getenv("ENV", "dev").lower() == "dev":
    load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        print(f"  ⚠️  Invalid integer for {name}: {value!r}, using {default}", file=sys.stderr)
        return default


class Config:
    """
    Central configuration with environment variable validation

    Built once at startup and passed explicitly to the engine, the
    services and the app factory. Keyword overrides win over the
    environment, which is how tests build isolated instances.
    """

    VALID_ENVS = ("dev", "test", "staging", "prod")
    VALID_PROVIDERS = ("paystack", "flutterwave")

    def __init__(self, **overrides):
        """Initialize configuration and validate required variables"""
        # Environment
        self.ENV: str = os.getenv("ENV", "dev").lower()
        self.PORT: int = _env_int("PORT", 8000)

        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.DB_POOL_SIZE: int = _env_int("DB_POOL_SIZE", 10)
        self.DB_MAX_OVERFLOW: int = _env_int("DB_MAX_OVERFLOW", 10)
        self.DB_POOL_RECYCLE: int = _env_int("DB_POOL_RECYCLE", 900)
        self.DB_POOL_TIMEOUT: int = _env_int("DB_POOL_TIMEOUT", 30)

        # Admin auth
        self.JWT_SECRET: str = os.getenv("JWT_SECRET", "")
        self.JWT_EXPIRES_MINUTES: int = _env_int("JWT_EXPIRES_MINUTES", 24 * 60)
        self.ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "")
        self.ADMIN_PASSWORD: Optional[str] = os.getenv("ADMIN_PASSWORD")
        self.ADMIN_PASSWORD_HASH: Optional[str] = os.getenv("ADMIN_PASSWORD_HASH")

        # Payment providers
        self.PAYMENT_PROVIDER: str = os.getenv("PAYMENT_PROVIDER", "paystack").lower()
        self.PAYSTACK_SECRET_KEY: Optional[str] = os.getenv("PAYSTACK_SECRET_KEY")
        self.PAYSTACK_PUBLIC_KEY: Optional[str] = os.getenv("PAYSTACK_PUBLIC_KEY")
        self.FLUTTERWAVE_SECRET_KEY: Optional[str] = os.getenv("FLUTTERWAVE_SECRET_KEY")
        self.FLUTTERWAVE_PUBLIC_KEY: Optional[str] = os.getenv("FLUTTERWAVE_PUBLIC_KEY")
        self.FLUTTERWAVE_SECRET_HASH: Optional[str] = os.getenv("FLUTTERWAVE_SECRET_HASH")
        self.GATEWAY_TIMEOUT: int = _env_int("GATEWAY_TIMEOUT", 10)

        # URLs
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
        self.PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
        self.CORS_ORIGINS: List[str] = []

        # Invite storage
        self.STORAGE_PROVIDER: str = os.getenv("STORAGE_PROVIDER", "local").lower()
        self.STORAGE_PATH: str = os.getenv("STORAGE_PATH", "./storage")
        self.S3_BUCKET_NAME: Optional[str] = os.getenv("S3_BUCKET_NAME")
        self.S3_REGION: str = os.getenv("S3_REGION", "us-east-1")
        self.S3_ENDPOINT_URL: Optional[str] = os.getenv("S3_ENDPOINT_URL")

        # Email
        self.SMTP_HOST: Optional[str] = os.getenv("SMTP_HOST")
        self.SMTP_PORT: int = _env_int("SMTP_PORT", 587)
        self.SMTP_USER: Optional[str] = os.getenv("SMTP_USER")
        self.SMTP_PASSWORD: Optional[str] = os.getenv("SMTP_PASSWORD")
        self.SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
        self.EMAIL_FROM: str = os.getenv("EMAIL_FROM", "FYW Registration <noreply@example.com>")

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self._load_cors_origins()

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown configuration key: {key}")
            setattr(self, key, value)

        self._validate()

    def _load_cors_origins(self):
        """Load CORS origins from environment variable"""
        default_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
        cors_env = os.getenv("CORS_ORIGINS", "")
        if cors_env:
            env_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
            self.CORS_ORIGINS = default_origins + env_origins
        else:
            self.CORS_ORIGINS = default_origins
        if self.FRONTEND_URL not in self.CORS_ORIGINS:
            self.CORS_ORIGINS.append(self.FRONTEND_URL)

    def _validate(self):
        """Validate required configuration based on environment"""
        errors = []

        if self.ENV not in self.VALID_ENVS:
            errors.append(f"Invalid ENV value: {self.ENV}. Must be one of {', '.join(self.VALID_ENVS)}")

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required but not set")
        elif self.ENV in ["staging", "prod"] and not self.DATABASE_URL.startswith("postgresql"):
            errors.append("DATABASE_URL must be a PostgreSQL connection string in staging/production")

        if not self.JWT_SECRET:
            errors.append("JWT_SECRET is required but not set")
        elif len(self.JWT_SECRET) < 32:
            errors.append(f"JWT_SECRET must be at least 32 characters (current: {len(self.JWT_SECRET)})")

        if not self.ADMIN_EMAIL:
            errors.append("ADMIN_EMAIL is required but not set")
        if not self.ADMIN_PASSWORD and not self.ADMIN_PASSWORD_HASH:
            errors.append("ADMIN_PASSWORD or ADMIN_PASSWORD_HASH is required")

        if self.PAYMENT_PROVIDER not in self.VALID_PROVIDERS:
            errors.append(
                f"Invalid PAYMENT_PROVIDER: {self.PAYMENT_PROVIDER}. Must be one of {', '.join(self.VALID_PROVIDERS)}"
            )
        if self.PAYMENT_PROVIDER == "paystack" and not self.PAYSTACK_SECRET_KEY:
            errors.append("PAYSTACK_SECRET_KEY is required when PAYMENT_PROVIDER=paystack")
        if self.PAYMENT_PROVIDER == "flutterwave":
            if not self.FLUTTERWAVE_SECRET_KEY:
                errors.append("FLUTTERWAVE_SECRET_KEY is required when PAYMENT_PROVIDER=flutterwave")
            if not self.FLUTTERWAVE_SECRET_HASH:
                errors.append("FLUTTERWAVE_SECRET_HASH is required when PAYMENT_PROVIDER=flutterwave")

        if self.STORAGE_PROVIDER == "s3" and not self.S3_BUCKET_NAME:
            errors.append("S3_BUCKET_NAME is required when STORAGE_PROVIDER=s3")

        if self.ENV in ["staging", "prod"]:
            if not self.FRONTEND_URL.startswith("https://"):
                errors.append("FRONTEND_URL must use HTTPS in staging/production")
            if not self.PUBLIC_BASE_URL.startswith("https://"):
                errors.append("PUBLIC_BASE_URL must use HTTPS in staging/production")

        # Fail fast in staging/prod
        if errors and self.ENV in ["staging", "prod"]:
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION VALIDATION FAILED", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ❌ {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            sys.exit(1)

        if errors and self.ENV == "dev":
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION WARNINGS (dev mode - continuing)", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  ⚠️  {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)

        self.errors = errors

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode"""
        return self.ENV == "dev"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Process-wide configuration, built on first use"""
    return Config()
