"""
Configuration management using Pydantic settings.
Handles database URL, JWT secrets, payment gateway credentials and environment variables.
"""

from pydantic import validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache
import os


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application configuration
    app_name: str = "Rental Bookings API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    testing: bool = False
    log_level: str = "INFO"

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/rentals"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    jwt_refresh_token_expire_days: int = 7

    # File upload configuration
    upload_dir: str = "./uploads"
    public_media_url: str = "/media"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_file_types: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # Payment gateway configuration
    razorpay_key_id: str = "rzp_test_replace_with_key"
    razorpay_key_secret: str = "replace_with_secret"
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"
    currency_subunit: int = 100
    payment_method: str = "razorpay"

    # Timeouts for calls to external collaborators
    gateway_timeout_seconds: float = 10.0
    operation_timeout_seconds: float = 15.0

    # Booking rules
    reject_overlapping_bookings: bool = False

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Pagination defaults
    default_page_size: int = 20
    max_page_size: int = 100

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @validator("database_url", pre=True)
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @validator("jwt_secret_key", pre=True)
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @validator("environment")
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @validator("currency_subunit")
    def validate_currency_subunit(cls, v):
        """Currency subunit must be a positive multiplier (100 for paise/cents)."""
        if v <= 0:
            raise ValueError("CURRENCY_SUBUNIT must be positive")
        return v

    @validator("upload_dir", pre=True)
    def create_upload_directories(cls, v):
        """Ensure upload directory exists."""
        if v and not os.path.exists(v):
            os.makedirs(v, exist_ok=True)
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing" or self.testing

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
