"""
Configuration management using Pydantic settings.
Loaded once at process start and handed to the application factory.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings read from the environment or a .env file."""

    # Application configuration
    app_name: str = "Maskan Listings API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/property_sales"

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Single-use account tokens (email verification, password reset)
    verification_token_expire_minutes: int = 60
    reset_token_expire_minutes: int = 60

    # Request limits
    max_request_size: int = 110 * 1024 * 1024  # 110MB, covers 11 parts of 10MB
    request_timeout_seconds: float = 60.0

    # Upload configuration
    max_file_size: int = 10 * 1024 * 1024  # 10MB per part
    max_listing_images: int = 10
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp", "image/gif"]
    allowed_document_types: List[str] = ["application/pdf"]

    # Blob storage: "local", "cloudinary" or "vercel"
    storage_backend: str = "local"
    upload_dir: str = "./uploads"
    public_base_url: str = "http://localhost:8000/uploads"
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "maskan"
    vercel_blob_token: Optional[str] = None
    vercel_blob_api_url: str = "https://blob.vercel-storage.com"

    # Email: "console" or "smtp"
    email_backend: str = "console"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_timeout_seconds: float = 15.0

    # WhatsApp: "console" or "twilio"
    whatsapp_backend: str = "console"
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_whatsapp_number: Optional[str] = None

    # Front-end links used in emails and redirects
    frontend_url: str = "https://www.siddiqproperties.com"

    # API configuration
    api_prefix: str = "/api"
    cors_origins: List[str] = ["https://www.siddiqproperties.com"]

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v):
        allowed = ["local", "cloudinary", "vercel"]
        if v not in allowed:
            raise ValueError(f"Storage backend must be one of: {allowed}")
        return v

    @field_validator("email_backend", "whatsapp_backend")
    @classmethod
    def validate_notification_backend(cls, v, info):
        allowed = {"email_backend": ["console", "smtp"], "whatsapp_backend": ["console", "twilio"]}[info.field_name]
        if v not in allowed:
            raise ValueError(f"{info.field_name} must be one of: {allowed}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def uses_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "frozen": True,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()
