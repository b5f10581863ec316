"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Where uploaded PDF files are kept."""
    LOCAL = "local"
    SUPABASE = "supabase"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every field can be overridden by the upper-case environment variable of
    the same name, or from a ``.env`` file in the working directory.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./essdesign.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(default=5, description="Number of persistent database connections")
    db_max_overflow: int = Field(default=10, description="Extra connections allowed during traffic bursts")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is recycled")

    # Authentication
    # Tokens are issued elsewhere; this service only reads the subject claim.
    # AUTH_ENABLED=false treats every request as anonymous (dev mode).
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    auth_enabled: bool = Field(
        default=False,
        description="Require a bearer token on every folder endpoint"
    )

    # Folder tree cache
    # Full folder responses are reused for this long. Writes in this process
    # invalidate immediately; writes from other processes show up after the TTL.
    tree_cache_ttl_seconds: float = Field(
        default=300.0,
        description="Seconds a cached folder response stays valid"
    )

    # Search
    search_result_limit: int = Field(
        default=100,
        description="Maximum number of folders returned by one search (0 = unlimited)"
    )

    # Blob storage
    storage_backend: StorageBackend = Field(
        default=StorageBackend.LOCAL,
        description="'local' for a directory on disk, 'supabase' for Supabase Storage"
    )
    storage_bucket: str = Field(default="design-pdfs", description="Bucket holding uploaded PDFs")
    local_storage_dir: str = Field(
        default="./storage",
        description="Root directory for the local storage backend"
    )
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_key: str = Field(default="", description="Supabase service-role key")
    signed_url_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of download URLs handed to clients"
    )
    storage_timeout_seconds: float = Field(default=120.0, description="Timeout for storage HTTP calls")

    # Upload notifications (Resend). Empty API key = notifications disabled.
    resend_api_key: str = Field(default="", description="Resend API key")
    notification_from_email: str = Field(default="noreply@essdesign.com")
    notification_from_name: str = Field(default="ESS Design System")
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL used to build links in notification emails"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('tree_cache_ttl_seconds')
    @classmethod
    def validate_cache_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TREE_CACHE_TTL_SECONDS must be positive")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, returns silently; main.py logs the warnings.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if not self.auth_enabled:
            errors.append("AUTH_ENABLED is false. Authentication must be enabled in production.")

        if self.storage_backend == StorageBackend.SUPABASE and not (self.supabase_url and self.supabase_key):
            errors.append("STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY.")

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    def uses_default_jwt_secret(self) -> bool:
        return self.jwt_secret_key == _DEFAULT_JWT_SECRET

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
