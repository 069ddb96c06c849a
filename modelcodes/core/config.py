"""Application configuration."""
import sys
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://mcm_user:mcm_pass@db:5432/mcm_db"
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None

    # Environment configuration
    ENVIRONMENT: str = "development"  # "development" or "production"
    LOG_LEVEL: str = "INFO"

    # CORS configuration - comma-separated origins
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    # Code numbering defaults, used when the system_configs table has no active row
    DEFAULT_NUMBER_DIGITS: int = 2
    DEFAULT_EXTENSION_MAX_LENGTH: int = 3
    DEFAULT_EXTENSION_EXCLUDED_CHARS: str = "I,O"
    MAX_NUMBER_DIGITS: int = 5

    # Rows per INSERT statement when materialising a code range
    PREALLOCATION_CHUNK_SIZE: int = 1000

    class Config:
        env_file = ".env"

    def get_cors_origins(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate_production_settings(self) -> None:
        """Validate settings for production environment.

        Raises SystemExit if critical security settings are misconfigured.
        """
        if self.ENVIRONMENT == "production":
            if self.SECRET_KEY == "dev-secret-key-change-in-production":
                print("FATAL: SECRET_KEY must be changed in production!", file=sys.stderr)
                print("Set a secure random SECRET_KEY environment variable.", file=sys.stderr)
                sys.exit(1)

            if self.DATABASE_URL.startswith("sqlite"):
                print("WARNING: SQLite is not supported in production!", file=sys.stderr)
                print("Concurrent allocation relies on PostgreSQL row locking.", file=sys.stderr)


settings = Settings()
# Validate on startup
settings.validate_production_settings()
