from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Tokens are issued by the auth service; we only verify them.
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"

    # Store routing
    # Fallback dark store for addresses without coordinates.
    DEFAULT_DARK_STORE_ID: Optional[str] = None

    # Geocoding (address entry convenience only, never used for routing)
    GEOCODING_BASE_URL: str = "https://nominatim.openstreetmap.org"
    GEOCODING_USER_AGENT: str = "QuickCartApp/1.0"
    GEOCODING_TIMEOUT: float = 10.0
    SERVICEABLE_CITY: str = "jaipur"

    # Rate limiting (slowapi storage URI, e.g. redis://redis:6379/0)
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
