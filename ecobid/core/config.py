"""
Application Configuration
"""
from decimal import Decimal
from functools import lru_cache
from typing import List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    APP_NAME: str = "EcoBid Auction Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    SERVICE_NAME: str = "ecobid"
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage
    STORE_BACKEND: str = "sql"  # sql | memory
    DATABASE_URL: str = "sqlite:///./ecobid.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 30
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Notifier
    NOTIFIER_BACKEND: str = "log"  # redis | log
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SOCKET_TIMEOUT: float = 0.5

    # Auction rules
    MIN_BID_INCREMENT: Decimal = Decimal("5")
    MAX_AUCTION_DURATION_MINUTES: int = 30 * 24 * 60
    CREDENTIAL_BYTES: int = 32

    # EcoPoints awarded on settlement
    SELLER_REWARD_POINTS: int = 30
    BUYER_REWARD_POINTS: int = 20

    # Optimistic concurrency
    CAS_MAX_RETRIES: int = 5
    CAS_RETRY_INITIAL_DELAY: float = 0.005  # seconds
    CAS_RETRY_MAX_DELAY: float = 0.1  # seconds

    # Background sweep
    EXPIRY_SWEEP_ENABLED: bool = True
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 30
    EXPIRY_SWEEP_BATCH_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("STORE_BACKEND", "NOTIFIER_BACKEND")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        return v.strip().lower()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
