"""
Configuration settings for vecsearch.
This module manages environment variables and library-wide defaults.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main settings class for vecsearch."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Project settings
    PROJECT_NAME: str = "vecsearch"
    VERSION: str = "0.3.0"

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # Redis connection settings
    REDIS_URL: str = Field(default="redis://localhost:6379")
    REDIS_SOCKET_TIMEOUT: float = Field(default=30.0, gt=0)
    REDIS_HEALTH_CHECK_TIMEOUT: float = Field(default=2.0, gt=0)

    # Index and query defaults
    KEY_SEPARATOR: str = Field(default=":")
    DEFAULT_NUM_RESULTS: int = Field(default=10, gt=0)
    DEFAULT_DIALECT: int = Field(default=2, ge=1)
    LOAD_BATCH_SIZE: int = Field(default=200, gt=0)

    # Vectorizer settings
    EMBEDDING_MODEL: str = Field(default="sentence-transformers/all-mpnet-base-v2")
    EMBEDDING_BATCH_SIZE: int = Field(default=32, gt=0)

    # Semantic router settings
    ROUTE_DISTANCE_THRESHOLD: float = Field(default=0.5, gt=0, le=2)

    # Semantic cache settings
    CACHE_DISTANCE_THRESHOLD: float = Field(default=0.2, gt=0, le=2)

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: Optional[str] = Field(default=None)
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get library settings."""
    return settings
