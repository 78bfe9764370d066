"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False)

    # Storage. An empty URL selects the in-memory store.
    database_url: str = Field(default="", alias="DATABASE_URL")
    seed_demo_data: bool = Field(default=False, alias="SEED_DEMO_DATA")

    # Leave rules
    default_leave_balance: int = Field(default=20, alias="DEFAULT_LEAVE_BALANCE")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    # Listing
    default_page_limit: int = Field(default=10, alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(default=100, alias="MAX_PAGE_LIMIT")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")


# Global settings instance
settings = Settings()
