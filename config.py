"""Application Settings"""
import logging
import sys
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from RENTAL_* environment variables or .env"""

    model_config = SettingsConfigDict(env_prefix="RENTAL_", env_file=".env", env_file_encoding="utf-8")

    app_name: str = "Rental Reservation API"
    log_level: str = "INFO"

    # Pricing
    currency: str = Field(default="USD", min_length=3, max_length=3)

    # Bearer tokens issued by the identity collaborator
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    operator_scope: str = "bookings:operate"

    # Availability
    availability_window_days: int = Field(default=90, ge=1)
    max_availability_days: int = Field(default=366, ge=1)

    # Store retries (transient failures only)
    store_retry_attempts: int = Field(default=3, ge=1)
    store_retry_min_wait: float = 0.1
    store_retry_max_wait: float = 2.0

    default_page_size: int = Field(default=20, ge=1, le=100)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
