"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Event Booking API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Record store: "memory" (in-process) or "sql" (SQLAlchemy)
    STORE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./event_booking.db"
    DB_ECHO: bool = False

    # Booking rules
    ENFORCE_CAPACITY: bool = True

    # Single admin account
    ADMIN_EMAIL: str = "admin@eventbooking.local"
    ADMIN_PASSWORD: str = "change-me"

    # JWT Auth
    SECRET_KEY: str = "super-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Notifications
    EMAIL_SENDER: str = "bookings@eventbooking.local"
    CURRENCY_SYMBOL: str = "₹"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
