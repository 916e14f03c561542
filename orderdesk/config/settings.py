# orderdesk/config/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache
import os

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application Settings
    APP_NAME: str = "OrderDesk Fulfillment Core"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Database Settings
    DATABASE_URL: str = "sqlite:///./orderdesk.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_BUSY_TIMEOUT: int = 30  # seconds a SQLite writer waits for the lock

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    LOG_FILE: Optional[str] = None
    LOG_JSON: bool = False

    # CORS Settings
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Fulfillment Settings
    ALLOW_OVERSELL: bool = True
    REQUIRE_CORRECTION_REASON: bool = True
    CONFLICT_RETRY_ATTEMPTS: int = 3
    CONFLICT_RETRY_DELAY: float = 0.05  # seconds, doubled per attempt
    ORDER_NUMBER_START: int = 1001
    DEFAULT_CURRENCY: str = "GHS"

    # Notification Settings
    NOTIFICATIONS_ENABLED: bool = True

@lru_cache()
def get_settings() -> Settings:
    return get_settings_by_env(os.getenv("ORDERDESK_ENV", ""))

# Environment-specific settings
class DevelopmentSettings(Settings):
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

class ProductionSettings(Settings):
    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"
    LOG_JSON: bool = True

class TestingSettings(Settings):
    DATABASE_URL: str = "sqlite:///./test.db"
    NOTIFICATIONS_ENABLED: bool = False
    CONFLICT_RETRY_DELAY: float = 0.0

def get_settings_by_env(env: str = "development") -> Settings:
    if env == "development":
        return DevelopmentSettings()
    elif env == "production":
        return ProductionSettings()
    elif env == "testing":
        return TestingSettings()
    else:
        return Settings()

