# furniture_stock/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./furniture_stock.db"

    # Product code allocation (FUR-001, FUR-002, ...)
    CODE_PREFIX: str = "FUR"
    CODE_PAD_WIDTH: int = 3
    CODE_ALLOCATION_ATTEMPTS: int = 20
    CODE_RETRY_BACKOFF_SECONDS: float = 0.01

    # Stock mutation retries on transient storage conflicts
    STOCK_RETRY_ATTEMPTS: int = 5
    STOCK_RETRY_BACKOFF_SECONDS: float = 0.05

    # Report defaults
    LOW_STOCK_THRESHOLD: int = 5
    REPORT_LIMIT: int = 10
    REPORT_LIMIT_MAX: int = 100

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=str(env_path),
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
