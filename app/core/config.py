"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Privacy Lens"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Database
    DATABASE_URL: Optional[str] = None

    # OpenAI Configuration
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.1
    OPENAI_MAX_TOKENS: int = 4000

    # Analysis
    AI_ANALYSIS_TIMEOUT: float = 25.0  # seconds, covers retries; keep below BATCH_ITEM_TIMEOUT
    ANALYSIS_VERSION: str = "1.0.0"
    QUALITY_GATE_ENFORCED: bool = False  # False = analyze regardless of quality score

    # Cache retention
    CACHE_RETENTION_DAYS: int = 90
    CACHE_MIN_ACCESS_COUNT: int = 5

    # Batch re-analysis
    BATCH_ENABLED: bool = True
    BATCH_INTERVAL_HOURS: float = 12.0
    BATCH_FRESHNESS_HOURS: float = 24.0
    BATCH_CHUNK_SIZE: int = 5
    BATCH_CONCURRENCY: int = 3
    BATCH_ITEM_TIMEOUT: float = 30.0  # seconds
    BATCH_CHUNK_DELAY: float = 1.0  # seconds

    # Document source (external scraper service)
    SCRAPER_SERVICE_URL: Optional[str] = None
    SCRAPER_API_KEY: Optional[str] = None
    SCRAPER_TIMEOUT: float = 20.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
