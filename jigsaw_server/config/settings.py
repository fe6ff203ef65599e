"""Environment configuration management for the reconstruction pipeline."""

from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Server configuration
    APP_NAME: str = "Jigsaw Reconstruction API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 9127

    # Telemetry storage
    REDIS_URL: str = "redis://localhost:6379"
    TELEMETRY_NAMESPACE: str = "jigsaw:telemetry"
    RUN_METRICS_TTL: int = 30 * 24 * 60 * 60  # 30 days

    # Reality checks
    MIN_CONTENT_LENGTH: int = 11
    MIN_VALID_YEAR: int = 1900
    REALITY_CONFIDENCE_THRESHOLD: float = 70.0

    # Truth checks
    TRUTH_CONFIDENCE_THRESHOLD: float = 70.0

    # Necessity checks
    NECESSITY_RELEVANCE_THRESHOLD: float = 50.0
    RECENCY_WINDOW_DAYS: int = 365
    RELEVANCE_TABLE_FILE: Optional[str] = None

    # Acceptance and review gating
    ACCEPTANCE_CONFIDENCE_THRESHOLD: float = 50.0
    HUMAN_REVIEW_LEVEL: int = 7
    VERIFY_MAX_WORKERS: int = 8

    # Reconstruction
    RECONSTRUCTION_MIN_LEVEL: int = 5
    ASSEMBLY_RETRY_FACTOR: int = 10
    COURT_READY_SCORE_THRESHOLD: float = 75.0

    # Review queue dispatch
    REVIEW_DISPATCH_URL: Optional[str] = None
    REVIEW_DISPATCH_TIMEOUT: float = 5.0
    REVIEW_DISPATCH_RETRIES: int = 3

    # CORS settings
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars without error

# Global settings instance
settings = Settings()

def get_cors_config() -> dict:
    """Get CORS configuration."""
    return {
        "allow_origins": settings.CORS_ORIGINS,
        "allow_credentials": settings.CORS_CREDENTIALS,
        "allow_methods": settings.CORS_METHODS,
        "allow_headers": settings.CORS_HEADERS,
    }
