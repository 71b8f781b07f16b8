"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Identity tokens
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"

    # Redis (outbound audit/notification events). Empty disables publishing.
    REDIS_URL: str = "redis://redis:6379/0"
    EVENT_QUEUE_KEY: str = "assessment:events"

    # Application
    APP_NAME: str = "Quiz Assessment Platform"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Quiz Settings
    MAX_QUIZ_QUESTIONS: int = 200
    TIME_LIMIT_GRACE_SECONDS: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
