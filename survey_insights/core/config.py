"""Application configuration"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Survey Insights API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Security
    # WHY: Tokens are issued by the auth service; we only verify them
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./survey_insights.db"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Analytics
    TEXT_SUMMARY_LIMIT: int = 5  # Text answers surfaced per question
    RATING_MIN: int = 1
    RATING_MAX: int = 10
    REJECT_OUT_OF_RANGE_RATINGS: bool = False
    AVERAGE_PRECISION: int = 2

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        return self.DATABASE_URL


settings = Settings()
