"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./classroom.db"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    CORS_ORIGINS: str = "http://localhost:3000"
    DEFAULT_TIMEZONE: str = "Asia/Ho_Chi_Minh"  # IANA tz for naive deadlines
    PASS_THRESHOLD: float = 5.0
    UPLOAD_BASE_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
