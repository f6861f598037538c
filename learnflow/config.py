from datetime import date

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./learnflow.db"
    REDIS_URL: str = "redis://localhost:6379/3"
    SECRET_KEY: str = "dev-secret-learnflow"
    JWT_ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    CACHE_TTL: int = 300  # 5 minutes
    # раньше этой даты не открывается ни один урок
    CURRICULUM_LAUNCH_DATE: date = date(2025, 9, 1)
    ACTIVITY_FEED_LIMIT: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
