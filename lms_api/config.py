from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    MONGODB_URI: str = "mongodb://localhost:27017/lms"
    MONGODB_DB_NAME: str = "lms"
    REDIS_URL: Optional[str] = None
    CACHE_EXPIRE: int = 60
    CORS_ORIGINS: list = ["*"]
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    REQUIRE_DEVICE_INFO: bool = True
    API_BASE_URL: str = "http://localhost:8000/api/v1"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
