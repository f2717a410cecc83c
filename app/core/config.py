from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "reelstream"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: List[str] = ["*"]
    RATE_LIMIT_PER_MINUTE: int = 600
    TOKEN_RATE_LIMIT_PER_MINUTE: int = 60

    # Stream grants
    SITE_SECRET: str
    # Still accepted for verification during a secret rollover, never used to sign
    SITE_SECRET_PREVIOUS: Optional[str] = None
    ALGORITHM: str = "HS256"
    STREAM_TOKEN_LIFETIME_SECONDS: int = 6 * 60 * 60
    TOKEN_REFRESH_MARGIN_SECONDS: int = 5 * 60
    TOKEN_REFRESH_INTERVAL_SECONDS: Optional[int] = None

    # Origin media store
    BACKEND_URL: str = "http://0.0.0.0:6519"
    ORIGIN_TIMEOUT: float = 10.0
    ORIGIN_CHUNK_SIZE: int = 64 * 1024
    API_REQUEST_TIMEOUT: float = 10.0

    # Download links
    TELEGRAM_BOT_NAME: str = "reelnnbot"
    SHORTENER_API_URL: Optional[str] = None
    SHORTENER_API_KEY: Optional[str] = None

    @property
    def refresh_interval_seconds(self) -> int:
        if self.TOKEN_REFRESH_INTERVAL_SECONDS:
            return self.TOKEN_REFRESH_INTERVAL_SECONDS
        return max(self.STREAM_TOKEN_LIFETIME_SECONDS - self.TOKEN_REFRESH_MARGIN_SECONDS, 1)

    @property
    def previous_secrets(self) -> List[str]:
        return [self.SITE_SECRET_PREVIOUS] if self.SITE_SECRET_PREVIOUS else []

@lru_cache()
def get_settings() -> Settings:
    return Settings()
