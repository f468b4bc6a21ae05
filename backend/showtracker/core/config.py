from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Show Tracker"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:////db/showtracker.db"

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    TIMEZONE: str = "Etc/UTC"

    # TheTVDB (no key disables every metadata operation)
    THETVDB_API_KEY: Optional[str] = None
    TVDB_BASE_URL: str = "https://api4.thetvdb.com/v4"
    TVDB_TIMEOUT: float = 30.0
    TVDB_EPISODE_PAGE_SIZE: int = 500
    TVDB_MAX_EPISODE_PAGES: int = 20
    TOKEN_TTL_DAYS: int = 25  # TVDB tokens last ~30 days; refresh a bit early
    SEARCH_LIMIT: int = 15

    # Cache / refresh
    CACHE_BATCH_SIZE: int = 400
    MANUAL_REFRESH_COOLDOWN_MINUTES: int = 15
    REFRESH_INTERVAL_HOURS: int = 12
    NEW_EPISODE_WINDOW_DAYS: int = 14

    # Security
    SECRET_KEY: str = "changethis_to_a_secure_random_string_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60  # 1 hour, same as the identity provider's ID tokens

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
