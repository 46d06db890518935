# settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    APP_NAME: str = "stocktrack"
    HOST: str = "127.0.0.1"
    PORT: int = 7000

    DB_PATH: str = "./stocktrack.db"

    # required at startup; the lifespan refuses to start without it
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_SECONDS: int = 60 * 60  # 1h

    BCRYPT_ROUNDS: int = 12

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    LOG_LEVEL: str = "INFO"

    ITEMS_PER_PAGE: int = 12

    FILINGS_ALLOWED_HOSTS: list[str] = ["polygon.io", "sec.gov"]
    POLYGON_API_KEY: str | None = None

    # client side
    API_BASE_URL: str = "http://127.0.0.1:7000"
    CLIENT_STORAGE_PATH: str = "./.stocktrack/session.json"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

settings = Settings()
