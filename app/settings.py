from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Storage (file-backed SQLite by default; use :memory: for isolated runs)
    DATABASE_URL: str = "sqlite+aiosqlite:///./sqlite/characters.db"

    # HTTP
    HOST: str = "0.0.0.0"  # nosec B104
    PORT: int = 3000
    CORS_ALLOW_ORIGIN_REGEX: str = ".*"

    # Observability
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str | None = None
    METRICS_ENABLED: bool = True


settings = Settings()
