from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/goalalerts"
    default_tz: str = "UTC"
    api_key: str | None = None
    log_level: str = "INFO"

    # "memory" keeps engine state in-process; "sql" persists it via database_url
    state_backend: str = "memory"

    queue_max_size: int = 50
    platform_auto_close_seconds: float = 8.0
    toast_ttl_seconds: float = 5.0
    toast_max_entries: int = 20

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
