"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # so DB_HOST works regardless of case
    )

    # Database fields (read from .env)
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "codepool"
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_pool_size: int = 10
    db_pool_timeout: float = 30.0

    # Full URL (DATABASE_URL); takes precedence over the db_* fields
    database_url: str | None = None

    # Pool limits
    max_code_length: int = 50
    max_codes_per_pool: int = 10_000
    max_pool_name_length: int = 100

    # Used when an automation has no fallback message of its own
    default_fallback_message: str = "Sorry, all codes have been claimed!"

    # App
    log_level: str = "INFO"


settings = Settings()
