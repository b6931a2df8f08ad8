"""
Application configuration using pydantic-settings.
All config is loaded once at startup - scripts and the API share it.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache

APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    allowed_origins: str = "*"  # Comma-separated CORS origins

    # Database
    database_url: str
    database_pool_size: int = 10
    database_max_overflow: int = 5

    # Sentry
    sentry_dsn: str = ""

    # Loyverse webhook
    loyverse_webhook_secret: str = ""
    loyverse_enforce_signature: bool = False

    # POS sales
    pos_payment_method: str = "Loyverse"
    pos_default_category: str = "Geral"
    sale_processor: str = "procedure"  # procedure | orm

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
