"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "billing-engine"
    log_level: str = "INFO"

    # Schedule form defaults
    default_currency: str = "usd"
    default_cadence: str = "Monthly"
    default_cycle_count: int = 1
    max_cycle_count: int = 520  # ten years of weekly payments


settings = Settings()
