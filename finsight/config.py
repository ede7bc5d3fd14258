"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Record store
    database_url: str = "sqlite:///./finsight.db"
    record_store_backend: str = "sql"  # sql | http
    records_api_base: str = "http://localhost:8001"

    # Service
    service_name: str = "finsight-engine"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Engine tuning
    assumed_tax_bracket: float = 0.22
    subscription_amount_tolerance: float = 0.05  # relative to the group mean
    max_amortization_periods: int = 600
    suggestion_limit: int = 6
    tips_per_response: int = 5


settings = Settings()
