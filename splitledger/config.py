"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="SPLITLEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./splitledger.db"
    snapshot_id: str = "default"

    # Service
    service_name: str = "splitledger"
    log_level: str = "INFO"

    # Ledger
    default_currency: str = "USD"
    auto_settle_threshold: float = 1.0  # Materiality floor for settlement suggestions
    exact_split_tolerance: float = 0.01  # Money-rounding tolerance for exact splits
    activity_feed_limit: int = 50


settings = Settings()
