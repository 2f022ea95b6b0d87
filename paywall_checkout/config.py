"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (session key-value store)
    database_url: str = "sqlite:///./paywall.db"

    # External Services
    catalog_api_base: str = "http://localhost:3001"

    # Service
    service_name: str = "paywall-checkout"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Simulated payment gateway
    sandbox_mode: bool = True  # Enables the Luhn bypass for the test card
    success_card_number: str = "4242424242424242"
    success_auth_password: str = "123456"

    # Flows kept in memory; idle ones beyond this are rebuilt from storage on demand
    max_cached_flows: int = 1000

    # Secure checkout timers (seconds)
    auth_countdown_seconds: int = 300
    auth_reveal_delay_seconds: float = 2.0
    processing_delay_seconds: float = 3.0


settings = Settings()
