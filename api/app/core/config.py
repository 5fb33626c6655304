"""Application configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "PadelDesk"
    debug: bool = True
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://padeldesk:padeldesk@db:5432/padeldesk"
    database_echo: bool = False

    # Club defaults, used when a club row leaves these unset
    default_timezone: str = "Europe/Madrid"
    default_booking_duration: int = 90  # minutes
    default_opening_hour: int = 8
    default_closing_hour: int = 23

    # Grid: a finished reservation is flagged unpaid after this many minutes
    overdue_payment_grace_minutes: int = 5

    model_config = {"env_prefix": "PD_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
