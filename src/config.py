from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Environment
    environment: str = "development"  # "development" or "production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/campaigns.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False

    # Scheduler / worker
    # Only one process may execute jobs: turn off when running `cli.py worker`
    run_worker_in_api: bool = True
    scheduler_timezone: str = "UTC"
    worker_concurrency: int = 5
    job_max_attempts: int = 3
    retry_base_delay: int = 30  # seconds
    retry_max_delay: int = 1800  # seconds
    misfire_grace_time: int = 3600  # seconds
    low_progress_cron: str = "0 10 * * *"  # daily at 10:00
    expired_campaign_cron: str = "0 8 * * *"  # daily at 08:00
    milestone_thresholds: str = "25,50,75,100"

    # Notifications
    notification_enabled: bool = True
    push_webhook_url: str = ""

    # SMS (Twilio)
    sms_enabled: bool = True
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""

    # CORS (comma-separated origins, empty means localhost only)
    cors_origins: str = ""

    # Admin
    admin_api_key: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def sync_database_url(self) -> str:
        return self.database_url.replace("+aiosqlite", "")

    @property
    def milestones(self) -> List[int]:
        return sorted(
            int(value) for value in self.milestone_thresholds.split(",") if value.strip()
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
