from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    log_level: str
    database_url: str
    endpoint_url: str
    auth_token: str
    max_attempts: int
    retry_delay_seconds: float
    request_timeout_seconds: float
    max_workers: int
    input_dir: str
    schedule_hour_utc: int
    schedule_minute_utc: int


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "factbuffer"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./factbuffer.db"),
        endpoint_url=os.getenv("ENDPOINT_URL", "https://development.kpi-drive.ru/_api/facts/save_fact"),
        auth_token=os.getenv("AUTH_TOKEN", "48ab34464a5573519725deb5865cc74c"),
        max_attempts=int(os.getenv("MAX_ATTEMPTS", "3")),
        retry_delay_seconds=float(os.getenv("RETRY_DELAY_SECONDS", "1")),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "5")),
        max_workers=int(os.getenv("MAX_WORKERS", "0")),
        input_dir=os.getenv("INPUT_DIR", "./data/input"),
        schedule_hour_utc=int(os.getenv("SCHEDULE_HOUR_UTC", "2")),
        schedule_minute_utc=int(os.getenv("SCHEDULE_MINUTE_UTC", "0")),
    )
