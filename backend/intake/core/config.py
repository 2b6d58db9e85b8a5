import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    backend_base_url: str = "https://student-id-info-back-production.up.railway.app"
    request_timeout: float = 30.0

    upload_attempt_limit: int = 3
    rate_limit_cooldown_seconds: int = 30

    # bounds of the birth year picker
    birth_year_min: int = 1970
    birth_year_max: int = 2011

    # workflows untouched this long are dropped
    session_idle_seconds: float = 1800.0

    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

settings = Settings()

def setup_logging(level: str | None = None) -> None:
    """Configure root logging from settings."""
    name = (level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
