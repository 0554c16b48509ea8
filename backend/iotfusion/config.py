import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

API_VERSION = "1.0.0"
DEFAULT_SIGFOX_ENDPOINT = "https://callback-iot.onrender.com/data"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _split_origins(raw: str | None) -> list[str]:
    if not raw:
        return ["*"]
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


@dataclass
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    sigfox_endpoint: str = DEFAULT_SIGFOX_ENDPOINT
    request_timeout: float = 10.0
    retries: int = 3
    retry_backoff: float = 1.0
    max_records: int = 2
    cache_ttl: float = 30.0
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    environment: str = "development"
    reload: bool = False

    def validate(self) -> None:
        if not self.sigfox_endpoint:
            raise ValueError("Missing required configuration: sigfox_endpoint")
        if self.port <= 0:
            raise ValueError("Missing required configuration: port")
        if self.retries < 1:
            raise ValueError("retries must be at least 1")
        if self.max_records < 1:
            raise ValueError("max_records must be at least 1")


def load_settings() -> Settings:
    """Load settings from the environment with sensible defaults."""

    settings = Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        sigfox_endpoint=os.getenv("SIGFOX_ENDPOINT", DEFAULT_SIGFOX_ENDPOINT).strip(),
        request_timeout=_env_float("SIGFOX_TIMEOUT", 10.0),
        retries=_env_int("SIGFOX_RETRIES", 3),
        retry_backoff=_env_float("SIGFOX_RETRY_BACKOFF", 1.0),
        max_records=_env_int("MAX_RECORDS", 2),
        cache_ttl=_env_float("CACHE_TTL", 30.0),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        environment=os.getenv("APP_ENV", "development"),
        reload=_env_bool("RELOAD", False),
    )
    settings.validate()
    return settings
