import logging
import os
from dataclasses import dataclass
from typing import Optional

# -----------------------------
# Configuration de l'application
# -----------------------------
DEFAULT_API_BASE_URL = "http://localhost:9000"
DEFAULT_PAGE_SIZE = 10
DEFAULT_DEBOUNCE_SECONDS = 0.5
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class AppConfig:
    api_base_url: str = DEFAULT_API_BASE_URL
    page_size: int = DEFAULT_PAGE_SIZE
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    # None = no timeout on API calls
    request_timeout: Optional[float] = None
    log_level: str = "INFO"


def _env_number(name: str, cast, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config() -> AppConfig:
    """Build the config from COMMISSION_* environment variables"""
    page_size = _env_number("COMMISSION_PAGE_SIZE", int, DEFAULT_PAGE_SIZE)
    if page_size <= 0:
        raise ValueError(f"Invalid value for COMMISSION_PAGE_SIZE: {page_size!r}")

    return AppConfig(
        api_base_url=os.getenv("COMMISSION_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        page_size=page_size,
        debounce_seconds=_env_number("COMMISSION_DEBOUNCE_SECONDS", float, DEFAULT_DEBOUNCE_SECONDS),
        request_timeout=_env_number("COMMISSION_REQUEST_TIMEOUT", float, None),
        log_level=os.getenv("COMMISSION_LOG_LEVEL", "INFO"),
    )


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return logging.getLogger("commission_desk")
