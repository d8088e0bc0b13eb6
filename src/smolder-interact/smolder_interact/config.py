import logging
import os
import sys
from dataclasses import dataclass

DEFAULT_API_URL = "http://127.0.0.1:3000/api"
DEFAULT_HISTORY_DELAY_SECONDS = 2.0
LOGGER_NAME = "smolder_interact"


@dataclass
class Config:
    api_url: str = DEFAULT_API_URL
    request_timeout: int = 10
    max_retries: int = 3
    backoff_seconds: float = 0.5
    history_delay_seconds: float = DEFAULT_HISTORY_DELAY_SECONDS
    history_poll_interval_seconds: float = 2.0
    # 0 keeps the single fixed-delay refresh.
    history_poll_timeout_seconds: float = 0.0
    log_level: str = "WARNING"


def _env_number(name: str, default: str, cast: type) -> float:
    raw = os.getenv(name, default).strip()
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'.") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got '{raw}'.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    api_url = os.getenv("SMOLDER_API_URL", DEFAULT_API_URL).strip().rstrip("/")
    if not api_url:
        raise ValueError("SMOLDER_API_URL must not be empty.")

    return Config(
        api_url=api_url,
        request_timeout=int(_env_number("REQUEST_TIMEOUT", "10", int)),
        max_retries=max(1, int(_env_number("REQUEST_RETRIES", "3", int))),
        backoff_seconds=_env_number("REQUEST_BACKOFF_SECONDS", "0.5", float),
        history_delay_seconds=_env_number(
            "HISTORY_REFRESH_DELAY_SECONDS", str(DEFAULT_HISTORY_DELAY_SECONDS), float
        ),
        history_poll_interval_seconds=_env_number("HISTORY_POLL_INTERVAL_SECONDS", "2.0", float),
        history_poll_timeout_seconds=_env_number("HISTORY_POLL_TIMEOUT_SECONDS", "0", float),
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
    )


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach a stderr handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    return logger
