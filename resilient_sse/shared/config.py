"""
MODULE OVERVIEW:
This module provides application-wide configuration using Pydantic Settings.

WHAT IS HAPPENING HERE:
We declare the default reconnect policy, HTTP timeouts and the demo server's
pacing in one place. Every value can be overridden from the environment or a
`.env` file, so a flaky staging endpoint can get a longer backoff without a
code change.
"""
import sys

from loguru import logger
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Reconnect policy defaults (milliseconds)
    SSE_MIN_RETRY_MS: int = 5000
    SSE_MAX_RETRY_MS: int = 5000
    SSE_MAX_RETRIES: int = 5

    # HTTP read timeout; None keeps a quiet but healthy stream open indefinitely
    SSE_READ_TIMEOUT_S: float | None = None

    # Demo server
    DEMO_EVENT_INTERVAL_S: float = 1.0
    DEMO_EVENTS_PER_CONNECTION: int = 5
    DEMO_HEARTBEAT_INTERVAL_S: float = 15.0

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with a stderr sink at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper())
