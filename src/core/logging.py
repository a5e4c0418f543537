"""
Logging configuration for the application
"""
import logging
import sys

from src.core.config import settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> None:
    """
    Configure the root logger once for the process
    """
    log_level = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    # SQL echo is controlled by the engine, keep the library logger quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
