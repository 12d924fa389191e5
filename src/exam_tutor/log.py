"""Loguru sink configuration."""
import sys

from loguru import logger

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name}:{function} - {message}"


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Replace the default sink with a stderr sink and an optional file sink."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="1 MB", retention=5)
