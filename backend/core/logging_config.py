"""
Logging Configuration

loguru sinks for the insights engine. Every module logs through a logger
bound to its component (upload, extraction, insights, ...), and the
component name is part of each line.
"""

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>.<cyan>{function}</cyan> | <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]}.{function}:{line} | {message}"

_configured = False


def configure_logging(settings: Settings) -> None:
    """Install the console and daily file sinks once per process."""
    global _configured
    if _configured:
        return

    logger.remove()
    logger.configure(extra={"component": "app"})
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.log_level, colorize=True)
    logger.add(
        str(Path(settings.log_dir) / "personal_insights_{time:YYYY-MM-DD}.log"),
        format=FILE_FORMAT,
        level=settings.log_level,
        rotation="10 MB",
        retention="7 days",
        enqueue=True,
    )
    _configured = True


def get_logger(component: str):
    """Logger bound to a component name."""
    return logger.bind(component=component)


configure_logging(get_settings())

upload_logger = get_logger("upload")
extraction_logger = get_logger("extraction")
insights_logger = get_logger("insights")
llm_logger = get_logger("llm")
data_logger = get_logger("data")
cache_logger = get_logger("cache")
