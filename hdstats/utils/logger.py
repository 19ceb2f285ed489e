# hdstats/utils/logger.py
import sys

from loguru import logger

_LOGGER_CONFIGURED = False


def configure_logging(level: str = "INFO", force: bool = False) -> None:
    """
    Configure the global loguru sink once.

    Library modules just do ``from loguru import logger``; this only decides
    where records go and at what level.
    """
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED and not force:
        return

    logger.remove()
    logger.add(
        sink=sys.stderr,
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message}",
        backtrace=True,
        diagnose=False,
    )
    _LOGGER_CONFIGURED = True
