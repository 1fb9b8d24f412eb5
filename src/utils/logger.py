"""Logging setup shared by the API and the services."""
import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level=None) -> logging.Logger:
    """Attach one stream handler to the package root logger (idempotent)."""
    if level is None:
        from config.settings import LOG_LEVEL
        level = LOG_LEVEL
    logger = logging.getLogger("src")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
