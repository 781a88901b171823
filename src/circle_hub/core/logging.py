"""Logging setup for the Circle Hub service."""

import logging
import sys

from circle_hub.core.settings import settings


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a stdout handler to the ``circle_hub`` logger once."""
    logger = logging.getLogger("circle_hub")
    if logger.handlers:
        return logger  # already configured
    logger.setLevel(level or settings.log_level.upper())
    handler = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
    # request logs are noisy at the polling interval
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logger
