"""
Logging configuration for the Costa pipeline runner.

Importing the package only attaches a NullHandler to the "costa" logger.
Handlers and levels are set by `setup_logging`, which the pipeline entry
point calls; a host application can call it itself or configure logging its
own way.
"""
import logging
import sys
from typing import Optional

from costa.core.config import settings

# Global logger instance
logger = logging.getLogger("costa")
if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
    logger.addHandler(logging.NullHandler())


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Setup runner logging, defaulting to the configured log level."""
    level = (level or settings.log_level).upper()

    # Configure root logger; a no-op if the host already did
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logger.setLevel(getattr(logging, level))

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    if name:
        return logging.getLogger(f"costa.{name}")
    return logger
