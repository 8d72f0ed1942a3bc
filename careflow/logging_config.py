"""
Logging Setup
=============

CareFlow is a library; the host process decides when to call
setup_logging(). Every module logs through logging.getLogger(__name__).
"""

import logging
import sys
from typing import Optional

from careflow.config import get_settings


class CareFlowHandler(logging.StreamHandler):
    """Console handler installed by setup_logging()."""

    def __init__(self):
        super().__init__(sys.stdout)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Sets up structured logging with appropriate levels and formatting.

    Args:
        level: Override the level from settings
    """
    settings = get_settings()

    # Create formatter
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.log_level)

    # Console handler (only once, hosts may call this repeatedly)
    if not any(isinstance(h, CareFlowHandler) for h in root_logger.handlers):
        console_handler = CareFlowHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("langchain").setLevel(logging.WARNING)
