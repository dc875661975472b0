"""
Centralized logging configuration.

Call setup_logging() once at startup; modules use logging.getLogger(__name__).
"""

import logging
import sys


def setup_logging(level: str = "INFO"):
    formatter = logging.Formatter(
        "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Prevent duplicate handlers
    if not root_logger.handlers:
        root_logger.addHandler(handler)
