"""
Utility functions for the Course Watcher pipeline.

This module provides:
- Central logging configuration
- URL helpers shared across modules
"""

import logging
import sys
from urllib.parse import urldefrag, urljoin, urlparse


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure and return the root logger for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO.

    Returns:
        Configured logger instance.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    logger = logging.getLogger("course_watcher")
    logger.setLevel(log_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Name for the logger, typically the module name.

    Returns:
        Logger instance configured as a child of the main application logger.
    """
    return logging.getLogger(f"course_watcher.{name}")


def normalize_url(url: str, base_url: str) -> str:
    """
    Resolve a potentially relative URL against a base and drop its fragment.

    Args:
        url: The URL to normalize (may be relative or absolute).
        base_url: The base URL to use for resolving relative URLs.

    Returns:
        Absolute URL string without a fragment.
    """
    parsed = urlparse(url)
    if not (parsed.scheme and parsed.netloc):
        url = urljoin(base_url, url)

    return urldefrag(url)[0]
