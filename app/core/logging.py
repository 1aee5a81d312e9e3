"""
Logging utilities for the FastAPI application.

Provides a consistent logging format and a helper for keeping credentials
out of log output.
"""

import logging
import sys
from typing import Optional


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """Return a log-safe rendition of a token, key or client secret."""
    if not value:
        return "<empty>"
    if len(value) <= visible * 2:
        return "***"
    return f"{value[:visible]}***"


__all__ = ["configure_logging", "mask_secret"]
