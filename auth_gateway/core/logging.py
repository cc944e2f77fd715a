"""
Logging utilities for the HTTP application and the Lambda entrypoint.

Provides a consistent logging format and keeps the AWS SDK quiet unless the
application itself runs at DEBUG.
"""

import logging
import sys

_NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the service's line format."""
    resolved = level.upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    if resolved != "DEBUG":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
