"""
Logging utilities for hosts embedding the credential manager.

Output goes to stderr because stdio-based hosts reserve stdout for their
transport.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


__all__ = ["configure_logging"]
