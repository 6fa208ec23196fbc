"""
Utility helpers for Knowledge Funnel.

Provides:
- Structured logging configuration with timestamps.
- Wall-clock timing of pipeline steps.
- URL validation.
- Value clamping for progress percentages.
"""

import contextlib
import logging
import time
from typing import Generator
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(
    level: int = logging.INFO,
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt: str = "%Y-%m-%dT%H:%M:%S%z",
) -> None:
    """Configure the root logger with timestamped structured output."""
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, force=True)


@contextlib.contextmanager
def timed(label: str) -> Generator[None, None, None]:
    """Context manager that logs elapsed wall-clock time for *label*."""
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    logger.info("⏱  %s completed in %.2fs.", label, elapsed)


# ---------------------------------------------------------------------------
# URL helpers
# ---------------------------------------------------------------------------


def is_valid_url(url: str) -> bool:
    """Return ``True`` if *url* parses as an absolute URL.

    Any scheme is accepted (``https:``, ``file:``, ``blob:`` …) as long as
    something follows it.  Whitespace anywhere in the string is rejected.
    """
    if not isinstance(url, str) or not url or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.scheme[0].isalpha():
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.netloc)
    return bool(parsed.netloc or parsed.path)


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def clamp_progress(value: int, low: int = 0, high: int = 100) -> int:
    """Clamp a progress percentage into ``[low, high]``."""
    return max(low, min(high, int(value)))
