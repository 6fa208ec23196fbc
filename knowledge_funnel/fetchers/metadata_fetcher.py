"""
Trafilatura-based page metadata fetcher.

Downloads a page with ``trafilatura.fetch_url`` and reads its title and
description with ``trafilatura.extract_metadata``.  Used to pre-fill the
title and notes of a resource added by URL.
"""

import logging
from typing import Tuple

import trafilatura

logger = logging.getLogger(__name__)

EMPTY_METADATA: Tuple[str, str] = ("", "")


def fetch_metadata(url: str) -> Tuple[str, str]:
    """Fetch the ``(title, description)`` of the page at *url*.

    Args:
        url: The page URL to fetch.

    Returns:
        A ``(title, description)`` tuple of stripped strings.  Either part
        is ``""`` when the page does not provide it; ``("", "")`` when the
        page cannot be fetched.

    Raises:
        No exceptions are raised; a failed fetch must never block adding
        the resource.
    """
    try:
        downloaded = trafilatura.fetch_url(url)
        if downloaded is None:
            logger.warning("trafilatura.fetch_url returned None for %s", url)
            return EMPTY_METADATA

        metadata = trafilatura.extract_metadata(downloaded)
        if metadata is None:
            logger.warning("No metadata found for %s", url)
            return EMPTY_METADATA

        title = (metadata.title or "").strip()
        description = (metadata.description or "").strip()
        logger.debug("Metadata for %s: title=%r", url, title)
        return title, description

    except Exception as exc:
        logger.error("Failed to fetch metadata for %s: %s", url, exc)
        return EMPTY_METADATA
