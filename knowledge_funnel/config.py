"""
Configuration for Knowledge Funnel.

- Default paths for the database and the preferences file.
- Current-user resolution (``--user`` flag or ``KNOWLEDGE_FUNNEL_USER``).
- Persisted view preferences (JSON).
- Loading a custom keyword vocabulary from JSON.
"""

import json
import logging
import os
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from knowledge_funnel.categorizer import KeywordTable
from knowledge_funnel.models import SortOption

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/funnel.db"
DEFAULT_PREFS_PATH = "./data/preferences.json"
USER_ENV_VAR = "KNOWLEDGE_FUNNEL_USER"


# =========================================================================
# Current user
# =========================================================================


def resolve_user(explicit: Optional[str] = None) -> Optional[str]:
    """Return the signed-in user id, or ``None`` when nobody is signed in."""
    user = explicit if explicit is not None else os.environ.get(USER_ENV_VAR)
    if user is None or not user.strip():
        return None
    return user.strip()


# =========================================================================
# Preferences
# =========================================================================


class Preferences(BaseModel):
    """View preferences persisted between sessions."""

    view: Literal["grid", "roadmap"] = "grid"
    sort: SortOption = "date-desc"
    theme: Literal["light", "dark", "system"] = "system"


def load_preferences(path: str = DEFAULT_PREFS_PATH) -> Preferences:
    """Load preferences from *path*, falling back to defaults.

    A missing, unreadable or invalid file yields default preferences.
    """
    if not os.path.exists(path):
        return Preferences()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return Preferences.model_validate_json(fh.read())
    except (OSError, ValidationError) as exc:
        logger.warning("Ignoring unreadable preferences at %s: %s", path, exc)
        return Preferences()


def save_preferences(prefs: Preferences, path: str = DEFAULT_PREFS_PATH) -> None:
    """Write *prefs* to *path* as indented JSON."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(prefs.model_dump_json(indent=2))
    logger.info("Preferences saved → %s", path)


# =========================================================================
# Keyword vocabulary
# =========================================================================


def load_keyword_table(path: str) -> KeywordTable:
    """Load a ``{category: [phrase, ...]}`` JSON object into a table.

    The object's key order becomes the tie-break order.

    Raises:
        ValueError: If the file does not hold an object of string lists.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a JSON object of keyword lists in {path}")

    entries: Dict[str, List[str]] = {}
    for category, phrases in raw.items():
        if not isinstance(phrases, list) or not all(isinstance(p, str) for p in phrases):
            raise ValueError(f"Keywords for {category!r} must be a list of strings")
        entries[category] = phrases

    table = KeywordTable(entries)
    logger.info("Loaded %d categories from %s", len(table), path)
    return table
