"""
Keyword-relevance categorization of learning resources.

Scores a ``(title, content)`` pair against an ordered keyword table and
returns the matching category labels, most relevant first:

1. Build the corpus ``f"{title} {content}"`` in lower case.
2. For every category, count whole-word, case-insensitive occurrences of
   each of its keyword phrases and sum them.
3. Drop categories with no matches.
4. Sort by match count descending; equal counts keep the table's
   declaration order.

Matching is anchored on ASCII word boundaries, so ``"java"`` does not match
inside ``"javascript"`` and multi-word phrases such as
``"machine learning"`` must appear contiguously.
"""

import logging
import re
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)


# =========================================================================
# Keyword table
# =========================================================================


class KeywordTable(Mapping[str, Tuple[str, ...]]):
    """Immutable ordered mapping ``category -> keyword phrases``.

    Declaration order is the canonical category order used to break ties
    between categories with the same match count.
    """

    def __init__(self, entries: Mapping[str, Iterable[str]]) -> None:
        table: Dict[str, Tuple[str, ...]] = {}
        for category, phrases in entries.items():
            label = category.strip().lower()
            if not label:
                raise ValueError("Category labels must be non-empty.")
            if label in table:
                raise ValueError(f"Duplicate category label: {label!r}")
            table[label] = tuple(p.lower() for p in phrases if p and p.strip())
        self._table = MappingProxyType(table)
        self._patterns: Dict[str, Tuple[Pattern[str], ...]] = {
            label: tuple(
                re.compile(r"\b" + re.escape(phrase) + r"\b", re.IGNORECASE | re.ASCII)
                for phrase in phrases
            )
            for label, phrases in table.items()
        }

    def __getitem__(self, category: str) -> Tuple[str, ...]:
        return self._table[category]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"KeywordTable({list(self._table)})"

    @property
    def categories(self) -> Tuple[str, ...]:
        """Category labels in canonical (declaration) order."""
        return tuple(self._table)

    def patterns(self, category: str) -> Tuple[Pattern[str], ...]:
        """Compiled word-boundary patterns for *category*'s phrases."""
        return self._patterns[category]


DEFAULT_KEYWORDS = KeywordTable({
    "programming": [
        "code", "programming", "javascript", "typescript", "python", "java",
        "react", "angular", "vue", "node", "api", "backend", "frontend",
        "fullstack", "web", "development", "github", "git", "coding",
        "software", "app", "developer",
    ],
    "design": [
        "design", "ui", "ux", "interface", "visual", "figma", "sketch",
        "adobe", "prototype", "wireframe", "layout", "typography", "color",
        "accessibility", "user experience", "user interface", "responsive",
    ],
    "business": [
        "business", "startup", "marketing", "strategy", "product",
        "management", "leadership", "entrepreneur", "sales", "growth",
        "analytics", "metrics", "revenue", "customer", "market", "saas",
        "b2b", "b2c",
    ],
    "learning": [
        "course", "tutorial", "learn", "guide", "education", "training",
        "workshop", "documentation", "reference", "resource", "book",
        "video", "lecture", "lesson", "study", "practice",
        "getting started", "intro", "introduction",
    ],
    "productivity": [
        "productivity", "workflow", "tools", "automation", "efficiency",
        "time", "management", "organization", "planning", "task", "project",
        "process", "methodology", "system",
    ],
    "technology": [
        "tech", "ai", "machine learning", "data", "cloud", "security",
        "devops", "infrastructure", "architecture", "database", "blockchain",
        "mobile", "iot", "artificial intelligence", "ml", "deep learning",
    ],
})


# =========================================================================
# Categorizer
# =========================================================================


def _as_text(value: Optional[str], name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")
    return value


class Categorizer:
    """Assigns category labels to free text using a :class:`KeywordTable`."""

    def __init__(self, table: Optional[KeywordTable] = None) -> None:
        self.table = table if table is not None else DEFAULT_KEYWORDS

    def score(self, title: Optional[str], content: Optional[str]) -> Dict[str, int]:
        """Return ``{category: match_count}`` for categories with matches.

        Keys follow the table's canonical order.
        """
        corpus = f"{_as_text(title, 'title')} {_as_text(content, 'content')}".lower()
        scores: Dict[str, int] = {}
        if not corpus.strip():
            return scores

        for category in self.table.categories:
            count = sum(
                len(pattern.findall(corpus))
                for pattern in self.table.patterns(category)
            )
            if count > 0:
                scores[category] = count
        return scores

    def categorize(self, title: Optional[str], content: Optional[str]) -> List[str]:
        """Return matching categories ordered by relevance (no duplicates)."""
        scores = self.score(title, content)
        rank = {category: i for i, category in enumerate(self.table.categories)}
        ordered = sorted(scores, key=lambda c: (-scores[c], rank[c]))
        logger.debug("Categorized %r → %s (scores=%s)", title, ordered, scores)
        return ordered


_DEFAULT_CATEGORIZER = Categorizer()


def categorize(
    title: Optional[str],
    content: Optional[str],
    table: Optional[KeywordTable] = None,
) -> List[str]:
    """Categorize *title* + *content* against *table* (default vocabulary)."""
    if table is None:
        return _DEFAULT_CATEGORIZER.categorize(title, content)
    return Categorizer(table).categorize(title, content)
