"""
Pydantic models for Knowledge Funnel.

Resources: saved learning items and the fields entered before persisting them.
Roadmap: derived topic nodes and their summary (never persisted).
Import: aggregated result of a bulk URL import.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from knowledge_funnel.utils import clamp_progress

# =========================================================================
# Literals & constants
# =========================================================================

Difficulty = Literal["beginner", "intermediate", "advanced"]
SortOption = Literal["date-desc", "date-asc", "title", "progress"]

MAX_NOTES_LENGTH = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================================================================
# Resource models
# =========================================================================


class NewResource(BaseModel):
    """User-entered fields of a resource before it is persisted."""

    title: str
    url: str
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    categories: List[str] = Field(default_factory=list)
    is_completed: bool = False
    progress: int = 0

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> int:
        return clamp_progress(value if value is not None else 0)

    @field_validator("categories", mode="before")
    @classmethod
    def _default_categories(cls, value: Any) -> List[str]:
        return [] if value is None else value


class Resource(NewResource):
    """Mirrors a single row of the ``resources`` table plus its categories."""

    id: str
    created_at: datetime = Field(default_factory=_utcnow)
    user_id: Optional[str] = None


# =========================================================================
# Roadmap models
# =========================================================================


class RoadmapNode(BaseModel):
    """One topic of the learning roadmap, rebuilt on every render."""

    title: str
    description: str
    resources: List[Resource] = Field(default_factory=list)
    is_completed: bool = True
    difficulty: Difficulty = "beginner"
    categories: List[str] = Field(default_factory=list)
    locked: bool = False
    progress: float = 0.0


class RoadmapSummary(BaseModel):
    """Aggregate view of a built roadmap."""

    nodes: int = 0
    completed: int = 0
    locked: int = 0
    resources: int = 0
    difficulty_distribution: Dict[str, int] = Field(
        default_factory=lambda: {"beginner": 0, "intermediate": 0, "advanced": 0}
    )


# =========================================================================
# Import models
# =========================================================================


class ImportSummary(BaseModel):
    """Aggregated bulk-import summary that gets serialised to JSON."""

    total: int = 0
    added: int = 0
    invalid: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
