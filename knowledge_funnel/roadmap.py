"""
Roadmap construction: topic grouping, difficulty scoring, ordering and
lock gating.

The roadmap is a heuristic sequence, not a prerequisite graph:

1. Group resources by their *first* category (resources without categories
   are left out).
2. Score each resource's difficulty from indicator phrases in its title and
   notes, then average the scores per topic.
3. Mark a topic completed when every resource in it is completed.
4. Order topics: incomplete before completed, then easier before harder.
5. Lock every topic that follows a topic with no completed resource.

Everything here is recomputed from the current resource list on each call;
nothing is persisted.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence, Union

import numpy as np

from knowledge_funnel.models import Difficulty, Resource, RoadmapNode, RoadmapSummary

logger = logging.getLogger(__name__)

ResourceLike = Union[Resource, Mapping[str, Any]]

# =========================================================================
# Difficulty indicators
# =========================================================================

ADVANCED_INDICATORS = ("advanced", "expert", "complex", "architecture", "optimization")
BEGINNER_INDICATORS = ("basic", "introduction", "getting started", "fundamentals", "101")

DIFFICULTY_RANK: Dict[str, int] = {"beginner": 0, "intermediate": 1, "advanced": 2}


def _field(resource: ResourceLike, name: str, default: Any) -> Any:
    """Read *name* from a model or a mapping, falling back to *default*."""
    if isinstance(resource, Mapping):
        value = resource.get(name, default)
    else:
        value = getattr(resource, name, default)
    return default if value is None else value


# =========================================================================
# Difficulty
# =========================================================================


def resource_difficulty(resource: ResourceLike) -> Difficulty:
    """Classify one resource by plain substring search of its title + notes.

    Advanced indicators win over beginner ones; no indicator means
    ``"intermediate"``.
    """
    text = f"{_field(resource, 'title', '')} {_field(resource, 'notes', '')}".lower()
    if any(term in text for term in ADVANCED_INDICATORS):
        return "advanced"
    if any(term in text for term in BEGINNER_INDICATORS):
        return "beginner"
    return "intermediate"


def node_difficulty(resources: Sequence[ResourceLike]) -> Difficulty:
    """Average the difficulty of *resources* into a single bucket.

    Raises:
        ValueError: If *resources* is empty.
    """
    if len(resources) == 0:
        raise ValueError("Cannot score the difficulty of an empty topic.")

    scores = np.array(
        [DIFFICULTY_RANK[resource_difficulty(r)] for r in resources], dtype=float
    )
    avg = float(scores.mean())
    if avg > 1.5:
        return "advanced"
    if avg > 0.5:
        return "intermediate"
    return "beginner"


# =========================================================================
# Grouping
# =========================================================================


def group_by_topic(resources: Sequence[ResourceLike]) -> Dict[str, List[ResourceLike]]:
    """Group *resources* under their first category, preserving input order."""
    topics: Dict[str, List[ResourceLike]] = {}
    skipped = 0
    for resource in resources:
        categories = _field(resource, "categories", [])
        if not categories:
            skipped += 1
            continue
        topics.setdefault(categories[0], []).append(resource)

    if skipped:
        logger.debug("Skipped %d uncategorized resource(s).", skipped)
    return topics


def _completed_count(resources: Sequence[ResourceLike]) -> int:
    return sum(1 for r in resources if _field(r, "is_completed", False))


def _as_resource(resource: ResourceLike) -> Resource:
    """Wrap a mapping record as a :class:`Resource` without re-validating it."""
    if isinstance(resource, Resource):
        return resource
    data = {"id": "", "title": "", "url": ""}
    data.update(
        {k: v for k, v in resource.items() if k in Resource.model_fields and v is not None}
    )
    data["id"] = str(data["id"])
    return Resource.model_construct(**data)


def _build_node(topic: str, resources: List[ResourceLike]) -> RoadmapNode:
    completed = _completed_count(resources)
    return RoadmapNode(
        title=topic[:1].upper() + topic[1:],
        description=f"Resources related to {topic}",
        resources=[_as_resource(r) for r in resources],
        is_completed=completed == len(resources),
        difficulty=node_difficulty(resources),
        categories=[topic],
        progress=round(completed / len(resources) * 100, 2),
    )


# =========================================================================
# Lock gating
# =========================================================================


def is_node_locked(nodes: Sequence[RoadmapNode], index: int) -> bool:
    """Return ``True`` if the node at *index* is gated by an earlier node.

    The first node is never locked.  Any later node is locked while some
    earlier node has resources but none of them completed.
    """
    if index == 0:
        return False
    return not all(
        len(node.resources) == 0 or any(r.is_completed for r in node.resources)
        for node in nodes[:index]
    )


# =========================================================================
# Public API
# =========================================================================


def build_roadmap(resources: Sequence[ResourceLike]) -> List[RoadmapNode]:
    """Derive the ordered, gated roadmap for *resources*.

    Args:
        resources: Already-categorized resources, in display order.  Plain
            mappings are accepted; missing ``categories`` counts as none.

    Returns:
        Roadmap nodes, incomplete topics first, each ordered by difficulty.

    Raises:
        TypeError: If *resources* is ``None``.
    """
    if resources is None:
        raise TypeError("build_roadmap() requires a sequence of resources, got None")

    nodes = [
        _build_node(topic, group)
        for topic, group in group_by_topic(resources).items()
    ]
    # sorted() is stable: equal keys keep first-appearance order of topics.
    nodes = sorted(
        nodes, key=lambda n: (n.is_completed, DIFFICULTY_RANK[n.difficulty])
    )

    for index, node in enumerate(nodes):
        node.locked = is_node_locked(nodes, index)

    logger.debug(
        "Built roadmap: %d node(s) from %d resource(s).", len(nodes), len(resources)
    )
    return nodes


def summarize_roadmap(nodes: Sequence[RoadmapNode]) -> RoadmapSummary:
    """Build a :class:`RoadmapSummary` from built *nodes*."""
    summary = RoadmapSummary(nodes=len(nodes))
    for node in nodes:
        summary.resources += len(node.resources)
        if node.is_completed:
            summary.completed += 1
        if node.locked:
            summary.locked += 1
        summary.difficulty_distribution[node.difficulty] += 1
    return summary
