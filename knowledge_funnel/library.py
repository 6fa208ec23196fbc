"""
Resource library: the add / edit / delete / browse flows of one user.

A :class:`Library` binds a database connection to the signed-in user.
Categories are computed here, once, whenever a resource's title or notes
are submitted; the roadmap is built on demand from the filtered list.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from knowledge_funnel import db
from knowledge_funnel.categorizer import Categorizer
from knowledge_funnel.extractors.file_extractor import extract_file_content
from knowledge_funnel.fetchers.metadata_fetcher import fetch_metadata
from knowledge_funnel.models import (
    MAX_NOTES_LENGTH,
    ImportSummary,
    NewResource,
    Resource,
    RoadmapNode,
    SortOption,
)
from knowledge_funnel.roadmap import build_roadmap
from knowledge_funnel.utils import clamp_progress, is_valid_url

logger = logging.getLogger(__name__)

MetadataFetcher = Callable[[str], Tuple[str, str]]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ResourceValidationError(ValueError):
    """Raised when submitted resource fields are rejected."""


class NotSignedInError(RuntimeError):
    """Raised when a mutation is attempted without a signed-in user."""


class ResourceNotFoundError(LookupError):
    """Raised when the user owns no resource with the given id."""


# ---------------------------------------------------------------------------
# Filtering & sorting
# ---------------------------------------------------------------------------


def filter_resources(
    resources: Sequence[Resource],
    search: str = "",
    category: Optional[str] = None,
) -> List[Resource]:
    """Keep resources whose title or notes contain *search* and that carry
    *category* (when given)."""
    term = search.lower()
    return [
        r for r in resources
        if (term in r.title.lower() or term in (r.notes or "").lower())
        and (not category or category in r.categories)
    ]


def sort_resources(resources: Sequence[Resource], sort: SortOption = "date-desc") -> List[Resource]:
    """Order *resources* by one of the supported sort options."""
    if sort == "date-desc":
        return sorted(resources, key=lambda r: r.created_at, reverse=True)
    if sort == "date-asc":
        return sorted(resources, key=lambda r: r.created_at)
    if sort == "title":
        return sorted(resources, key=lambda r: r.title.casefold())
    if sort == "progress":
        return sorted(resources, key=lambda r: r.progress, reverse=True)
    return list(resources)


def _title_from_url(url: str) -> str:
    """Derive a readable title from the last path segment of *url*."""
    tail = url.rstrip("/").split("/")[-1]
    return tail.replace("-", " ").replace("_", " ").title() or url


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


class Library:
    """The current user's resource collection."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        user_id: Optional[str],
        categorizer: Optional[Categorizer] = None,
        metadata_fetcher: Optional[MetadataFetcher] = None,
    ) -> None:
        self.conn = conn
        self.user_id = user_id
        self.categorizer = categorizer or Categorizer()
        self.metadata_fetcher = metadata_fetcher or fetch_metadata

    def _require_user(self) -> str:
        if not self.user_id:
            raise NotSignedInError("Sign in to manage your learning resources.")
        return self.user_id

    def _categorize(self, title: str, notes: Optional[str]) -> List[str]:
        if not title and not notes:
            return []
        return self.categorizer.categorize(title, notes or "")

    # ---- add ----

    def add_resource(
        self,
        url: str,
        title: Optional[str] = None,
        notes: Optional[str] = None,
        fetch: bool = True,
    ) -> Resource:
        """Save the resource at *url*.

        Missing title or notes are filled from the page metadata when
        *fetch* is set; a failed fetch leaves them as entered.
        """
        user_id = self._require_user()
        url = (url or "").strip()
        if not is_valid_url(url):
            raise ResourceValidationError("Please enter a valid URL")

        if fetch and (not title or not notes):
            fetched_title, description = self.metadata_fetcher(url)
            if not title and fetched_title and fetched_title != url:
                title = fetched_title
            if not notes and description:
                notes = description

        title = (title or "").strip()
        if not title:
            raise ResourceValidationError("A title is required")
        notes = notes[:MAX_NOTES_LENGTH] if notes else notes

        new = NewResource(
            title=title,
            url=url,
            notes=notes,
            categories=self._categorize(title, notes),
            is_completed=False,
            progress=0,
        )
        resource = db.insert_resource(self.conn, user_id, new)
        logger.info(
            "Added resource %s (%s) categories=%s", resource.id, url, resource.categories
        )
        return resource

    def add_file(self, file_path: str) -> Resource:
        """Save a local PDF or text file as a resource."""
        user_id = self._require_user()
        path = Path(file_path)
        content = extract_file_content(file_path)
        title = path.stem
        notes = content[:MAX_NOTES_LENGTH]

        new = NewResource(
            title=title,
            url=path.resolve().as_uri(),
            notes=notes,
            categories=self._categorize(title, notes),
        )
        resource = db.insert_resource(self.conn, user_id, new)
        logger.info("Added file resource %s (%s)", resource.id, path.name)
        return resource

    def import_urls(self, url_list: Sequence[str]) -> ImportSummary:
        """Add every URL of *url_list*, collecting an :class:`ImportSummary`.

        This function **never** raises for a single bad URL; each failure
        is logged and counted.
        """
        self._require_user()
        summary = ImportSummary(total=len(url_list))

        for idx, raw_url in enumerate(url_list, 1):
            url = raw_url.strip() if isinstance(raw_url, str) else ""
            logger.info("▶ [%d/%d] Importing: %s", idx, summary.total, url)
            try:
                if not is_valid_url(url):
                    raise ResourceValidationError("Please enter a valid URL")
                title, description = self.metadata_fetcher(url)
                if not title or title == url:
                    title = _title_from_url(url)
                self.add_resource(url, title=title, notes=description or None, fetch=False)
            except ResourceValidationError as exc:
                summary.invalid += 1
                summary.errors.append(f"{url or raw_url!r}: {exc}")
                logger.warning("  ✗ %s", exc)
            except (sqlite3.Error, ValueError) as exc:
                summary.failed += 1
                summary.errors.append(f"{url}: {exc}")
                logger.error("  ✗ Failed to import %s: %s", url, exc, exc_info=True)
            else:
                summary.added += 1

        return summary

    # ---- edit ----

    def update_resource(self, resource_id: str, **updates: Any) -> Resource:
        """Apply *updates* to a resource.

        Progress is clamped to 0–100.  Categories are recomputed only when
        the title or notes are resubmitted.
        """
        user_id = self._require_user()
        current = db.get_resource(self.conn, user_id, resource_id)
        if current is None:
            raise ResourceNotFoundError(f"No resource with id {resource_id}")

        changes: Dict[str, Any] = dict(updates)
        if "progress" in changes:
            changes["progress"] = clamp_progress(changes["progress"])
        if "title" in changes:
            changes["title"] = (changes["title"] or "").strip()
            if not changes["title"]:
                raise ResourceValidationError("A title is required")
        if "url" in changes and not is_valid_url(changes["url"]):
            raise ResourceValidationError("Please enter a valid URL")
        if changes.get("notes") and len(changes["notes"]) > MAX_NOTES_LENGTH:
            raise ResourceValidationError(
                f"Notes are limited to {MAX_NOTES_LENGTH} characters"
            )

        if "title" in changes or "notes" in changes:
            title = changes.get("title", current.title)
            notes = changes.get("notes", current.notes)
            changes["categories"] = self._categorize(title, notes)

        updated = db.update_resource(self.conn, user_id, resource_id, changes)
        if updated is None:
            raise ResourceNotFoundError(f"No resource with id {resource_id}")
        return updated

    def set_completed(self, resource_id: str, completed: bool = True) -> Resource:
        return self.update_resource(resource_id, is_completed=completed)

    def set_progress(self, resource_id: str, progress: int) -> Resource:
        return self.update_resource(resource_id, progress=progress)

    def delete_resource(self, resource_id: str) -> None:
        user_id = self._require_user()
        if not db.delete_resource(self.conn, user_id, resource_id):
            raise ResourceNotFoundError(f"No resource with id {resource_id}")
        logger.info("Deleted resource %s", resource_id)

    # ---- browse ----

    def all_resources(self) -> List[Resource]:
        """Every resource of the user, newest first (empty when signed out)."""
        if not self.user_id:
            return []
        return db.get_resources(self.conn, self.user_id)

    def list_resources(
        self,
        search: str = "",
        category: Optional[str] = None,
        sort: SortOption = "date-desc",
    ) -> List[Resource]:
        """Search, filter and sort the user's resources."""
        return sort_resources(filter_resources(self.all_resources(), search, category), sort)

    def unique_categories(self) -> List[str]:
        """Categories in use, in first-seen order."""
        seen: Dict[str, None] = {}
        for resource in self.all_resources():
            for category in resource.categories:
                seen.setdefault(category, None)
        return list(seen)

    def category_counts(self) -> Dict[str, int]:
        if not self.user_id:
            return {}
        return db.count_by_category(self.conn, self.user_id)

    def roadmap(
        self,
        search: str = "",
        category: Optional[str] = None,
        sort: SortOption = "date-desc",
    ) -> List[RoadmapNode]:
        """Build the roadmap over the filtered and sorted resources."""
        return build_roadmap(self.list_resources(search, category, sort))
