"""
Database module for Knowledge Funnel.

``resources``, ``categories`` and ``resource_categories`` tables + CRUD
helpers.  Every resource read and write is scoped to its owning user.
"""

import logging
import os
import sqlite3
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from knowledge_funnel.models import NewResource, Resource

logger = logging.getLogger(__name__)

# =========================================================================
# Schema constants
# =========================================================================

_CREATE_RESOURCES = """\
CREATE TABLE IF NOT EXISTS resources (
    id           TEXT    PRIMARY KEY,
    title        TEXT    NOT NULL,
    url          TEXT    NOT NULL,
    notes        TEXT,
    is_completed INTEGER NOT NULL DEFAULT 0,
    progress     INTEGER NOT NULL DEFAULT 0 CHECK(progress BETWEEN 0 AND 100),
    created_at   TIMESTAMP NOT NULL,
    user_id      TEXT    NOT NULL
);
"""

_CREATE_CATEGORIES = """\
CREATE TABLE IF NOT EXISTS categories (
    id    TEXT PRIMARY KEY,
    name  TEXT UNIQUE NOT NULL
);
"""

_CREATE_RESOURCE_CATEGORIES = """\
CREATE TABLE IF NOT EXISTS resource_categories (
    resource_id  TEXT    NOT NULL,
    category_id  TEXT    NOT NULL,
    position     INTEGER NOT NULL,
    PRIMARY KEY (resource_id, category_id),
    FOREIGN KEY (resource_id) REFERENCES resources(id) ON DELETE CASCADE,
    FOREIGN KEY (category_id) REFERENCES categories(id)
);
"""

_UPDATABLE_COLUMNS = ("title", "url", "notes", "is_completed", "progress")


# =========================================================================
# Connection helper
# =========================================================================


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


# =========================================================================
# Migration
# =========================================================================


def migrate_db(db_path: str) -> None:
    """Create (or verify) all tables."""
    conn = get_connection(db_path)
    try:
        conn.execute(_CREATE_RESOURCES)
        conn.execute(_CREATE_CATEGORIES)
        conn.execute(_CREATE_RESOURCE_CATEGORIES)
        conn.commit()
        logger.info("Migration OK at %s", os.path.abspath(db_path))
    finally:
        conn.close()


# =========================================================================
# Lock-retry helper
# =========================================================================

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    """Wrap *fn* with SQLite-lock retry."""
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d) — retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


# =========================================================================
# Row mapping
# =========================================================================


def _load_categories(conn: sqlite3.Connection, resource_id: str) -> List[str]:
    rows = conn.execute(
        """
        SELECT c.name FROM resource_categories rc
        JOIN categories c ON c.id = rc.category_id
        WHERE rc.resource_id = ?
        ORDER BY rc.position
        """,
        (resource_id,),
    ).fetchall()
    return [r["name"] for r in rows]


def _row_to_resource(conn: sqlite3.Connection, row: sqlite3.Row) -> Resource:
    data: Dict[str, Any] = dict(row)
    data["is_completed"] = bool(data["is_completed"])
    data["categories"] = _load_categories(conn, data["id"])
    return Resource.model_validate(data)


# =========================================================================
# Category helpers
# =========================================================================


def get_or_create_category(conn: sqlite3.Connection, name: str) -> str:
    """Return the id of category *name*, inserting it if needed."""
    row = conn.execute("SELECT id FROM categories WHERE name = ?", (name,)).fetchone()
    if row is not None:
        return row["id"]
    category_id = str(uuid.uuid4())
    conn.execute(
        "INSERT OR IGNORE INTO categories (id, name) VALUES (?, ?)",
        (category_id, name),
    )
    row = conn.execute("SELECT id FROM categories WHERE name = ?", (name,)).fetchone()
    return row["id"]


def _link_categories(
    conn: sqlite3.Connection,
    resource_id: str,
    categories: Sequence[str],
) -> None:
    """Replace the category links of *resource_id* without committing."""
    conn.execute(
        "DELETE FROM resource_categories WHERE resource_id = ?", (resource_id,)
    )
    for position, name in enumerate(dict.fromkeys(categories)):
        conn.execute(
            """
            INSERT INTO resource_categories (resource_id, category_id, position)
            VALUES (?, ?, ?)
            """,
            (resource_id, get_or_create_category(conn, name), position),
        )


def _in_transaction(conn: sqlite3.Connection, fn) -> Any:  # type: ignore[no-untyped-def]
    """Run *fn* and commit, rolling back everything it wrote on failure."""
    try:
        result = fn()
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return result


def set_resource_categories(
    conn: sqlite3.Connection,
    resource_id: str,
    categories: Sequence[str],
) -> None:
    """Replace the category links of *resource_id*, keeping list order."""
    _retry_on_lock(
        _in_transaction, conn, lambda: _link_categories(conn, resource_id, categories)
    )


# =========================================================================
# Write helpers
# =========================================================================


def insert_resource(
    conn: sqlite3.Connection,
    user_id: str,
    new: NewResource,
) -> Resource:
    """Insert *new* for *user_id* and link its categories in one transaction."""
    resource_id = str(uuid.uuid4())
    now = datetime.now(timezone.utc).isoformat()

    def _do_insert() -> None:
        conn.execute(
            """
            INSERT INTO resources
                (id, title, url, notes, is_completed, progress, created_at, user_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (resource_id, new.title, new.url, new.notes, int(new.is_completed),
             new.progress, now, user_id),
        )
        _link_categories(conn, resource_id, new.categories)

    _retry_on_lock(_in_transaction, conn, _do_insert)
    logger.debug("Inserted resource %s for user %s.", resource_id, user_id)

    resource = get_resource(conn, user_id, resource_id)
    if resource is None:
        raise RuntimeError(f"Inserted resource {resource_id} could not be read back")
    return resource


def update_resource(
    conn: sqlite3.Connection,
    user_id: str,
    resource_id: str,
    updates: Dict[str, Any],
) -> Optional[Resource]:
    """Apply column *updates* (and optional ``categories``) to a resource.

    Returns:
        The updated resource, or ``None`` if *user_id* owns no such resource.
    """
    if get_resource(conn, user_id, resource_id) is None:
        return None

    unknown = set(updates) - set(_UPDATABLE_COLUMNS) - {"categories"}
    if unknown:
        raise ValueError(f"Cannot update column(s): {sorted(unknown)}")

    columns = [c for c in _UPDATABLE_COLUMNS if c in updates]
    values = [
        int(updates[c]) if c == "is_completed" else updates[c] for c in columns
    ]
    assignments = ", ".join(f"{c} = ?" for c in columns)

    def _do_update() -> None:
        if columns:
            conn.execute(
                f"UPDATE resources SET {assignments} WHERE id = ? AND user_id = ?",
                (*values, resource_id, user_id),
            )
        if "categories" in updates:
            _link_categories(conn, resource_id, updates["categories"] or [])

    _retry_on_lock(_in_transaction, conn, _do_update)
    return get_resource(conn, user_id, resource_id)


def delete_resource(conn: sqlite3.Connection, user_id: str, resource_id: str) -> bool:
    """Delete a resource and its category links. Returns ``True`` if deleted."""
    def _do_delete() -> int:
        conn.execute(
            """
            DELETE FROM resource_categories WHERE resource_id IN
                (SELECT id FROM resources WHERE id = ? AND user_id = ?)
            """,
            (resource_id, user_id),
        )
        cursor = conn.execute(
            "DELETE FROM resources WHERE id = ? AND user_id = ?",
            (resource_id, user_id),
        )
        conn.commit()
        return cursor.rowcount

    return _retry_on_lock(_do_delete) == 1


# =========================================================================
# Read helpers
# =========================================================================


def get_resource(
    conn: sqlite3.Connection, user_id: str, resource_id: str
) -> Optional[Resource]:
    """Return *user_id*'s resource *resource_id*, or ``None``."""
    row = conn.execute(
        "SELECT * FROM resources WHERE id = ? AND user_id = ?",
        (resource_id, user_id),
    ).fetchone()
    return _row_to_resource(conn, row) if row else None


def get_resources(
    conn: sqlite3.Connection, user_id: str, ascending: bool = False
) -> List[Resource]:
    """Return every resource of *user_id*, newest first by default."""
    order = "ASC" if ascending else "DESC"
    rows = conn.execute(
        f"SELECT * FROM resources WHERE user_id = ? ORDER BY created_at {order}, rowid {order}",
        (user_id,),
    ).fetchall()
    return [_row_to_resource(conn, r) for r in rows]


def count_by_category(conn: sqlite3.Connection, user_id: str) -> Dict[str, int]:
    """Return a ``{category: resource_count}`` mapping for *user_id*."""
    rows = conn.execute(
        """
        SELECT c.name AS name, COUNT(*) AS cnt FROM resource_categories rc
        JOIN categories c ON c.id = rc.category_id
        JOIN resources r ON r.id = rc.resource_id
        WHERE r.user_id = ?
        GROUP BY c.name
        """,
        (user_id,),
    ).fetchall()
    return {r["name"]: r["cnt"] for r in rows}
