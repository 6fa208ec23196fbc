"""
Command-line interface for Knowledge Funnel.

Usage::

    python -m knowledge_funnel.cli --user alice add https://react.dev/learn
    python -m knowledge_funnel.cli --user alice list --search react --sort title
    python -m knowledge_funnel.cli --user alice roadmap
    python -m knowledge_funnel.cli categorize "Intro to Python" --content "a course"

Results are printed to stdout as JSON.  Exit code 0 on success, 1 on a
rejected request.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from knowledge_funnel import db
from knowledge_funnel.categorizer import Categorizer
from knowledge_funnel.config import (
    DEFAULT_DB_PATH,
    DEFAULT_PREFS_PATH,
    load_keyword_table,
    load_preferences,
    resolve_user,
    save_preferences,
)
from knowledge_funnel.extractors.file_extractor import FileExtractionError
from knowledge_funnel.library import (
    Library,
    NotSignedInError,
    ResourceNotFoundError,
    ResourceValidationError,
)
from knowledge_funnel.roadmap import summarize_roadmap
from knowledge_funnel.utils import setup_logging, timed

logger = logging.getLogger(__name__)

_SORT_CHOICES = ["date-desc", "date-asc", "title", "progress"]


# =========================================================================
# Output
# =========================================================================


def _emit(payload: Any) -> None:
    """Print *payload* (models, lists of models, or plain data) as JSON."""
    def _plain(obj: Any) -> Any:
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        if isinstance(obj, list):
            return [_plain(o) for o in obj]
        if isinstance(obj, dict):
            return {k: _plain(v) for k, v in obj.items()}
        return obj

    print(json.dumps(_plain(payload), indent=2))


# =========================================================================
# Commands
# =========================================================================


def _cmd_categorize(args: argparse.Namespace, categorizer: Categorizer) -> None:
    scores = categorizer.score(args.title, args.content)
    _emit({
        "categories": categorizer.categorize(args.title, args.content),
        "scores": scores,
    })


def _cmd_add(args: argparse.Namespace, library: Library) -> None:
    _emit(library.add_resource(
        args.url, title=args.title, notes=args.notes, fetch=not args.no_fetch
    ))


def _cmd_add_file(args: argparse.Namespace, library: Library) -> None:
    _emit(library.add_file(args.path))


def _cmd_import(args: argparse.Namespace, library: Library) -> None:
    logger.info("Loading URLs from %s", args.input)
    with open(args.input, "r", encoding="utf-8") as fh:
        url_list = json.load(fh)
    if not isinstance(url_list, list):
        raise ResourceValidationError(f"Expected a JSON array of URL strings in {args.input}")

    with timed("URL import"):
        summary = library.import_urls(url_list)
    logger.info(
        "✅ Import complete — total=%d added=%d invalid=%d failed=%d",
        summary.total, summary.added, summary.invalid, summary.failed,
    )
    _emit(summary)


def _cmd_list(args: argparse.Namespace, library: Library) -> None:
    _emit(library.list_resources(args.search, args.category, args.sort))


def _cmd_categories(args: argparse.Namespace, library: Library) -> None:
    counts = library.category_counts()
    _emit({name: counts.get(name, 0) for name in library.unique_categories()})


def _cmd_update(args: argparse.Namespace, library: Library) -> None:
    updates: Dict[str, Any] = {}
    for field in ("title", "url", "notes", "progress"):
        value = getattr(args, field)
        if value is not None:
            updates[field] = value
    if args.completed is not None:
        updates["is_completed"] = args.completed
    _emit(library.update_resource(args.id, **updates))


def _cmd_delete(args: argparse.Namespace, library: Library) -> None:
    library.delete_resource(args.id)
    _emit({"deleted": args.id})


def _cmd_roadmap(args: argparse.Namespace, library: Library) -> None:
    nodes = library.roadmap(args.search, args.category, args.sort)
    _emit({"summary": summarize_roadmap(nodes), "nodes": nodes})


def _cmd_prefs(args: argparse.Namespace, categorizer: Categorizer) -> None:
    prefs = load_preferences(args.prefs)
    changes = {k: getattr(args, k) for k in ("view", "sort", "theme") if getattr(args, k)}
    if changes:
        prefs = prefs.model_copy(update=changes)
        save_preferences(prefs, args.prefs)
    _emit(prefs)


# =========================================================================
# Argument parsing
# =========================================================================


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="python -m knowledge_funnel.cli",
        description="Track learning resources and build a learning roadmap.",
    )
    parser.add_argument(
        "--db",
        default=DEFAULT_DB_PATH,
        help=f"Path to the SQLite database (default: {DEFAULT_DB_PATH}).",
    )
    parser.add_argument(
        "--user",
        default=None,
        help="Signed-in user id (default: $KNOWLEDGE_FUNNEL_USER).",
    )
    parser.add_argument(
        "--prefs",
        default=DEFAULT_PREFS_PATH,
        help=f"Path to the preferences JSON (default: {DEFAULT_PREFS_PATH}).",
    )
    parser.add_argument(
        "--keywords",
        default=None,
        help="JSON file with a custom {category: [keywords]} vocabulary.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("categorize", help="Show the categories of a title + text.")
    p.add_argument("title")
    p.add_argument("--content", default="")
    p.set_defaults(func=_cmd_categorize, offline=True)

    p = sub.add_parser("add", help="Save a resource by URL.")
    p.add_argument("url")
    p.add_argument("--title", default=None)
    p.add_argument("--notes", default=None)
    p.add_argument("--no-fetch", action="store_true", help="Skip metadata fetch.")
    p.set_defaults(func=_cmd_add)

    p = sub.add_parser("add-file", help="Save a PDF or text file.")
    p.add_argument("path")
    p.set_defaults(func=_cmd_add_file)

    p = sub.add_parser("import", help="Save every URL of a JSON array.")
    p.add_argument("--input", required=True, help="Path to a JSON list of URLs.")
    p.set_defaults(func=_cmd_import)

    for name, func, help_text in (
        ("list", _cmd_list, "List resources."),
        ("roadmap", _cmd_roadmap, "Build the learning roadmap."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--search", default="")
        p.add_argument("--category", default=None)
        p.add_argument("--sort", choices=_SORT_CHOICES, default=None)
        p.set_defaults(func=func)

    p = sub.add_parser("categories", help="Count resources per category.")
    p.set_defaults(func=_cmd_categories)

    p = sub.add_parser("update", help="Edit a resource.")
    p.add_argument("id")
    p.add_argument("--title", default=None)
    p.add_argument("--url", default=None)
    p.add_argument("--notes", default=None)
    p.add_argument("--progress", type=int, default=None)
    done = p.add_mutually_exclusive_group()
    done.add_argument("--completed", dest="completed", action="store_true", default=None)
    done.add_argument("--not-completed", dest="completed", action="store_false")
    p.set_defaults(func=_cmd_update)

    p = sub.add_parser("delete", help="Delete a resource.")
    p.add_argument("id")
    p.set_defaults(func=_cmd_delete)

    p = sub.add_parser("prefs", help="Show or change view preferences.")
    p.add_argument("--view", choices=["grid", "roadmap"], default=None)
    p.add_argument("--sort", choices=_SORT_CHOICES, default=None)
    p.add_argument("--theme", choices=["light", "dark", "system"], default=None)
    p.set_defaults(func=_cmd_prefs, offline=True)

    return parser.parse_args(argv)


# =========================================================================
# Entry-point
# =========================================================================


def main(argv: Optional[List[str]] = None) -> None:
    """CLI main entry-point."""
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command in ("list", "roadmap") and args.sort is None:
        args.sort = load_preferences(args.prefs).sort

    categorizer = (
        Categorizer(load_keyword_table(args.keywords)) if args.keywords else Categorizer()
    )

    # categorize and prefs never touch the database.
    if getattr(args, "offline", False):
        args.func(args, categorizer)
        sys.exit(0)

    db.migrate_db(args.db)
    conn = db.get_connection(args.db)
    try:
        library = Library(conn, resolve_user(args.user), categorizer=categorizer)
        args.func(args, library)
    except (
        ResourceValidationError,
        ResourceNotFoundError,
        NotSignedInError,
        FileExtractionError,
        FileNotFoundError,
    ) as exc:
        logger.error("%s", exc)
        sys.exit(1)
    finally:
        conn.close()
    sys.exit(0)


if __name__ == "__main__":
    main()
