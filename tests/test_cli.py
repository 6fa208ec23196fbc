"""
pytest suite for configuration helpers and the command-line interface.

The CLI runs end-to-end against a temporary database; commands that would
fetch page metadata are either run with ``--no-fetch`` or have the
fetcher patched.
"""

import json
import os
import sys
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from knowledge_funnel import cli
from knowledge_funnel.config import (
    USER_ENV_VAR,
    Preferences,
    load_keyword_table,
    load_preferences,
    resolve_user,
    save_preferences,
)


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture()
def paths(tmp_path):
    return {
        "db": str(tmp_path / "data" / "funnel.db"),
        "prefs": str(tmp_path / "data" / "preferences.json"),
    }


@pytest.fixture(autouse=True)
def _no_env_user(monkeypatch):
    monkeypatch.delenv(USER_ENV_VAR, raising=False)


def _run(paths, capsys, *argv, user="alice"):
    """Run the CLI and return ``(exit_code, parsed_stdout)``."""
    base = ["--db", paths["db"], "--prefs", paths["prefs"]]
    if user is not None:
        base += ["--user", user]
    with pytest.raises(SystemExit) as excinfo:
        cli.main(base + list(argv))
    out = capsys.readouterr().out
    return excinfo.value.code, (json.loads(out) if out.strip() else None)


# =========================================================================
# Test: Configuration
# =========================================================================


class TestConfig:
    """User resolution, preferences and keyword tables."""

    def test_resolve_user_explicit(self):
        assert resolve_user("alice") == "alice"

    def test_resolve_user_env(self, monkeypatch):
        monkeypatch.setenv(USER_ENV_VAR, " bob ")
        assert resolve_user() == "bob"

    def test_resolve_user_none(self):
        assert resolve_user() is None
        assert resolve_user("   ") is None

    def test_preferences_default_when_missing(self, tmp_path):
        prefs = load_preferences(str(tmp_path / "missing.json"))
        assert prefs == Preferences(view="grid", sort="date-desc", theme="system")

    def test_preferences_round_trip(self, tmp_path):
        path = str(tmp_path / "nested" / "prefs.json")
        save_preferences(Preferences(view="roadmap", sort="title", theme="dark"), path)
        assert load_preferences(path) == Preferences(view="roadmap", sort="title", theme="dark")

    def test_preferences_corrupt_file(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_preferences(str(path)) == Preferences()

    def test_preferences_invalid_value(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({"view": "list"}), encoding="utf-8")
        assert load_preferences(str(path)) == Preferences()

    def test_load_keyword_table(self):
        path = os.path.join(os.path.dirname(__file__), "sample_keywords.json")
        table = load_keyword_table(path)
        assert table.categories == ("zeta", "alpha", "beta")
        assert table["beta"] == ("hash table",)

    def test_load_keyword_table_rejects_bad_shape(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"a": "not a list"}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_keyword_table(str(path))
        path.write_text(json.dumps(["a", "b"]), encoding="utf-8")
        with pytest.raises(ValueError):
            load_keyword_table(str(path))


# =========================================================================
# Test: CLI
# =========================================================================


class TestCli:
    """End-to-end command runs."""

    def test_categorize(self, paths, capsys):
        code, out = _run(
            paths, capsys, "categorize", "Getting Started with JavaScript",
            "--content", "basic intro to coding",
        )
        assert code == 0
        assert out["categories"] == ["programming", "learning"]
        assert out["scores"] == {"programming": 2, "learning": 2}

    def test_offline_commands_create_no_database(self, paths, capsys):
        _run(paths, capsys, "categorize", "Python", user=None)
        _run(paths, capsys, "prefs", user=None)
        assert not os.path.exists(paths["db"])

    def test_categorize_custom_keywords(self, paths, capsys):
        keywords = os.path.join(os.path.dirname(__file__), "sample_keywords.json")
        code, out = _run(
            paths, capsys, "--keywords", keywords, "categorize", "tree search", user=None,
        )
        assert code == 0
        assert out["categories"] == ["zeta", "alpha"]

    def test_add_list_update_delete(self, paths, capsys):
        code, added = _run(
            paths, capsys, "add", "https://e.com/py", "--title", "Python basics", "--no-fetch",
        )
        assert code == 0
        assert added["categories"] == ["programming"]

        code, listed = _run(paths, capsys, "list")
        assert [r["id"] for r in listed] == [added["id"]]

        code, updated = _run(paths, capsys, "update", added["id"], "--progress", "120", "--completed")
        assert code == 0
        assert updated["progress"] == 100
        assert updated["is_completed"] is True

        code, out = _run(paths, capsys, "delete", added["id"])
        assert code == 0
        assert out == {"deleted": added["id"]}

        code, listed = _run(paths, capsys, "list")
        assert listed == []

    def test_roadmap(self, paths, capsys):
        _run(paths, capsys, "add", "https://e.com/1", "--title", "Python basics", "--no-fetch")
        _run(paths, capsys, "add", "https://e.com/2", "--title", "Advanced Figma design", "--no-fetch")
        code, out = _run(paths, capsys, "roadmap")
        assert code == 0
        assert [n["title"] for n in out["nodes"]] == ["Programming", "Design"]
        assert [n["locked"] for n in out["nodes"]] == [False, True]
        assert out["summary"]["nodes"] == 2
        assert out["summary"]["locked"] == 1

    def test_categories(self, paths, capsys):
        _run(paths, capsys, "add", "https://e.com/1", "--title", "Python course", "--no-fetch")
        code, out = _run(paths, capsys, "categories")
        assert code == 0
        assert out == {"programming": 1, "learning": 1}

    def test_import(self, paths, capsys, tmp_path):
        urls = tmp_path / "urls.json"
        urls.write_text(json.dumps(["https://e.com/python-basics", "nope"]), encoding="utf-8")
        with patch("knowledge_funnel.library.fetch_metadata", return_value=("", "")):
            code, out = _run(paths, capsys, "import", "--input", str(urls))
        assert code == 0
        assert out["added"] == 1
        assert out["invalid"] == 1

    def test_signed_out_add_fails(self, paths, capsys):
        code, out = _run(
            paths, capsys, "add", "https://e.com", "--title", "t", "--no-fetch", user=None,
        )
        assert code == 1
        assert out is None

    def test_invalid_url_fails(self, paths, capsys):
        code, _ = _run(paths, capsys, "add", "not-a-url", "--title", "t", "--no-fetch")
        assert code == 1

    def test_unknown_id_fails(self, paths, capsys):
        code, _ = _run(paths, capsys, "delete", "missing")
        assert code == 1

    def test_prefs(self, paths, capsys):
        code, out = _run(paths, capsys, "prefs")
        assert out == {"view": "grid", "sort": "date-desc", "theme": "system"}

        code, out = _run(paths, capsys, "prefs", "--view", "roadmap", "--sort", "title")
        assert code == 0
        assert out["view"] == "roadmap"
        assert load_preferences(paths["prefs"]).sort == "title"

    def test_list_uses_preferred_sort(self, paths, capsys):
        _run(paths, capsys, "prefs", "--sort", "title")
        _run(paths, capsys, "add", "https://e.com/1", "--title", "beta", "--no-fetch")
        _run(paths, capsys, "add", "https://e.com/2", "--title", "alpha", "--no-fetch")
        code, listed = _run(paths, capsys, "list")
        assert [r["title"] for r in listed] == ["alpha", "beta"]
