"""
pytest suite for keyword categorization.

Pure functions only; no database or network needed.
Run with::

    pytest tests/test_categorizer.py -v
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from knowledge_funnel.categorizer import (
    DEFAULT_KEYWORDS,
    Categorizer,
    KeywordTable,
    categorize,
)


# =========================================================================
# Test: Scoring & ordering
# =========================================================================


class TestCategorize:
    """Relevance scoring and ordering against the default vocabulary."""

    def test_empty_input(self):
        assert categorize("", "") == []

    def test_none_treated_as_empty(self):
        assert categorize(None, None) == []
        assert categorize("Python tips", None) == ["programming"]

    def test_getting_started_example(self):
        """JavaScript + coding vs. getting started + intro: tie goes to table order."""
        title, content = "Getting Started with JavaScript", "basic intro to coding"
        assert categorize(title, content) == ["programming", "learning"]
        assert Categorizer().score(title, content) == {"programming": 2, "learning": 2}

    def test_higher_count_first(self):
        """design (5 hits) outranks learning (1 hit)."""
        result = categorize("Figma design tutorial", "ui ux wireframe")
        assert result == ["design", "learning"]

    def test_repeated_keyword_counts_each_occurrence(self):
        scores = Categorizer().score("python python python", "design")
        assert scores == {"programming": 3, "design": 1}
        assert categorize("design", "python python python") == ["programming", "design"]

    def test_tie_break_is_table_order_not_input_order(self):
        assert categorize("design python", "") == ["programming", "design"]
        assert categorize("python design", "") == ["programming", "design"]

    def test_keyword_shared_by_two_categories(self):
        """'management' scores for both business and productivity."""
        assert categorize("management", "") == ["business", "productivity"]

    def test_case_insensitive(self):
        assert categorize("PYTHON", "") == ["programming"]

    def test_deterministic(self):
        title, content = "Cloud security for React apps", "a video course on devops"
        first = categorize(title, content)
        for _ in range(5):
            assert categorize(title, content) == first

    def test_results_in_vocabulary_without_duplicates(self):
        result = categorize(
            "Everything: python, figma, startup, course, workflow, cloud",
            "management management design code",
        )
        assert len(result) == len(set(result))
        assert set(result) <= set(DEFAULT_KEYWORDS.categories)

    def test_non_string_rejected(self):
        with pytest.raises(TypeError):
            categorize(42, "")
        with pytest.raises(TypeError):
            categorize("title", ["not", "a", "string"])


# =========================================================================
# Test: Word boundaries
# =========================================================================


class TestWordBoundaries:
    """Keywords match whole words only."""

    def test_superstring_does_not_match(self):
        """'javascripting' is not the keyword 'javascript'."""
        assert categorize("javascripting", "") == []

    def test_prefix_keyword_not_matched_inside_longer_word(self):
        """'java' must not match inside 'javascript'."""
        assert Categorizer().score("javascript", "") == {"programming": 1}
        assert Categorizer().score("java vs javascript", "") == {"programming": 2}

    def test_short_keyword_inside_word(self):
        """'ui' inside 'guide' counts only as the learning keyword 'guide'."""
        assert categorize("guide", "") == ["learning"]

    def test_punctuation_is_a_boundary(self):
        assert Categorizer().score("Notes on react, vue.", "") == {"programming": 2}
        assert categorize("(python)", "") == ["programming"]

    def test_multi_word_phrase_must_be_contiguous(self):
        assert categorize("Machine Learning basics", "") == ["technology"]
        assert categorize("machine, learning", "") == []

    def test_title_and_content_joined_with_space(self):
        """A phrase can span the title/content seam."""
        assert categorize("deep", "learning") == ["technology"]

    def test_non_ascii_letters_are_boundaries(self):
        """Word characters are ASCII only: 'ui' after 'é' is a whole word."""
        assert categorize("éui", "") == ["design"]
        assert Categorizer().score("pythonñ", "") == {"programming": 1}


# =========================================================================
# Test: Injected vocabularies
# =========================================================================


class TestKeywordTable:
    """Custom tables and their immutability."""

    def test_custom_table_tie_break_uses_declaration_order(self):
        table = KeywordTable({"zeta": ["x"], "alpha": ["y"]})
        assert categorize("y x", "", table=table) == ["zeta", "alpha"]
        assert Categorizer(table).categorize("x y", "") == ["zeta", "alpha"]

    def test_custom_table_ignores_default_vocabulary(self):
        table = KeywordTable({"algorithms": ["sorting"]})
        assert categorize("python sorting", "", table=table) == ["algorithms"]

    def test_labels_and_phrases_lowercased(self):
        table = KeywordTable({"Graphs": ["DAG"]})
        assert table.categories == ("graphs",)
        assert table["graphs"] == ("dag",)
        assert categorize("a dag", "", table=table) == ["graphs"]

    def test_duplicate_label_rejected(self):
        with pytest.raises(ValueError):
            KeywordTable({"a": ["x"], "A": ["y"]})

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_KEYWORDS["programming"] = ("nothing",)  # type: ignore[index]

    def test_default_canonical_order(self):
        assert DEFAULT_KEYWORDS.categories == (
            "programming", "design", "business",
            "learning", "productivity", "technology",
        )
