"""Tests for word counting and truncation.

Tests cover:
- Markdown-aware word counting
- Word limit validation and formatting
- Truncation at sentence boundaries and hard cuts
"""

import pytest

from cepi.text import (
    count_words,
    format_word_count,
    strip_markdown,
    truncate_to_word_limit,
    validate_word_limit,
)


class TestCountWords:
    """Test count_words."""

    def test_empty_and_none(self):
        assert count_words("") == 0
        assert count_words(None) == 0

    def test_plain_text(self):
        assert count_words("one two  three") == 3

    def test_markdown_syntax_is_not_counted(self):
        text = "# Title\n\n- **bold** item\n1. *first*\n> quoted `code`"
        assert count_words(text) == 6

    def test_link_keeps_text_only(self):
        assert count_words("see [the docs](https://example.com/a b) now") == 4

    def test_strip_markdown(self):
        assert strip_markdown("## Heading\n**bold**") == "Heading bold"


class TestValidateWordLimit:
    """Test validate_word_limit and format_word_count."""

    def test_within_limit(self):
        check = validate_word_limit("a b c", max_words=3)
        assert check.is_valid
        assert check.message is None

    def test_over_limit(self):
        check = validate_word_limit("a b c d", max_words=3)
        assert not check.is_valid
        assert check.message == "Text exceeds word limit: 4/3 words"

    def test_format_word_count(self):
        assert format_word_count("a b", max_words=4) == "2/4 words (50%)"
        assert format_word_count("a b c", max_words=2) == "3/2 words (150% - OVER LIMIT)"


class TestTruncate:
    """Test truncate_to_word_limit."""

    def test_short_text_unchanged(self):
        assert truncate_to_word_limit("Just a few words.", 10) == "Just a few words."

    def test_empty(self):
        assert truncate_to_word_limit("", 10) == ""

    def test_hard_cut_adds_ellipsis(self):
        text = " ".join(f"w{i}" for i in range(20))
        result = truncate_to_word_limit(text, 5)
        assert result == "w0 w1 w2 w3 w4..."

    def test_cuts_at_late_sentence_end(self):
        text = "Alpha beta gamma delta epsilon zeta eta theta iota. Kappa lambda mu."
        result = truncate_to_word_limit(text, 10)
        assert result == "Alpha beta gamma delta epsilon zeta eta theta iota...."

    def test_result_is_prefix(self):
        text = "First sentence here. " * 40
        result = truncate_to_word_limit(text, 25)
        assert text.startswith(result.removesuffix("..."))
        assert count_words(result) <= 25

    @pytest.mark.parametrize("limit", [1, 3, 7])
    def test_never_exceeds_limit(self, limit):
        text = "one two three four five six seven eight nine ten"
        assert count_words(truncate_to_word_limit(text, limit)) <= limit
