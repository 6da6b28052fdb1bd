"""Tests for domain value objects."""

from datetime import datetime, timedelta, timezone

import pytest

from social_archiver.domain.value_objects.content_hash import compute_content_hash
from social_archiver.domain.value_objects.engagement_number import (
    format_engagement_number,
    parse_engagement_number,
)
from social_archiver.domain.value_objects.filename import (
    FilenameTemplate,
    build_document_filename,
    canonicalize_url,
    sanitize_filename,
    split_extension,
)
from social_archiver.domain.value_objects.relative_time import parse_relative_timestamp

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


class TestEngagementNumber:
    """Tests for compact engagement number parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1.2K", 1200),
            ("3M", 3_000_000),
            ("2.5k", 2500),
            ("1,234 comments", 1234),
            ("12.5 k reactions", 12500),
            ("87", 87),
        ],
    )
    def test_parses_compact_and_plain_numbers(self, text, expected):
        """Should expand K/M suffixes and strip separators."""
        assert parse_engagement_number(text) == expected

    def test_word_starting_with_suffix_letter_is_not_a_suffix(self):
        """A word after the number is not a K/M suffix."""
        assert parse_engagement_number("12 kudos") == 12

    @pytest.mark.parametrize("text", ["", None, "no numbers here"])
    def test_unparseable_returns_zero(self, text):
        """Should return 0 when there are no digits."""
        assert parse_engagement_number(text) == 0

    def test_format_engagement_number(self):
        """Should abbreviate with one decimal place."""
        assert format_engagement_number(999) == "999"
        assert format_engagement_number(1200) == "1.2K"
        assert format_engagement_number(2_500_000) == "2.5M"

    @pytest.mark.parametrize(
        "value,expected",
        [(999_949, "999.9K"), (999_960, "1.0M"), (999_999, "1.0M"), (1_000_000, "1.0M")],
    )
    def test_format_rounds_up_into_millions(self, value, expected):
        """Values that round to 1000.0K are shown in millions."""
        assert format_engagement_number(value) == expected


class TestRelativeTimestamp:
    """Tests for relative time conversion."""

    def test_hours_with_trailing_text(self):
        """Should read the first '<n><unit>' token."""
        assert parse_relative_timestamp("2h • Edited", now=NOW) == NOW - timedelta(hours=2)

    def test_minutes_and_months_are_case_sensitive(self):
        """'m' is minutes while 'M' is months."""
        assert parse_relative_timestamp("5m", now=NOW) == NOW - timedelta(minutes=5)
        assert parse_relative_timestamp("1M", now=NOW) == NOW - timedelta(days=30)

    def test_weeks_and_years(self):
        assert parse_relative_timestamp("3w", now=NOW) == NOW - timedelta(weeks=3)
        assert parse_relative_timestamp("1y", now=NOW) == NOW - timedelta(days=365)

    @pytest.mark.parametrize("raw", ["", "Promoted", "yesterday"])
    def test_unrecognized_returns_none(self, raw):
        assert parse_relative_timestamp(raw, now=NOW) is None


class TestSanitizeFilename:
    """Tests for cross-platform filename sanitization."""

    def test_removes_invalid_characters(self):
        assert sanitize_filename('a<b>c:d"e/f\\g|h?i*j') == "abcdefghij"

    def test_replaces_problematic_characters_and_collapses(self):
        """Problematic characters and whitespace runs become one separator."""
        assert sanitize_filename("hello   world!!") == "hello-world"
        assert sanitize_filename("Hello #world", separator="_") == "Hello_world"

    def test_truncates_to_max_length(self):
        assert len(sanitize_filename("a" * 80)) == 50
        assert len(sanitize_filename("b" * 80, max_length=10)) == 10

    def test_reserved_names_get_suffix(self):
        assert sanitize_filename("CON") == "CON-file"
        assert sanitize_filename("lpt1") == "lpt1-file"

    def test_empty_input(self):
        assert sanitize_filename("") == ""
        assert sanitize_filename("???") == ""

    def test_removes_control_characters(self):
        assert sanitize_filename("tab\u200bbed") == "tabbed"


class TestDocumentFilename:
    """Tests for document filename templates."""

    def test_default_template(self):
        """Should join date, author and title with ' - '."""
        name = build_document_filename(
            FilenameTemplate(),
            title="Hello #world",
            author="Alice Kim",
            platform="Facebook",
            when=datetime(2025, 10, 15),
        )
        assert name == "2025-10-15 - Alice-Kim - Hello-world.md"

    def test_platform_and_date_format(self):
        template = FilenameTemplate(include_platform=True, include_author=False, date_format="%Y%m%d")
        name = build_document_filename(
            template, title="Hi", author="x", platform="LinkedIn", when=datetime(2025, 1, 2)
        )
        assert name == "20250102 - LinkedIn - Hi.md"

    def test_all_parts_empty_falls_back_to_timestamp(self):
        template = FilenameTemplate(include_date=False)
        name = build_document_filename(template, title="", author="", platform="Facebook")
        assert name.startswith("post-")
        assert name.endswith(".md")

    def test_respects_max_length(self):
        template = FilenameTemplate(max_length=30)
        name = build_document_filename(
            template, title="t" * 100, author="a" * 100, platform="Facebook", when=datetime(2025, 1, 1)
        )
        assert len(name) <= 30
        assert name.endswith(".md")

    def test_split_extension(self):
        assert split_extension("post.md") == ("post", ".md")
        assert split_extension("archive.tar.gz") == ("archive.tar", ".gz")
        assert split_extension("README") == ("README", "")
        assert split_extension(".hidden") == (".hidden", "")


class TestCanonicalizeUrl:
    """Tests for URL canonicalization."""

    def test_strips_www_query_fragment_and_trailing_slash(self):
        url = "https://WWW.Facebook.com/alice/posts/1/?ref=feed#comments"
        assert canonicalize_url(url) == "https://facebook.com/alice/posts/1"

    def test_empty(self):
        assert canonicalize_url("") == ""


class TestContentHash:
    """Tests for content hashing."""

    def test_normalization_makes_hash_stable(self):
        """Case, whitespace and URLs should not change the hash."""
        a = compute_content_hash("Hello   World https://example.com/x")
        b = compute_content_hash("hello world")
        assert a == b

    def test_different_text_differs(self):
        assert compute_content_hash("one") != compute_content_hash("two")
