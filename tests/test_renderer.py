"""Tests for MarkdownRenderer."""

from datetime import datetime

import pytest
import yaml

from social_archiver.domain.entities import Engagement, MediaReference, MediaType
from social_archiver.domain.value_objects.filename import FilenameTemplate
from social_archiver.infrastructure.rendering.markdown_renderer import (
    UNTITLED,
    MarkdownRenderer,
    RenderOptions,
    escape_markdown,
    format_engagement,
    generate_preview,
    generate_title,
)
from tests.conftest import make_record

ARCHIVED_AT = datetime(2025, 10, 16, 8, 0)


def _frontmatter(markdown: str) -> dict:
    assert markdown.startswith("---\n")
    block = markdown.split("---\n")[1]
    return yaml.safe_load(block)


@pytest.fixture
def renderer() -> MarkdownRenderer:
    return MarkdownRenderer(clock=lambda: ARCHIVED_AT)


class TestHelpers:
    """Tests for rendering helper functions."""

    def test_title_is_first_non_empty_line(self):
        assert generate_title("\n  First line here \nsecond") == "First line here"

    def test_title_truncation(self):
        title = generate_title("x" * 80, max_length=50)
        assert title == "x" * 50 + "..."

    def test_empty_title(self):
        assert generate_title("") == UNTITLED

    def test_escape_keeps_hashtags_and_mentions(self):
        escaped = escape_markdown("Loving #python with @guido! 1+1 *bold*")
        assert "#python" in escaped
        assert "@guido" in escaped
        assert "\\!" in escaped
        assert "1\\+1" in escaped
        assert "\\*bold\\*" in escaped

    def test_escape_heading_marker(self):
        assert escape_markdown("# not a heading") == "\\# not a heading"

    def test_format_engagement_skips_missing(self):
        lines = format_engagement(Engagement(likes=1200, shares=3))
        assert lines == ["❤️ Likes: 1.2K", "🔄 Shares: 3"]

    def test_preview_strips_markup(self):
        markdown = "---\nplatform: facebook\n---\n\n# Title\n\nHello \\#x ![[attachments/a.jpg]]"
        assert generate_preview(markdown) == "Title\n\nHello #x"

    def test_preview_truncates(self):
        assert generate_preview("a" * 300, max_length=10) == "a" * 10 + "..."


class TestMarkdownRenderer:
    """Tests for MarkdownRenderer.convert."""

    def test_document_structure(self, renderer):
        record = make_record()
        document = renderer.convert(record)

        lines = document.markdown.splitlines()
        assert "# Hello #world" in lines
        assert document.title == "Hello #world"
        assert "## Media" not in document.markdown
        assert "## Engagement" in document.markdown
        assert "❤️ Likes: 1.2K" in lines
        assert "💬 Comments: 34" in lines
        assert document.markdown.endswith("\n")

    def test_body_hard_line_breaks(self, renderer):
        document = renderer.convert(make_record())
        assert document.body == "Hello #world  \nSecond line\\."

    def test_frontmatter_fields(self, renderer, sample_record):
        document = renderer.convert(sample_record)
        fields = _frontmatter(document.markdown)

        assert fields["platform"] == "facebook"
        assert fields["url"] == "https://facebook.com/alice.kim/posts/1001"
        assert fields["author"] == "Alice Kim"
        assert str(fields["archived"]).startswith("2025-10-16")
        assert fields["media_count"] == 2
        assert fields["has_video"] is False
        assert document.frontmatter_fields["timestamp"] == "2025-10-15T08:30:00"

    def test_embeds_only_saved_media(self, renderer, sample_record):
        """Only media that actually reached storage is referenced."""
        saved = [
            MediaReference(
                type=MediaType.IMAGE,
                filename="facebook_1001-1-one.jpg",
                original_url="https://cdn.example.com/photos/one.jpg",
                caption="Sunset",
            )
        ]
        document = renderer.convert(sample_record, saved)

        assert document.markdown.count("![[") == 1
        assert "![[attachments/facebook_1001-1-one.jpg]]" in document.markdown
        assert "*Sunset*" in document.markdown
        assert document.media_references == tuple(saved)

    def test_options_disable_sections(self, renderer, sample_record):
        options = RenderOptions(
            include_engagement=False, include_frontmatter=False, include_media_links=False
        )
        saved = [MediaReference(MediaType.IMAGE, "a.jpg", "https://cdn.example.com/a.jpg")]
        document = renderer.convert(sample_record, saved, options)

        assert not document.markdown.startswith("---")
        assert "## Engagement" not in document.markdown
        assert "## Media" not in document.markdown

    def test_filename_from_template(self, renderer):
        document = renderer.convert(make_record())
        assert document.filename == "2025-10-15 - Alice-Kim - Hello-world.md"

    def test_filename_uses_clock_without_timestamp(self):
        renderer = MarkdownRenderer(
            FilenameTemplate(include_author=False, include_title=False), clock=lambda: ARCHIVED_AT
        )
        document = renderer.convert(make_record(parsed=None))

        assert document.filename == "2025-10-16.md"
        assert "timestamp" not in document.frontmatter_fields

    def test_untitled_post(self, renderer):
        document = renderer.convert(make_record(text=""))
        assert document.title == UNTITLED
        assert "# Untitled Post" in document.markdown
