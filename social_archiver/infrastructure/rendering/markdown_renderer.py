"""마크다운 문서 렌더러.

PostRecord와 실제로 저장된 첨부 파일 목록으로부터
프론트매터 + 제목 + 본문 + 미디어/참여 지표 섹션으로 된 StoredDocument를 만든다.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

import yaml

from social_archiver.domain.entities import Engagement, MediaReference, PostRecord, StoredDocument
from social_archiver.domain.exceptions import RenderFailure
from social_archiver.domain.value_objects.clock import to_utc, utc_now
from social_archiver.domain.value_objects.engagement_number import format_engagement_number
from social_archiver.domain.value_objects.filename import FilenameTemplate, build_document_filename

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Post"
ATTACHMENTS_DIR = "attachments"
FRONTMATTER_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# 마크다운에서 의미를 갖는 문자. 해시태그/멘션의 '#', '@'는 살린다.
_SPECIAL_CHARS = re.compile(r"([\\`*_{}\[\]()#+\-.!|])")
_TAG_OR_MENTION = re.compile(r"(?<!\w)([#@]\w+)")

_ENGAGEMENT_LABELS = (
    ("likes", "❤️ Likes"),
    ("comments", "💬 Comments"),
    ("shares", "🔄 Shares"),
    ("views", "👁️ Views"),
)


@dataclass(frozen=True)
class RenderOptions:
    include_engagement: bool = True
    include_media_links: bool = True
    include_frontmatter: bool = True
    max_title_length: int = 50
    preserve_formatting: bool = True


def generate_title(text: str, max_length: int = 50) -> str:
    """본문 첫 줄을 제목으로. 길면 잘라서 '...'을 붙인다."""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    first_line = " ".join(first_line.split())
    if not first_line:
        return UNTITLED
    if len(first_line) > max_length:
        return first_line[:max_length].strip() + "..."
    return first_line


def escape_markdown(text: str) -> str:
    """특수 문자를 이스케이프하되 해시태그와 멘션 토큰은 그대로 둔다."""
    pieces = _TAG_OR_MENTION.split(text)
    # split 결과에서 홀수 인덱스가 태그/멘션 토큰
    return "".join(
        piece if i % 2 else _SPECIAL_CHARS.sub(r"\\\1", piece)
        for i, piece in enumerate(pieces)
    )


def format_body(text: str, preserve_formatting: bool = True) -> str:
    if not preserve_formatting:
        return text.strip()
    escaped = escape_markdown(text.strip())
    # 줄 끝 공백 두 칸 = 하드 줄바꿈
    return escaped.replace("\n", "  \n")


def format_engagement(engagement: Engagement) -> list[str]:
    lines = []
    for attr, label in _ENGAGEMENT_LABELS:
        value = getattr(engagement, attr)
        if value is not None:
            lines.append(f"{label}: {format_engagement_number(value)}")
    return lines


def embed_reference(media: MediaReference) -> str:
    return f"![[{ATTACHMENTS_DIR}/{media.filename}]]"


def generate_preview(markdown: str, max_length: int = 200) -> str:
    """프론트매터와 마크다운 문법을 걷어낸 평문 미리보기."""
    text = re.sub(r"\A---\n.*?\n---\n", "", markdown, flags=re.DOTALL)
    text = re.sub(r"#+\s", "", text)
    text = re.sub(r"!\[\[.*?\]\]", "", text)
    text = re.sub(r"\[\[(.*?)\]\]", r"\1", text)
    text = re.sub(r"\\(.)", r"\1", text)
    text = re.sub(r"[*_`]", "", text)
    text = text.strip()

    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


class MarkdownRenderer:
    """ContentRenderer 구현 (Obsidian 호환 마크다운)."""

    def __init__(
        self,
        filename_template: Optional[FilenameTemplate] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._template = filename_template or FilenameTemplate()
        self._clock = clock

    def convert(
        self,
        record: PostRecord,
        media_references: Sequence[MediaReference] = (),
        options: Optional[RenderOptions] = None,
    ) -> StoredDocument:
        options = options or RenderOptions()
        try:
            return self._convert(record, tuple(media_references), options)
        except RenderFailure:
            raise
        except Exception as e:
            logger.exception(f"[{record.platform.value}] 문서 렌더링 실패: {record.id}")
            raise RenderFailure(f"문서 렌더링 실패: {e}") from e

    def _convert(
        self,
        record: PostRecord,
        media_references: tuple[MediaReference, ...],
        options: RenderOptions,
    ) -> StoredDocument:
        title = generate_title(record.content.text, options.max_title_length)
        fields = self.frontmatter_fields(record)
        body = format_body(record.content.text, options.preserve_formatting)

        parts: list[str] = []
        if options.include_frontmatter:
            dumped = yaml.safe_dump(
                fields, sort_keys=False, allow_unicode=True, default_flow_style=False
            )
            parts += ["---", dumped.rstrip("\n"), "---", ""]

        parts += [f"# {title}", ""]
        if body:
            parts += [body, ""]

        if options.include_media_links and media_references:
            parts += ["## Media", ""]
            for media in media_references:
                parts.append(embed_reference(media))
                if media.caption:
                    parts.append(f"*{media.caption.replace('*', '')}*")
                parts.append("")

        if options.include_engagement:
            engagement_lines = format_engagement(record.engagement)
            if engagement_lines:
                parts += ["## Engagement", "", *engagement_lines, ""]

        markdown = "\n".join(parts).rstrip("\n") + "\n"

        filename = self.document_filename(record, options)

        return StoredDocument(
            frontmatter_fields=fields,
            title=title,
            body=body,
            markdown=markdown,
            filename=filename,
            media_references=media_references,
        )

    def document_filename(self, record: PostRecord, options: Optional[RenderOptions] = None) -> str:
        """문서 파일명. 렌더링 전에 이름 충돌을 미리 확인할 때도 쓴다."""
        options = options or RenderOptions()
        return build_document_filename(
            self._template,
            title=generate_title(record.content.text, options.max_title_length),
            author=record.author.name,
            platform=record.platform.display_name,
            when=to_utc(record.timestamp.parsed_instant or self._clock()),
        )

    def frontmatter_fields(self, record: PostRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "platform": record.platform.value,
            "archived": to_utc(self._clock()).strftime(FRONTMATTER_DATE_FORMAT),
            "url": record.source_urls.canonical or record.source_urls.post,
            "author": record.author.name,
        }
        if record.timestamp.parsed_instant is not None:
            fields["timestamp"] = to_utc(record.timestamp.parsed_instant).strftime(
                FRONTMATTER_DATE_FORMAT
            )
        if record.media_items:
            fields["media_count"] = len(record.media_items)
            fields["has_video"] = record.has_video
        return fields
