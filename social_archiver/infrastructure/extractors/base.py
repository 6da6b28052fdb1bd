"""추출기 공통 베이스 클래스.

도메인 Protocol(PostExtractor)의 계약을 이행하면서,
후보 요소 탐색과 텍스트/URL/지표 정규화 같은 공통 로직을 제공한다.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Callable, Iterable, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Tag

from social_archiver.domain.entities import (
    MediaRef,
    MediaType,
    PageSnapshot,
    Platform,
    PostRecord,
    PostType,
)
from social_archiver.domain.exceptions import ExtractionFailure
from social_archiver.domain.value_objects.content_hash import compute_content_hash
from social_archiver.domain.value_objects.engagement_number import parse_engagement_number
from social_archiver.infrastructure.extractors.selector_profile import PlatformSelectors

logger = logging.getLogger(__name__)

_BLOCK_TAGS = {
    "p", "div", "li", "ul", "ol", "blockquote", "pre", "section", "article",
    "header", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "tr", "table",
}
_SKIP_TAGS = {"script", "style", "noscript", "template"}
_DISPLAY_NONE = re.compile(r"display\s*:\s*none", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_BLOCK_BREAK = "\x00"
_BLOCK_RUN = re.compile(r"[ \t]*\x00[\s\x00]*")
_ID_ATTRIBUTES = ("data-id", "id", "data-post-id", "data-urn")


def is_hidden(node: Tag) -> bool:
    """요소 자신 또는 조상이 숨겨져 있으면 True."""
    for el in (node, *node.parents):
        if not isinstance(el, Tag) or isinstance(el, BeautifulSoup):
            continue
        if el.has_attr("hidden") or el.get("aria-hidden") == "true":
            return True
        if _DISPLAY_NONE.search(el.get("style") or ""):
            return True
    return False


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def _collect_text(node: Tag, parts: list[str]) -> None:
    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, Tag):
            if child.name in _SKIP_TAGS:
                continue
            if child.name == "br":
                parts.append("\n")
                continue
            block = child.name in _BLOCK_TAGS
            if block:
                parts.append(_BLOCK_BREAK)
            _collect_text(child, parts)
            if block:
                parts.append(_BLOCK_BREAK)
        else:
            # 소스 HTML의 줄바꿈은 화면상 공백일 뿐
            parts.append(_WHITESPACE.sub(" ", str(child)))


def multiline_text(node: Optional[Tag]) -> str:
    """줄바꿈(<br>, 블록 요소)은 유지하고 줄마다 공백을 정규화한 텍스트.

    연속된 블록 경계는 줄바꿈 한 번으로 합친다.
    """
    if node is None:
        return ""

    parts: list[str] = []
    _collect_text(node, parts)
    text = _BLOCK_RUN.sub("\n", "".join(parts))

    lines: list[str] = []
    for line in text.split("\n"):
        line = normalize_whitespace(line)
        if not line and (not lines or not lines[-1]):
            continue
        lines.append(line)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


class BaseExtractor(ABC):
    """모든 플랫폼 추출기의 공통 베이스.

    스냅샷 HTML을 한 번 파싱해 두고, 필드 셀렉터(PlatformSelectors)로 값을 찾는다.
    """

    platform: Platform

    def __init__(self, snapshot: PageSnapshot, selectors: PlatformSelectors):
        self._snapshot = snapshot
        self._selectors = selectors
        self._soup = BeautifulSoup(snapshot.html, "lxml")

    @property
    def snapshot(self) -> PageSnapshot:
        return self._snapshot

    # ─── PostExtractor 계약 ───

    def feed_root(self) -> Optional[Tag]:
        return self._selectors.query_one(self._soup, "feed_container")

    def is_candidate(self, node: Tag) -> bool:
        return (
            isinstance(node, Tag)
            and self._selectors.matches(node, "post_container")
            and not is_hidden(node)
        )

    @abstractmethod
    def extract(self, node: Tag) -> PostRecord: ...

    def candidates(self) -> list[Tag]:
        """후보 게시물 요소. 문서 순서, 다른 후보 안에 중첩된 요소는 제외."""
        accepted: list[Tag] = []
        accepted_ids: set[int] = set()

        for el in self._selectors.query_all(self._soup, "post_container"):
            if any(id(parent) in accepted_ids for parent in el.parents):
                continue
            if not self.is_candidate(el):
                continue
            accepted.append(el)
            accepted_ids.add(id(el))

        return accepted

    def enumerate(self) -> list[PostRecord]:
        records: list[PostRecord] = []
        id_counts: dict[str, int] = {}
        candidates = self.candidates()

        for node in candidates:
            try:
                record = self.extract(node)
            except ExtractionFailure as e:
                logger.debug(f"[{self.platform.value}] 후보 건너뜀: {e.reason}")
                continue
            except Exception as e:
                logger.debug(f"[{self.platform.value}] 후보 파싱 실패: {e}")
                continue

            seen = id_counts.get(record.id, 0)
            id_counts[record.id] = seen + 1
            if seen:
                record = replace(record, id=f"{record.id}_{seen + 1}")
            records.append(record)

        logger.info(
            f"[{self.platform.value}] 후보 {len(candidates)}개 중 {len(records)}건 추출"
        )
        return records

    # ─── 공통 헬퍼 ───

    def _one(
        self, node: Tag, field: str, accept: Optional[Callable[[Tag], bool]] = None
    ) -> Optional[Tag]:
        return self._selectors.query_one(node, field, accept)

    def _all(self, node: Tag, field: str) -> list[Tag]:
        return self._selectors.query_all(node, field)

    def _fail(self, reason: str) -> ExtractionFailure:
        return ExtractionFailure(self.platform.value, reason)

    @staticmethod
    def _text(node: Optional[Tag]) -> str:
        if node is None:
            return ""
        return normalize_whitespace(node.get_text(" ", strip=True))

    @staticmethod
    def _attr(node: Optional[Tag], name: str) -> Optional[str]:
        if node is None:
            return None
        value = node.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        value = (value or "").strip()
        return value or None

    def _resolve(self, url: Optional[str]) -> Optional[str]:
        """문서 기준 절대 URL. blob: URL은 페이지 밖에서 가져올 수 없으므로 None."""
        if not url:
            return None
        url = url.strip()
        if not url or url.startswith("blob:") or url.startswith("javascript:"):
            return None
        if url.startswith("data:"):
            return url
        return urljoin(self._snapshot.url, url)

    def _href(self, node: Optional[Tag]) -> Optional[str]:
        return self._resolve(self._attr(node, "href"))

    def _post_id(self, node: Tag, *preferred: Optional[str]) -> str:
        for value in preferred:
            if value:
                return f"{self.platform.value}_{value}"
        for attr in _ID_ATTRIBUTES:
            value = self._attr(node, attr)
            if value:
                return f"{self.platform.value}_{value}"
        digest = compute_content_hash(node.get_text(" ", strip=True))
        return f"{self.platform.value}_{digest[:16]}"

    def _metric(self, node: Tag, field: str) -> Optional[int]:
        """지표 요소를 찾지 못하면 None, 찾았지만 숫자가 없으면 0."""
        el = self._one(node, field)
        if el is None:
            return None
        text = self._text(el) or self._attr(el, "aria-label") or ""
        return parse_engagement_number(text)

    def _flag(self, node: Tag, field: str) -> Optional[bool]:
        if not self._selectors.selectors(field):
            return None
        return self._one(node, field) is not None

    def _media(
        self,
        entries: Iterable[tuple[MediaType, Optional[str], Optional[str]]],
        exclude: Iterable[Optional[str]] = (),
    ) -> tuple[MediaRef, ...]:
        """(유형, URL, 캡션) 목록을 중복 제거된 MediaRef 튜플로 만든다."""
        excluded = {u for u in exclude if u}
        seen: set[str] = set()
        items: list[MediaRef] = []
        for media_type, raw_url, caption in entries:
            url = self._resolve(raw_url)
            if not url or url in excluded or url in seen:
                continue
            seen.add(url)
            items.append(MediaRef(type=media_type, source_url=url, caption=caption or None))
        return tuple(items)

    def _video_url(self, video: Tag) -> Optional[str]:
        """video 요소의 가져올 수 있는 첫 URL (src, <source>, poster 순)."""
        candidates = [self._attr(video, "src")]
        candidates.extend(self._attr(s, "src") for s in video.find_all("source"))
        candidates.append(self._attr(video, "poster"))
        for url in candidates:
            if self._resolve(url):
                return url
        return None

    @staticmethod
    def _classify(media: tuple[MediaRef, ...], carousel: bool = False) -> PostType:
        images = sum(1 for m in media if m.type is MediaType.IMAGE)
        if any(m.type is MediaType.VIDEO for m in media):
            return PostType.VIDEO
        if images > 1 or (carousel and images):
            return PostType.CAROUSEL
        if images == 1:
            return PostType.IMAGE
        return PostType.TEXT
