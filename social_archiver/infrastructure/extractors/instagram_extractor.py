"""Instagram 게시물 추출기."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit

from bs4 import Tag

from social_archiver.domain.entities import (
    Author,
    Engagement,
    MediaType,
    Platform,
    PostContent,
    PostFlags,
    PostRecord,
    PostTimestamp,
    SourceUrls,
)
from social_archiver.domain.value_objects.clock import to_utc
from social_archiver.domain.value_objects.filename import canonicalize_url
from social_archiver.infrastructure.extractors.base import BaseExtractor, multiline_text

logger = logging.getLogger(__name__)

_SRCSET_WIDTH = re.compile(r"^(\d+(?:\.\d+)?)[wx]$")


def best_srcset_url(srcset: Optional[str]) -> Optional[str]:
    """srcset에서 해상도가 가장 높은 URL. 설명자가 없으면 마지막 항목."""
    if not srcset:
        return None

    best_url: Optional[str] = None
    best_width = -1.0
    for entry in srcset.split(","):
        pieces = entry.strip().split()
        if not pieces:
            continue
        width = 0.0
        if len(pieces) > 1:
            match = _SRCSET_WIDTH.match(pieces[-1])
            if match:
                width = float(match.group(1))
        if width >= best_width:
            best_url, best_width = pieces[0], width
    return best_url


def _is_in_header(node: Tag) -> bool:
    return node.find_parent("header") is not None


class InstagramExtractor(BaseExtractor):
    """Instagram 피드/게시물 페이지 추출기."""

    platform = Platform.INSTAGRAM

    def is_candidate(self, node: Tag) -> bool:
        if not super().is_candidate(node) or node.name != "article":
            return False
        # 헤더 또는 미디어가 있어야 게시물로 본다
        has_header = node.find("header") is not None
        has_media = node.select_one("img[srcset], video") is not None
        return has_header or has_media

    def extract(self, node: Tag) -> PostRecord:
        author_el = self._one(node, "author.name")
        name = self._text(author_el)
        username = self._username(self._attr(self._one(node, "author.username"), "href"))
        if not name and not username:
            raise self._fail("작성자 정보 없음")

        avatar_el = self._one(node, "author.avatar")
        avatar_url = self._resolve(self._attr(avatar_el, "src"))
        author = Author(
            name=name or username or "",
            username=username,
            profile_url=self._href(self._one(node, "author.profile_link")),
            avatar_url=avatar_url,
        )

        # 헤더 안의 span은 작성자 영역이므로 본문 후보에서 제외
        content_el = self._one(node, "content.text", accept=lambda el: not _is_in_header(el))
        content = PostContent(
            text=multiline_text(content_el),
            raw_markup=content_el.decode_contents() if content_el is not None else None,
        )

        images = [
            img for img in self._all(node, "media.images")
            if img is not avatar_el and not _is_in_header(img)
        ]
        image_entries = []
        for img in images:
            url = best_srcset_url(self._attr(img, "srcset")) or self._attr(img, "src")
            if url and "avatar" in url:
                continue
            image_entries.append((MediaType.IMAGE, url, self._attr(img, "alt")))

        media = self._media(
            [
                *image_entries,
                *((MediaType.VIDEO, self._video_url(v), None) for v in self._all(node, "media.videos")),
            ],
            exclude=[avatar_url],
        )
        carousel = self._one(node, "media.carousel") is not None

        post_url = self._post_url(node)

        return PostRecord(
            id=self._post_id(node, self._shortcode(post_url)),
            platform=self.platform,
            author=author,
            content=content,
            timestamp=self._timestamp(node),
            source_urls=SourceUrls(post=post_url, canonical=canonicalize_url(post_url)),
            media_items=media,
            engagement=Engagement(
                likes=self._metric(node, "engagement.likes"),
                comments=self._metric(node, "engagement.comments"),
            ),
            flags=PostFlags(
                post_type=self._classify(media, carousel=carousel),
                has_read_more=self._one(node, "content.read_more") is not None,
            ),
        )

    def _timestamp(self, node: Tag) -> PostTimestamp:
        ts_el = self._one(node, "timestamp")
        if ts_el is None:
            return PostTimestamp()

        iso = self._attr(ts_el, "datetime")
        raw = self._text(ts_el) or iso or ""
        parsed: Optional[datetime] = None
        if iso:
            try:
                parsed = to_utc(datetime.fromisoformat(iso.replace("Z", "+00:00")))
            except ValueError:
                logger.debug(f"[instagram] datetime 파싱 실패: {iso}")
        return PostTimestamp(raw=raw, parsed_instant=parsed)

    def _post_url(self, node: Tag) -> str:
        post_url = self._href(self._one(node, "metadata.post_link"))

        # 게시물 링크를 못 찾으면 time 요소를 감싼 링크를 사용
        if not post_url or "/p/" not in post_url:
            time_el = node.find("time")
            parent = time_el.parent if time_el is not None else None
            if parent is not None and parent.name == "a":
                post_url = self._href(parent) or post_url

        return post_url or self._snapshot.url

    @staticmethod
    def _username(href: Optional[str]) -> Optional[str]:
        if not href:
            return None
        path = urlsplit(href).path.strip("/")
        if not path:
            return None
        return path.split("/")[0]

    @staticmethod
    def _shortcode(post_url: str) -> Optional[str]:
        match = re.search(r"/(?:p|reel)/([A-Za-z0-9_-]+)", post_url)
        return match.group(1) if match else None
