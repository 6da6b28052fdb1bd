"""LinkedIn 게시물 추출기."""

from __future__ import annotations

import logging
import re
from typing import Optional

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
    PostType,
    SourceUrls,
)
from social_archiver.domain.value_objects.relative_time import parse_relative_timestamp
from social_archiver.infrastructure.extractors.base import BaseExtractor, multiline_text

logger = logging.getLogger(__name__)

_ACTIVITY_URN = re.compile(r"urn:li:(?:activity|share|ugcPost):[\w-]+")

CANONICAL_POST_URL = "https://www.linkedin.com/feed/update/{urn}/"


class LinkedInExtractor(BaseExtractor):
    """LinkedIn 피드 게시물 추출기."""

    platform = Platform.LINKEDIN

    def extract(self, node: Tag) -> PostRecord:
        name = self._author_name(node)
        if not name:
            raise self._fail("작성자 이름 없음")

        avatar_el = self._one(node, "author.avatar")
        avatar_url = self._resolve(self._attr(avatar_el, "src"))
        author = Author(
            name=name,
            username=self._text(self._one(node, "author.username")) or None,
            profile_url=self._href(self._one(node, "author.profile_link")),
            avatar_url=avatar_url,
        )

        content_el = self._one(node, "content.text")
        content = PostContent(
            text=multiline_text(content_el),
            raw_markup=content_el.decode_contents() if content_el is not None else None,
        )

        # 상대 시각("2h • Edited")은 캡처 시점 기준으로 환산
        raw_ts = self._text(self._one(node, "timestamp"))
        timestamp = PostTimestamp(
            raw=raw_ts,
            parsed_instant=parse_relative_timestamp(raw_ts, now=self._snapshot.captured_at),
        )

        images = [img for img in self._all(node, "media.images") if img is not avatar_el]
        media = self._media(
            [
                *((MediaType.IMAGE, self._attr(img, "src"), self._attr(img, "alt")) for img in images),
                *((MediaType.VIDEO, self._video_url(v), None) for v in self._all(node, "media.videos")),
            ],
            exclude=[avatar_url],
        )

        post_type = self._classify(media)
        if post_type is PostType.TEXT and self._one(node, "media.article") is not None:
            post_type = PostType.LINK

        urn = self._activity_urn(node)
        canonical = CANONICAL_POST_URL.format(urn=urn) if urn else None
        post_url = self._href(self._one(node, "metadata.post_link")) or canonical or self._snapshot.url

        return PostRecord(
            id=self._post_id(node, urn),
            platform=self.platform,
            author=author,
            content=content,
            timestamp=timestamp,
            source_urls=SourceUrls(post=post_url, canonical=canonical or post_url),
            media_items=media,
            engagement=Engagement(
                likes=self._metric(node, "engagement.likes"),
                comments=self._metric(node, "engagement.comments"),
                shares=self._metric(node, "engagement.shares"),
            ),
            flags=PostFlags(
                post_type=post_type,
                sponsored=self._flag(node, "metadata.sponsored"),
                has_read_more=self._one(node, "content.read_more") is not None,
            ),
        )

    def _author_name(self, node: Tag) -> str:
        # 화면용/스크린리더용 이름이 줄바꿈으로 중복되는 경우 첫 줄만 사용
        el = self._one(node, "author.name")
        return multiline_text(el).split("\n")[0].strip()

    def _activity_urn(self, node: Tag) -> Optional[str]:
        for attr in ("data-urn", "data-id"):
            value = self._attr(node, attr) or ""
            match = _ACTIVITY_URN.search(value)
            if match:
                return match.group(0)

        nested = node.select_one('[data-urn^="urn:li:"], [data-id^="urn:li:"]')
        if nested is not None:
            value = self._attr(nested, "data-urn") or self._attr(nested, "data-id") or ""
            match = _ACTIVITY_URN.search(value)
            if match:
                return match.group(0)

        link = self._attr(self._one(node, "metadata.post_link"), "href") or ""
        match = _ACTIVITY_URN.search(link)
        return match.group(0) if match else None
