"""Facebook 게시물 추출기."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
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
    SourceUrls,
)
from social_archiver.domain.value_objects.filename import canonicalize_url
from social_archiver.infrastructure.extractors.base import BaseExtractor, multiline_text

logger = logging.getLogger(__name__)


class FacebookExtractor(BaseExtractor):
    """Facebook 뉴스피드 게시물 추출기."""

    platform = Platform.FACEBOOK

    def extract(self, node: Tag) -> PostRecord:
        name = self._text(self._one(node, "author.name"))
        if not name:
            raise self._fail("작성자 이름 없음")

        avatar_el = self._one(node, "author.avatar")
        avatar_url = self._resolve(
            self._attr(avatar_el, "src")
            or self._attr(avatar_el, "xlink:href")
            or self._attr(avatar_el, "href")
        )
        author = Author(
            name=name,
            profile_url=self._href(self._one(node, "author.profile_link")),
            avatar_url=avatar_url,
        )

        content_el = self._one(node, "content.text")
        content = PostContent(
            text=multiline_text(content_el),
            raw_markup=content_el.decode_contents() if content_el is not None else None,
        )

        timestamp = self._timestamp(node)

        images = [img for img in self._all(node, "media.images") if img is not avatar_el]
        media = self._media(
            [
                *((MediaType.IMAGE, self._attr(img, "src"), self._attr(img, "alt")) for img in images),
                *((MediaType.VIDEO, self._video_url(v), None) for v in self._all(node, "media.videos")),
            ],
            exclude=[avatar_url],
        )

        post_url = self._href(self._one(node, "metadata.post_link")) or self._snapshot.url

        return PostRecord(
            id=self._post_id(node),
            platform=self.platform,
            author=author,
            content=content,
            timestamp=timestamp,
            source_urls=SourceUrls(post=post_url, canonical=canonicalize_url(post_url)),
            media_items=media,
            engagement=self._engagement(node),
            flags=PostFlags(
                post_type=self._classify(media),
                sponsored=self._flag(node, "metadata.sponsored"),
                has_read_more=self._one(node, "content.read_more") is not None,
            ),
        )

    def _timestamp(self, node: Tag) -> PostTimestamp:
        ts_el = self._one(node, "timestamp")
        if ts_el is None:
            return PostTimestamp()

        raw = self._text(ts_el) or self._attr(ts_el, "title") or ""
        utime = self._attr(ts_el, "data-utime")
        parsed: Optional[datetime] = None
        if utime:
            try:
                parsed = datetime.fromtimestamp(int(utime), tz=timezone.utc)
            except (ValueError, OverflowError, OSError):
                logger.debug(f"[facebook] data-utime 파싱 실패: {utime}")
        return PostTimestamp(raw=raw, parsed_instant=parsed)

    def _engagement(self, node: Tag) -> Engagement:
        return Engagement(
            likes=self._metric(node, "engagement.likes"),
            comments=self._metric(node, "engagement.comments"),
            shares=self._metric(node, "engagement.shares"),
        )
