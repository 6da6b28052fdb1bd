from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from social_archiver.domain.entities.platform import Platform


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class PostType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"
    LINK = "link"
    POLL = "poll"


@dataclass(frozen=True)
class Author:
    name: str
    username: Optional[str] = None
    profile_url: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class PostContent:
    text: str = ""
    raw_markup: Optional[str] = None


@dataclass(frozen=True)
class PostTimestamp:
    raw: str = ""
    parsed_instant: Optional[datetime] = None


@dataclass(frozen=True)
class MediaRef:
    type: MediaType
    source_url: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class Engagement:
    """찾지 못한 지표는 None으로 둔다."""

    likes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None
    views: Optional[int] = None

    def is_empty(self) -> bool:
        return all(v is None for v in (self.likes, self.comments, self.shares, self.views))


@dataclass(frozen=True)
class SourceUrls:
    post: str
    canonical: Optional[str] = None


@dataclass(frozen=True)
class PostFlags:
    post_type: PostType = PostType.TEXT
    sponsored: Optional[bool] = None
    has_read_more: bool = False


@dataclass(frozen=True)
class PostRecord:
    """플랫폼 DOM에서 추출한 게시물의 정규 표현. 생성 후 변경하지 않는다."""

    id: str
    platform: Platform
    author: Author
    content: PostContent
    timestamp: PostTimestamp
    source_urls: SourceUrls

    media_items: tuple[MediaRef, ...] = ()
    engagement: Engagement = field(default_factory=Engagement)
    flags: PostFlags = field(default_factory=PostFlags)

    def __post_init__(self) -> None:
        if not (self.author.name or "").strip():
            raise ValueError("author.name은 비어 있을 수 없습니다")

    @property
    def has_video(self) -> bool:
        return any(m.type is MediaType.VIDEO for m in self.media_items)
