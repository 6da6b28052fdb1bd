from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from social_archiver.domain.entities.post import MediaRef, MediaType

if TYPE_CHECKING:
    from social_archiver.domain.exceptions import FetchFailure


class MediaFormat(str, Enum):
    JPEG = "jpg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    MP4 = "mp4"
    WEBM = "webm"

    @property
    def extension(self) -> str:
        return f".{self.value}"


@dataclass
class MediaAsset:
    """가져오기를 시도한 미디어 한 건. 저장되거나 포기되면 버린다."""

    ref: MediaRef
    data: Optional[bytes] = None
    format: Optional[MediaFormat] = None
    content_type: Optional[str] = None
    failure: Optional["FetchFailure"] = None

    @property
    def ok(self) -> bool:
        return self.data is not None and self.failure is None

    @property
    def size(self) -> int:
        return len(self.data) if self.data is not None else 0


@dataclass(frozen=True)
class MediaReference:
    """문서에 임베드할, 실제로 저장된 첨부 파일."""

    type: MediaType
    filename: str
    original_url: str
    caption: Optional[str] = None
