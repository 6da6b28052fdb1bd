"""미디어 포맷 판별과 data: URL 디코딩."""

from __future__ import annotations

import base64
from typing import Optional
from urllib.parse import unquote_to_bytes, urlsplit

from social_archiver.domain.entities import MediaFormat

_EXTENSIONS = {
    "jpg": MediaFormat.JPEG,
    "jpeg": MediaFormat.JPEG,
    "png": MediaFormat.PNG,
    "webp": MediaFormat.WEBP,
    "gif": MediaFormat.GIF,
    "mp4": MediaFormat.MP4,
    "webm": MediaFormat.WEBM,
}

# 부분 문자열 매칭 순서가 의미 있음 (image/jpeg, image/jpg, video/mp4 ...)
_CONTENT_TYPES = (
    ("jpeg", MediaFormat.JPEG),
    ("jpg", MediaFormat.JPEG),
    ("png", MediaFormat.PNG),
    ("webp", MediaFormat.WEBP),
    ("gif", MediaFormat.GIF),
    ("mp4", MediaFormat.MP4),
    ("webm", MediaFormat.WEBM),
)


def last_path_segment(url: str) -> str:
    if url.startswith("data:"):
        return ""
    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    return path.rsplit("/", 1)[-1]


def format_from_url(url: str) -> Optional[MediaFormat]:
    """URL 경로의 마지막 세그먼트 확장자로 포맷을 판별."""
    segment = last_path_segment(url)
    if "." not in segment:
        return None
    return _EXTENSIONS.get(segment.rsplit(".", 1)[-1].lower())


def format_from_content_type(content_type: Optional[str]) -> Optional[MediaFormat]:
    if not content_type:
        return None
    lowered = content_type.lower()
    for token, fmt in _CONTENT_TYPES:
        if token in lowered:
            return fmt
    return None


def detect_format(url: str, content_type: Optional[str] = None) -> Optional[MediaFormat]:
    """URL 확장자 우선, 없으면 Content-Type. 판별 불가면 None (오류 아님)."""
    return format_from_url(url) or format_from_content_type(content_type)


def extension_for(fmt: MediaFormat) -> str:
    return fmt.extension


def decode_data_url(url: str) -> tuple[bytes, str]:
    """data: URL을 (바이트, MIME 타입)으로 디코딩. 형식이 잘못되면 ValueError."""
    if not url.startswith("data:"):
        raise ValueError("data: URL이 아닙니다")

    header, sep, payload = url[5:].partition(",")
    if not sep:
        raise ValueError("data: URL에 ','가 없습니다")

    params = header.split(";")
    mime = params[0] or "text/plain"
    if "base64" in params[1:]:
        return base64.b64decode(payload), mime
    return unquote_to_bytes(payload), mime


def encode_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
