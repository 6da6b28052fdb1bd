"""파일명/URL 정규화 값 객체.

크로스 플랫폼(Windows/macOS/Linux)에서 안전한 파일명을 만들고,
게시물 URL을 중복 비교 가능한 정규 형태로 바꾼다.
"""

from __future__ import annotations

import re
import time
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from social_archiver.domain.value_objects.clock import utc_now

# 어떤 OS에서도 허용되지 않는 문자
_INVALID_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
# 허용은 되지만 셸/마크다운 링크에서 문제를 일으키는 문자
_PROBLEMATIC_CHARS = re.compile(r"[#%&{}~$'`!@+]")
_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}

MAX_FILENAME_LENGTH = 200
DEFAULT_PART_LENGTH = 50
_PART_JOINER = " - "


def sanitize_filename(raw: str, separator: str = "-", max_length: int = DEFAULT_PART_LENGTH) -> str:
    """파일명 구성 요소 하나를 안전한 문자열로 바꾼다. 결과가 비어 있을 수 있다."""
    if not raw:
        return ""

    text = _INVALID_CHARS.sub("", raw)
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("C"))
    text = _PROBLEMATIC_CHARS.sub(separator, text)
    text = re.sub(rf"[\s{re.escape(separator)}-]+", separator, text)
    text = text.strip(" .-_" + separator)

    if len(text) > max_length:
        text = text[:max_length].rstrip(" .-_" + separator)

    if text.upper() in _RESERVED_NAMES:
        text = f"{text}{separator}file"

    return text


@dataclass(frozen=True)
class FilenameTemplate:
    """문서 파일명 템플릿. 활성화된 요소를 date, platform, author, title 순서로 잇는다."""

    include_date: bool = True
    include_author: bool = True
    include_title: bool = True
    include_platform: bool = False
    date_format: str = "%Y-%m-%d"
    separator: str = "-"
    max_length: int = MAX_FILENAME_LENGTH


def build_document_filename(
    template: FilenameTemplate,
    *,
    title: str,
    author: str,
    platform: str,
    when: Optional[datetime] = None,
    extension: str = ".md",
) -> str:
    """템플릿에 따라 문서 파일명을 만든다. 모든 요소가 비면 post-{밀리초}로 대체."""
    parts: list[str] = []
    when = when or utc_now()

    if template.include_date:
        parts.append(sanitize_filename(when.strftime(template.date_format), template.separator))
    if template.include_platform:
        parts.append(sanitize_filename(platform, template.separator))
    if template.include_author:
        parts.append(sanitize_filename(author, template.separator))
    if template.include_title:
        parts.append(sanitize_filename(title, template.separator))

    stem = _PART_JOINER.join(p for p in parts if p)
    if not stem:
        stem = f"post-{int(time.time() * 1000)}"

    budget = template.max_length - len(extension)
    if len(stem) > budget:
        stem = stem[:budget].rstrip(" .-_")

    return f"{stem}{extension}"


def split_extension(filename: str) -> tuple[str, str]:
    """"name.md" → ("name", ".md"). 확장자가 없으면 ("name", "")."""
    dot = filename.rfind(".")
    if dot <= 0:
        return filename, ""
    return filename[:dot], filename[dot:]


def canonicalize_url(url: str) -> str:
    """중복 비교용 정규 URL.

    scheme/host 소문자화, www. 제거, query/fragment 제거, 끝의 '/' 제거.
    """
    if not url:
        return ""
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return url.strip()

    scheme = (parts.scheme or "https").lower()
    netloc = parts.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    path = parts.path.rstrip("/")
    return urlunsplit((scheme, netloc, path, "", ""))
