from __future__ import annotations

from enum import Enum
from typing import Optional
from urllib.parse import urlsplit


class Platform(str, Enum):
    """지원하는 콘텐츠 플랫폼."""

    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    LINKEDIN = "linkedin"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    Platform.FACEBOOK: "Facebook",
    Platform.INSTAGRAM: "Instagram",
    Platform.LINKEDIN: "LinkedIn",
}

_HOSTS = {
    "facebook.com": Platform.FACEBOOK,
    "instagram.com": Platform.INSTAGRAM,
    "linkedin.com": Platform.LINKEDIN,
}


def detect_platform(url: str) -> Optional[Platform]:
    """URL 호스트명으로 플랫폼을 판별한다. 서브도메인(www., m.)도 허용."""
    try:
        hostname = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return None

    for host, platform in _HOSTS.items():
        if hostname == host or hostname.endswith("." + host):
            return platform
    return None
