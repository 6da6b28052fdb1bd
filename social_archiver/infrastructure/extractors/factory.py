from __future__ import annotations

from typing import Optional

from social_archiver.domain.entities import PageSnapshot, Platform
from social_archiver.domain.exceptions import ConfigurationError
from social_archiver.infrastructure.extractors.base import BaseExtractor
from social_archiver.infrastructure.extractors.facebook_extractor import FacebookExtractor
from social_archiver.infrastructure.extractors.instagram_extractor import InstagramExtractor
from social_archiver.infrastructure.extractors.linkedin_extractor import LinkedInExtractor
from social_archiver.infrastructure.extractors.selector_profile import (
    SelectorProfile,
    load_selector_profile,
)

_EXTRACTORS: dict[Platform, type[BaseExtractor]] = {
    Platform.FACEBOOK: FacebookExtractor,
    Platform.INSTAGRAM: InstagramExtractor,
    Platform.LINKEDIN: LinkedInExtractor,
}


def has_extractor(platform: Platform) -> bool:
    return platform in _EXTRACTORS


def create_extractor(
    platform: Platform,
    snapshot: PageSnapshot,
    profile: Optional[SelectorProfile] = None,
) -> BaseExtractor:
    """플랫폼에 맞는 추출기를 생성한다."""
    extractor_cls = _EXTRACTORS.get(platform)
    if extractor_cls is None:
        raise ValueError(f"'{platform}' 추출기가 등록되지 않음")

    profile = profile if profile is not None else load_selector_profile()
    selectors = profile.get(Platform(platform))
    if selectors is None:
        raise ConfigurationError(f"[{platform}] 셀렉터 프로파일이 없습니다")
    return extractor_cls(snapshot, selectors)
