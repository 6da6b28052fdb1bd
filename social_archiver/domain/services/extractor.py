from __future__ import annotations

from typing import Any, Optional, Protocol

from social_archiver.domain.entities import Platform, PostRecord


class PostExtractor(Protocol):
    """플랫폼별 게시물 추출기 인터페이스.

    각 플랫폼(Facebook, Instagram, LinkedIn) 추출기가 이 인터페이스를 구현한다.
    """

    @property
    def platform(self) -> Platform:
        ...

    def feed_root(self) -> Optional[Any]:
        """피드 컨테이너 요소. 찾지 못하면 None."""
        ...

    def is_candidate(self, node: Any) -> bool:
        """요소가 게시물 컨테이너인지 판별."""
        ...

    def extract(self, node: Any) -> PostRecord:
        """후보 요소 하나를 PostRecord로 변환. 실패 시 ExtractionFailure."""
        ...

    def enumerate(self) -> list[PostRecord]:
        """현재 보이는 모든 게시물을 문서 순서대로 반환."""
        ...
