from __future__ import annotations

from typing import Protocol

from social_archiver.domain.entities import PageSnapshot, Platform


class PageSource(Protocol):
    """플랫폼 페이지의 DOM 스냅샷을 제공하는 외부 협력자."""

    async def snapshot(self, platform: Platform) -> PageSnapshot:
        ...

    async def is_available(self) -> bool:
        """브라우저 연결 가능 여부."""
        ...
