from __future__ import annotations

from typing import Protocol


class PrivilegedRelay(Protocol):
    """페이지의 교차 출처 제한을 받지 않는 컨텍스트에서 요청을 대신 수행한다."""

    async def fetch_as_data_url(self, url: str, timeout: float) -> str:
        """응답 본문을 base64 data: URL로 반환. 실패 시 예외를 올린다."""
        ...
