"""미디어 가져오기 전략.

직접 요청(httpx)이 차단되면 권한 있는 릴레이(브라우저 컨텍스트)로 같은 요청을 보낸다.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from social_archiver.domain.exceptions import FetchFailure, FetchFailureKind
from social_archiver.domain.services.media_relay import PrivilegedRelay
from social_archiver.infrastructure.media.formats import decode_data_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


@dataclass
class FetchedPayload:
    data: bytes
    content_type: Optional[str] = None


class FetchStrategy(Protocol):
    name: str

    async def fetch(self, url: str, timeout: float) -> FetchedPayload:
        """실패 시 FetchFailure를 올린다."""
        ...


class DirectFetchStrategy:
    """httpx로 직접 요청."""

    name = "direct"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, user_agent: str = DEFAULT_USER_AGENT):
        self._client = client
        self._owns_client = client is None
        self._user_agent = user_agent

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self._user_agent},
                follow_redirects=True,
            )
        return self._client

    async def fetch(self, url: str, timeout: float) -> FetchedPayload:
        try:
            response = await self._get_client().get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchFailure(FetchFailureKind.TIMEOUT, url, str(e) or "요청 시간 초과") from e
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            raise FetchFailure(FetchFailureKind.NETWORK, url, str(e)) from e
        except httpx.TransportError as e:
            # 연결 단계 실패는 교차 출처 차단과 구분할 수 없으므로 릴레이 대상으로 분류
            raise FetchFailure(FetchFailureKind.CORS_BLOCKED, url, str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            raise FetchFailure(
                FetchFailureKind.HTTP_STATUS,
                url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return FetchedPayload(response.content, response.headers.get("content-type"))

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class RelayFetchStrategy:
    """PrivilegedRelay를 통해 요청하고 base64 data: URL 응답을 디코딩."""

    name = "relay"

    def __init__(self, relay: PrivilegedRelay):
        self._relay = relay

    async def fetch(self, url: str, timeout: float) -> FetchedPayload:
        try:
            data_url = await self._relay.fetch_as_data_url(url, timeout)
        except FetchFailure:
            raise
        except asyncio.TimeoutError as e:
            raise FetchFailure(FetchFailureKind.TIMEOUT, url, "릴레이 응답 시간 초과") from e
        except Exception as e:
            raise FetchFailure(FetchFailureKind.NETWORK, url, f"릴레이 요청 실패: {e}") from e

        try:
            data, mime = decode_data_url(data_url)
        except ValueError as e:
            raise FetchFailure(FetchFailureKind.NETWORK, url, f"릴레이 응답 디코딩 실패: {e}") from e

        logger.debug(f"릴레이로 미디어 수신 ({len(data)} bytes): {url}")
        return FetchedPayload(data, mime)
