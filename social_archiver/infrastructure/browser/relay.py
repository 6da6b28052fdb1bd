"""CDP 브라우저 컨텍스트를 통한 미디어 릴레이.

브라우저 컨텍스트의 API 요청 클라이언트는 페이지의 교차 출처 제한을 받지 않고
로그인 쿠키를 공유하므로, 직접 요청이 막힌 미디어를 대신 받아올 수 있다.
"""

from __future__ import annotations

import logging

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from social_archiver.domain.exceptions import FetchFailure, FetchFailureKind
from social_archiver.infrastructure.browser.cdp import cdp_connection, cdp_url_for
from social_archiver.infrastructure.media.formats import encode_data_url

logger = logging.getLogger(__name__)


class CdpRelay:
    """PrivilegedRelay 구현. 응답 본문을 base64 data: URL로 돌려준다."""

    def __init__(self, cdp_port: int = 9222):
        self._cdp_url = cdp_url_for(cdp_port)

    async def fetch_as_data_url(self, url: str, timeout: float) -> str:
        async with cdp_connection(self._cdp_url, "relay") as (pw, context):
            try:
                response = await context.request.get(url, timeout=timeout * 1000)
            except PlaywrightTimeoutError as e:
                raise FetchFailure(FetchFailureKind.TIMEOUT, url, "릴레이 응답 시간 초과") from e

            if not response.ok:
                raise FetchFailure(
                    FetchFailureKind.HTTP_STATUS,
                    url,
                    f"HTTP {response.status}",
                    status_code=response.status,
                )

            body = await response.body()
            content_type = response.headers.get("content-type", "application/octet-stream")

        logger.debug(f"[relay] {len(body)} bytes 수신: {url}")
        return encode_data_url(body, content_type.split(";")[0].strip())
