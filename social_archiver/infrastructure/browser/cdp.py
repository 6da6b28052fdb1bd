"""CDP 연결 유틸리티.

페이지 캡처와 미디어 릴레이가 공유하는 Chrome CDP 연결 로직을 중앙화한다.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from playwright.async_api import BrowserContext, Playwright, async_playwright

logger = logging.getLogger(__name__)


def cdp_url_for(port: int) -> str:
    return f"http://127.0.0.1:{port}"


@asynccontextmanager
async def cdp_connection(
    cdp_url: str, source_name: str
) -> AsyncGenerator[tuple[Playwright, BrowserContext], None]:
    """Chrome CDP 연결 context manager.

    Yields (playwright, context). 종료 시 playwright를 정리한다.
    """
    pw = await async_playwright().start()
    try:
        browser = await pw.chromium.connect_over_cdp(cdp_url)
    except Exception as e:
        await pw.stop()
        logger.error(f"[{source_name}] Chrome 연결 실패: {e}")
        raise

    try:
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
        yield pw, context
    finally:
        await pw.stop()


async def is_browser_reachable(cdp_url: str) -> bool:
    """CDP 엔드포인트에 연결 가능한지 확인."""
    try:
        async with cdp_connection(cdp_url, "browser"):
            return True
    except Exception as e:
        logger.warning(f"[browser] CDP 연결 확인 실패: {e}")
        return False
