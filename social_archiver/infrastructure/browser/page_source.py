"""CDP 기반 페이지 스냅샷 소스.

사용자의 실행 중인 Chrome에서 플랫폼 탭을 찾거나 새로 열어 DOM을 캡처한다.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from playwright.async_api import BrowserContext, Page

from social_archiver.domain.entities import PageSnapshot, Platform, detect_platform
from social_archiver.domain.exceptions import CaptureError
from social_archiver.infrastructure.browser.cdp import cdp_connection, cdp_url_for, is_browser_reachable
from social_archiver.infrastructure.config.settings import CaptureConfig

logger = logging.getLogger(__name__)

FEED_URLS = {
    Platform.FACEBOOK: "https://www.facebook.com/",
    Platform.INSTAGRAM: "https://www.instagram.com/",
    Platform.LINKEDIN: "https://www.linkedin.com/feed/",
}

LOGIN_KEYWORDS = ["login", "authwall", "checkpoint", "accounts/login"]


class CdpPageSource:
    """Chrome 탭의 DOM 스냅샷 제공자 (CDP 기반)."""

    def __init__(self, config: CaptureConfig, cdp_port: int = 9222):
        self._config = config
        self._cdp_url = cdp_url_for(cdp_port)

    async def is_available(self) -> bool:
        return await is_browser_reachable(self._cdp_url)

    async def snapshot(self, platform: Platform) -> PageSnapshot:
        async with cdp_connection(self._cdp_url, platform.value) as (pw, context):
            page = self._find_tab(context, platform)
            opened = page is None

            if page is not None:
                logger.info(f"[{platform.value}] 기존 탭 발견: {page.url}")
            else:
                page = await context.new_page()
                await page.goto(FEED_URLS[platform], wait_until="domcontentloaded", timeout=60000)
                logger.info(f"[{platform.value}] 새 탭으로 피드 열기: {FEED_URLS[platform]}")
                await asyncio.sleep(random.uniform(2.0, 4.0))

            try:
                if any(kw in page.url for kw in LOGIN_KEYWORDS):
                    raise CaptureError(f"{platform.display_name}: Chrome에서 로그인 해주세요")

                await self._scroll(page)
                html = await page.content()
                url = page.url
            finally:
                if opened:
                    await page.close()

        logger.info(f"[{platform.value}] 스냅샷 캡처 완료 ({len(html)} chars)")
        return PageSnapshot(html=html, url=url)

    async def _scroll(self, page: Page) -> None:
        for round_num in range(self._config.scroll_rounds):
            await page.evaluate(f"window.scrollBy(0, {random.randint(800, 1500)})")
            await asyncio.sleep(
                random.uniform(self._config.scroll_delay_min, self._config.scroll_delay_max)
            )
            if round_num % 2 == 0:
                await page.mouse.move(random.randint(100, 800), random.randint(100, 600))

    @staticmethod
    def _find_tab(context: BrowserContext, platform: Platform) -> Optional[Page]:
        """이미 열려있는 플랫폼 탭을 찾는다."""
        for page in context.pages:
            if detect_platform(page.url) is platform:
                return page
        return None
