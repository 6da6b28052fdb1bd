"""유즈케이스: 피드 캡처.

페이지 스냅샷 → 플랫폼 판별 → 게시물 추출 → 일괄 아카이브를 한 번 실행하고
결과를 ArchiveRun으로 요약한다.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from social_archiver.application.use_cases.archive_posts import ArchiveOptions, ArchivePipeline
from social_archiver.domain.entities import ArchiveRun, PageSnapshot, Platform, detect_platform
from social_archiver.domain.exceptions import DomainError
from social_archiver.domain.services.extractor import PostExtractor
from social_archiver.domain.services.page_source import PageSource
from social_archiver.domain.value_objects.clock import utc_now

logger = logging.getLogger(__name__)

ExtractorFactory = Callable[[Platform, PageSnapshot], PostExtractor]


class CaptureFeedUseCase:
    """한 플랫폼 페이지를 캡처해서 보이는 게시물을 모두 아카이브하는 유즈케이스."""

    def __init__(
        self,
        page_source: Optional[PageSource],
        pipeline: ArchivePipeline,
        extractor_factory: ExtractorFactory,
        options: Optional[ArchiveOptions] = None,
        skip_sponsored: bool = False,
    ):
        self._page_source = page_source
        self._pipeline = pipeline
        self._extractor_factory = extractor_factory
        self._options = options or ArchiveOptions()
        self._skip_sponsored = skip_sponsored

    async def execute(self, platform: Platform) -> ArchiveRun:
        """브라우저에서 스냅샷을 떠서 아카이브."""
        run = ArchiveRun(source=platform.value)
        if self._page_source is None:
            return self._fail(run, "페이지 소스가 설정되지 않았습니다")

        try:
            snapshot = await self._page_source.snapshot(platform)
        except DomainError as e:
            return self._fail(run, str(e))
        except Exception as e:
            logger.error(f"[{platform.value}] 스냅샷 캡처 실패: {e}")
            return self._fail(run, f"스냅샷 캡처 실패: {e}")

        return await self.archive_snapshot(snapshot, platform, run)

    async def archive_snapshot(
        self,
        snapshot: PageSnapshot,
        platform: Optional[Platform] = None,
        run: Optional[ArchiveRun] = None,
    ) -> ArchiveRun:
        """이미 확보한 DOM 스냅샷(예: 브라우저 측에서 전송된 HTML)을 아카이브."""
        platform = platform or detect_platform(snapshot.url)
        run = run or ArchiveRun(source=platform.value if platform else "unknown")
        if platform is None:
            return self._fail(run, f"지원하지 않는 플랫폼 URL: {snapshot.url}")

        try:
            extractor = self._extractor_factory(platform, snapshot)
            records = extractor.enumerate()
        except (DomainError, ValueError) as e:
            return self._fail(run, str(e))

        if self._skip_sponsored:
            before = len(records)
            records = [r for r in records if not r.flags.sponsored]
            if before != len(records):
                logger.info(f"[{platform.value}] 광고 게시물 {before - len(records)}건 제외")

        run.posts_found = len(records)
        if not records:
            logger.warning(f"[{platform.value}] 추출된 게시물이 없습니다: {snapshot.url}")

        run.results = await self._pipeline.archive_many(records, self._options)
        run.posts_archived = sum(1 for r in run.results if r.success)

        if run.posts_archived == run.posts_found:
            run.status = "success"
        elif run.posts_archived:
            run.status = "partial"
        else:
            run.status = "failed"
            run.error_message = next((r.reason for r in run.results if r.reason), None)
        run.completed_at = utc_now()

        logger.info(
            f"[{platform.value}] 캡처 완료: {run.posts_archived}/{run.posts_found}건 아카이브"
        )
        return run

    @staticmethod
    def _fail(run: ArchiveRun, message: str) -> ArchiveRun:
        run.status = "failed"
        run.error_message = message[:500]
        run.completed_at = utc_now()
        logger.error(f"[{run.source}] 캡처 실패: {message}")
        return run
