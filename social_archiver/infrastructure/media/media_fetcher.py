"""미디어 다운로더.

재시도(지수 백오프)와 전략 체인(직접 요청 → 릴레이)으로 원격 미디어를 바이트로 가져온다.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence

from social_archiver.domain.entities import MediaFormat
from social_archiver.domain.exceptions import FetchFailure, FetchFailureKind
from social_archiver.infrastructure.media.formats import decode_data_url, detect_format
from social_archiver.infrastructure.media.strategies import FetchedPayload, FetchStrategy

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_BATCH_CONCURRENCY = 3


@dataclass
class FetchResult:
    url: str
    data: Optional[bytes] = None
    content_type: Optional[str] = None
    format: Optional[MediaFormat] = None
    failure: Optional[FetchFailure] = None
    attempts: int = 0
    strategy: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.data is not None and self.failure is None


@dataclass
class BatchFetchResult:
    """일괄 다운로드 결과. 일부 실패는 누락으로 취급하며 배치 전체를 실패로 보지 않는다."""

    results: dict[str, FetchResult] = field(default_factory=dict)
    success_count: int = 0
    failure_count: int = 0

    @property
    def is_complete(self) -> bool:
        return self.failure_count == 0


ItemCallback = Callable[[str, FetchResult], None]


class MediaFetcher:
    """URL 하나를 바이트 또는 타입이 있는 실패로 변환한다."""

    def __init__(
        self,
        strategies: Sequence[FetchStrategy],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not strategies:
            raise ValueError("최소 하나의 FetchStrategy가 필요합니다")
        self._strategies = list(strategies)
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    def backoff_delay(self, attempt: int) -> float:
        """attempt번째 시도 실패 후 대기 시간: base × 2^(attempt-1)."""
        return self._base_delay * (2 ** (attempt - 1))

    async def fetch_one(
        self,
        url: str,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> FetchResult:
        if url.startswith("data:"):
            return self._decode_inline(url)

        attempts = max(1, max_attempts or self._max_attempts)
        timeout = timeout or self._timeout
        last_failure: Optional[FetchFailure] = None

        for attempt in range(1, attempts + 1):
            try:
                payload, strategy = await self._attempt(url, timeout)
            except FetchFailure as failure:
                last_failure = failure
                if attempt < attempts:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"미디어 다운로드 실패 ({failure.kind.value}), "
                        f"{attempt}/{attempts}회차, {delay:.1f}s 후 재시도: {url}"
                    )
                    await self._sleep(delay)
                continue

            return FetchResult(
                url=url,
                data=payload.data,
                content_type=payload.content_type,
                format=detect_format(url, payload.content_type),
                attempts=attempt,
                strategy=strategy,
            )

        logger.warning(f"미디어 다운로드 포기 ({attempts}회 시도): {url}")
        return FetchResult(url=url, failure=last_failure, attempts=attempts)

    async def _attempt(self, url: str, timeout: float) -> tuple[FetchedPayload, str]:
        """한 번의 시도. 차단(cors-blocked)된 경우에만 다음 전략으로 넘어간다."""
        blocked: Optional[FetchFailure] = None

        for strategy in self._strategies:
            try:
                payload = await asyncio.wait_for(strategy.fetch(url, timeout), timeout)
            except asyncio.TimeoutError as e:
                raise FetchFailure(
                    FetchFailureKind.TIMEOUT, url, f"{timeout:.0f}초 내에 응답 없음"
                ) from e
            except FetchFailure as failure:
                if failure.kind is not FetchFailureKind.CORS_BLOCKED:
                    raise
                blocked = failure
                logger.debug(f"{strategy.name} 요청 차단됨, 다음 전략 시도: {url}")
                continue
            return payload, strategy.name

        assert blocked is not None
        raise blocked

    def _decode_inline(self, url: str) -> FetchResult:
        try:
            data, mime = decode_data_url(url)
        except ValueError as e:
            failure = FetchFailure(FetchFailureKind.NETWORK, url[:64], f"data: URL 디코딩 실패: {e}")
            return FetchResult(url=url, failure=failure, attempts=1)
        return FetchResult(
            url=url,
            data=data,
            content_type=mime,
            format=detect_format(url, mime),
            attempts=1,
            strategy="inline",
        )

    async def fetch_batch(
        self,
        urls: Sequence[str],
        concurrency: int = DEFAULT_BATCH_CONCURRENCY,
        on_item_complete: Optional[ItemCallback] = None,
    ) -> BatchFetchResult:
        """동시성 상한 크기의 웨이브 단위로 처리한다. 중복 URL은 한 번만 가져온다."""
        unique = list(dict.fromkeys(urls))
        size = max(1, concurrency)
        batch = BatchFetchResult()

        async def run(url: str) -> FetchResult:
            result = await self.fetch_one(url)
            if on_item_complete is not None:
                on_item_complete(url, result)
            return result

        for start in range(0, len(unique), size):
            wave = unique[start:start + size]
            wave_results = await asyncio.gather(*(run(url) for url in wave))
            for url, result in zip(wave, wave_results):
                batch.results[url] = result
                if result.success:
                    batch.success_count += 1
                else:
                    batch.failure_count += 1

        logger.info(
            f"미디어 일괄 다운로드: 성공 {batch.success_count}건, 실패 {batch.failure_count}건"
        )
        return batch

    async def aclose(self) -> None:
        for strategy in self._strategies:
            close = getattr(strategy, "aclose", None)
            if close is not None:
                await close()
