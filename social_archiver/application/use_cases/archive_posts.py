"""유즈케이스: 게시물 아카이브.

게시물마다 저장 루트 확인 → 폴더 결정 → 미디어 다운로드/저장 → 문서 렌더링 → 문서 저장을
순서대로 실행한다. 문서는 실제로 저장된 첨부 파일만 참조한다.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from social_archiver.domain.entities import (
    ArchiveResult,
    MediaRef,
    MediaReference,
    MediaType,
    PostRecord,
)
from social_archiver.domain.exceptions import (
    RenderFailure,
    StorageFailure,
    StorageFailureKind,
)
from social_archiver.domain.value_objects.clock import to_utc, utc_now
from social_archiver.infrastructure.media.media_fetcher import FetchResult, MediaFetcher
from social_archiver.infrastructure.rendering.markdown_renderer import (
    MarkdownRenderer,
    RenderOptions,
    generate_preview,
)
from social_archiver.infrastructure.storage.coordinator import (
    CollisionPolicy,
    StorageCoordinator,
    attachment_filename,
)

logger = logging.getLogger(__name__)

DEFAULT_PAUSE_SECONDS = 0.1

# 첨부 저장 중 이 종류의 실패는 문서 저장도 불가능하므로 게시물 전체를 중단한다
_FATAL_STORAGE_KINDS = {StorageFailureKind.NO_ROOT_SELECTED, StorageFailureKind.PERMISSION_DENIED}


@dataclass(frozen=True)
class ArchiveOptions:
    download_media: bool = True
    download_images: bool = True
    download_videos: bool = True
    max_file_size_mb: float = 10
    media_concurrency: int = 3
    collision_policy: CollisionPolicy = CollisionPolicy.FAIL
    render: RenderOptions = field(default_factory=RenderOptions)


ProgressCallback = Callable[[int, int], None]


class ArchivePipeline:
    """추출된 게시물을 저장 루트에 문서와 첨부 파일로 보관한다."""

    def __init__(
        self,
        fetcher: MediaFetcher,
        renderer: MarkdownRenderer,
        storage: StorageCoordinator,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._fetcher = fetcher
        self._renderer = renderer
        self._storage = storage
        self._pause_seconds = pause_seconds
        self._clock = clock
        self._sleep = sleep

    async def archive_one(
        self, record: PostRecord, options: Optional[ArchiveOptions] = None
    ) -> ArchiveResult:
        options = options or ArchiveOptions()
        tag = f"[{record.platform.value}]"

        try:
            await self._storage.ensure_access()
            when = to_utc(record.timestamp.parsed_instant or self._clock())
            folder = await self._storage.ensure_folder(record.platform, when)

            # 문서가 이미 있으면 첨부를 받기 전에 실패시켜 고아 파일을 남기지 않는다
            if options.collision_policy is CollisionPolicy.FAIL:
                await self._storage.ensure_available(
                    folder, self._renderer.document_filename(record, options.render)
                )

            references, omitted = await self._store_media(record, folder, options)

            document = self._renderer.convert(record, references, options.render)
            saved = await self._storage.save_document(folder, document, options.collision_policy)

        except (StorageFailure, RenderFailure) as e:
            logger.error(f"{tag} 아카이브 실패 ({e.kind_label}) {record.id}: {e}")
            return ArchiveResult(
                post_id=record.id,
                success=False,
                failure_kind=e.kind_label,
                reason=str(e),
            )
        except Exception as e:
            logger.exception(f"{tag} 아카이브 중 예기치 않은 오류: {record.id}")
            failure = RenderFailure(f"내부 오류: {e}")
            return ArchiveResult(
                post_id=record.id,
                success=False,
                failure_kind=failure.kind_label,
                reason=str(failure),
            )

        logger.info(
            f"{tag} 아카이브 완료: {saved.path} "
            f"(미디어 {len(references)}건 저장, {omitted}건 누락)"
        )
        return ArchiveResult(
            post_id=record.id,
            success=True,
            filename=saved.filename,
            final_path=saved.path,
            media_saved=len(references),
            media_omitted=omitted,
            preview=generate_preview(document.markdown),
        )

    async def archive_many(
        self,
        records: Sequence[PostRecord],
        options: Optional[ArchiveOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[ArchiveResult]:
        """한 번에 하나씩, 사이에 짧은 간격을 두고 처리한다. 실패해도 다음 게시물로 넘어간다."""
        results: list[ArchiveResult] = []
        total = len(records)

        for index, record in enumerate(records):
            if index:
                await self._sleep(self._pause_seconds)
            results.append(await self.archive_one(record, options))
            if on_progress is not None:
                on_progress(index + 1, total)

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"일괄 아카이브 완료: {succeeded}/{total}건 성공")
        return results

    # ─── 미디어 ───

    @staticmethod
    def _select_media(
        record: PostRecord, options: ArchiveOptions
    ) -> list[tuple[int, MediaRef]]:
        if not options.download_media:
            return []
        selected = []
        for index, ref in enumerate(record.media_items, start=1):
            if ref.type is MediaType.IMAGE and not options.download_images:
                continue
            if ref.type is MediaType.VIDEO and not options.download_videos:
                continue
            selected.append((index, ref))
        return selected

    async def _fetch_all(
        self, urls: list[str], options: ArchiveOptions
    ) -> dict[str, FetchResult]:
        if options.media_concurrency <= 1:
            results: dict[str, FetchResult] = {}
            for url in urls:
                if url not in results:
                    results[url] = await self._fetcher.fetch_one(url)
            return results
        batch = await self._fetcher.fetch_batch(urls, concurrency=options.media_concurrency)
        return batch.results

    async def _store_media(
        self, record: PostRecord, folder: str, options: ArchiveOptions
    ) -> tuple[list[MediaReference], int]:
        """성공한 미디어만 저장하고 나머지는 누락 처리한다. (저장된 참조 목록, 누락 수) 반환."""
        selected = self._select_media(record, options)
        if not selected:
            return [], 0

        tag = f"[{record.platform.value}]"
        results = await self._fetch_all([ref.source_url for _, ref in selected], options)
        max_bytes = int(options.max_file_size_mb * 1024 * 1024)

        references: list[MediaReference] = []
        omitted = 0
        for index, ref in selected:
            result = results[ref.source_url]
            if not result.success:
                reason = result.failure.kind.value if result.failure else "unknown"
                logger.warning(f"{tag} 미디어 누락 ({reason}): {ref.source_url}")
                omitted += 1
                continue
            if max_bytes and len(result.data) > max_bytes:
                logger.warning(
                    f"{tag} 미디어 누락 (크기 초과 {len(result.data)} bytes): {ref.source_url}"
                )
                omitted += 1
                continue

            name = attachment_filename(record.id, index, ref.source_url, ref.type, result.format)
            try:
                saved = await self._storage.save_attachment(folder, name, result.data)
            except StorageFailure as e:
                if e.kind in _FATAL_STORAGE_KINDS:
                    raise
                logger.warning(f"{tag} 첨부 저장 실패, 누락 처리: {name} ({e})")
                omitted += 1
                continue

            references.append(
                MediaReference(
                    type=ref.type,
                    filename=saved.filename,
                    original_url=ref.source_url,
                    caption=ref.caption,
                )
            )

        return references, omitted
