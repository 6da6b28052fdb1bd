"""의존성 주입 컨테이너.

클린 아키텍처에서 모든 의존성 조립은 최외곽(Composition Root)에서 이루어진다.
이 컨테이너가 설정에 따라 구체 구현을 생성하고 유즈케이스에 주입한다.
"""

from __future__ import annotations

from typing import Optional

from social_archiver.application.use_cases.archive_posts import ArchiveOptions, ArchivePipeline
from social_archiver.application.use_cases.capture_feed import CaptureFeedUseCase
from social_archiver.domain.entities import PageSnapshot, Platform
from social_archiver.domain.services.media_relay import PrivilegedRelay
from social_archiver.domain.services.page_source import PageSource
from social_archiver.domain.services.storage_root import StorageRoot
from social_archiver.infrastructure.browser.page_source import CdpPageSource
from social_archiver.infrastructure.browser.relay import CdpRelay
from social_archiver.infrastructure.config.settings import AppConfig, Settings
from social_archiver.infrastructure.extractors.base import BaseExtractor
from social_archiver.infrastructure.extractors.factory import create_extractor
from social_archiver.infrastructure.extractors.selector_profile import load_selector_profile
from social_archiver.infrastructure.media.media_fetcher import MediaFetcher
from social_archiver.infrastructure.media.strategies import (
    DirectFetchStrategy,
    FetchStrategy,
    RelayFetchStrategy,
)
from social_archiver.infrastructure.rendering.markdown_renderer import MarkdownRenderer
from social_archiver.infrastructure.storage.coordinator import StorageCoordinator
from social_archiver.infrastructure.storage.local_root import LocalStorageRoot


class Container:
    """애플리케이션 의존성 컨테이너."""

    def __init__(
        self,
        settings: Settings,
        app_config: AppConfig,
        storage_root: Optional[StorageRoot] = None,
        relay: Optional[PrivilegedRelay] = None,
        page_source: Optional[PageSource] = None,
    ):
        self.settings = settings
        self.config = app_config
        self._storage_root = storage_root

        # ─── Storage ───
        self.storage = StorageCoordinator(
            self._provide_root,
            root_folder=app_config.archive.root_folder,
            folder_structure=app_config.archive.folder_structure,
        )

        # ─── Media (직접 요청 → 브라우저 릴레이) ───
        strategies: list[FetchStrategy] = [DirectFetchStrategy()]
        if app_config.media.use_relay:
            strategies.append(RelayFetchStrategy(relay or CdpRelay(settings.cdp_port)))
        self.fetcher = MediaFetcher(
            strategies,
            max_attempts=app_config.media.max_attempts,
            timeout=app_config.media.timeout_seconds,
        )

        # ─── Rendering / Extraction ───
        self.renderer = MarkdownRenderer(app_config.filename.to_template())
        self.selector_profile = load_selector_profile(app_config.extraction.selectors_override)

        # ─── Browser ───
        self.page_source: PageSource = page_source or CdpPageSource(
            app_config.capture, settings.cdp_port
        )

        self.pipeline = ArchivePipeline(
            fetcher=self.fetcher,
            renderer=self.renderer,
            storage=self.storage,
            pause_seconds=app_config.archive.pause_seconds,
        )

    async def _provide_root(self) -> Optional[StorageRoot]:
        if self._storage_root is not None:
            return self._storage_root
        if not self.settings.vault_path:
            return None
        return LocalStorageRoot(self.settings.vault_path)

    def archive_options(self) -> ArchiveOptions:
        media = self.config.media
        return ArchiveOptions(
            download_media=media.download_media,
            download_images=media.download_images,
            download_videos=media.download_videos,
            max_file_size_mb=media.max_file_size_mb,
            media_concurrency=media.concurrency,
            collision_policy=self.config.archive.collision_policy,
            render=self.config.markdown.to_render_options(),
        )

    def create_extractor(self, platform: Platform, snapshot: PageSnapshot) -> BaseExtractor:
        return create_extractor(platform, snapshot, self.selector_profile)

    # ─── Use Case 팩토리 ───

    def capture_feed_use_case(self) -> CaptureFeedUseCase:
        return CaptureFeedUseCase(
            page_source=self.page_source,
            pipeline=self.pipeline,
            extractor_factory=self.create_extractor,
            options=self.archive_options(),
            skip_sponsored=self.config.archive.skip_sponsored,
        )

    async def aclose(self) -> None:
        await self.fetcher.aclose()
