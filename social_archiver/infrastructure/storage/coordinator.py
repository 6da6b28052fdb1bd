"""저장 조정자.

저장 루트의 권한을 매 쓰기 전에 확인하고, 플랫폼/날짜 기반 폴더 계층을 만들고,
충돌 정책에 따라 문서와 첨부 파일을 저장한다.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from social_archiver.domain.entities import MediaFormat, MediaType, Platform, StoredDocument
from social_archiver.domain.exceptions import StorageFailure, StorageFailureKind
from social_archiver.domain.services.storage_root import PermissionState, StorageRoot
from social_archiver.domain.value_objects.filename import sanitize_filename, split_extension
from social_archiver.infrastructure.media.formats import format_from_url, last_path_segment

logger = logging.getLogger(__name__)

ATTACHMENTS_FOLDER = "attachments"
MAX_RENAME_ATTEMPTS = 1000


class CollisionPolicy(str, Enum):
    FAIL = "fail"
    RENAME = "rename"
    OVERWRITE = "overwrite"


class FolderStructure(str, Enum):
    PLATFORM_YEAR_MONTH = "platform/year/month"
    YEAR_MONTH_PLATFORM = "year/month/platform"
    PLATFORM = "platform"
    FLAT = "flat"


@dataclass(frozen=True)
class SaveResult:
    path: str
    filename: str


RootProvider = Callable[[], Awaitable[Optional[StorageRoot]]]


def join_path(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments if s and s.strip("/"))


def attachment_filename(
    post_id: str,
    index: int,
    source_url: str,
    media_type: MediaType,
    fmt: Optional[MediaFormat] = None,
    timestamp_ms: Optional[int] = None,
) -> str:
    """첨부 파일 이름: {게시물id}-{순번}-{원본이름 또는 타임스탬프}{확장자}."""
    slug = sanitize_filename(post_id, max_length=80) or "media"
    segment = last_path_segment(source_url)

    stem = ""
    extension = ""
    if format_from_url(source_url) is not None:
        original_stem, extension = split_extension(segment)
        stem = sanitize_filename(original_stem, max_length=60)
        extension = extension.lower()
    if not stem:
        stem = str(timestamp_ms if timestamp_ms is not None else int(time.time() * 1000))

    if not extension:
        if fmt is not None:
            extension = fmt.extension
        else:
            extension = ".mp4" if media_type is MediaType.VIDEO else ".jpg"

    return f"{slug}-{index}-{stem}{extension}"


class StorageCoordinator:
    """StorageRoot 위의 폴더 계층과 충돌 처리를 담당한다."""

    def __init__(
        self,
        root_provider: RootProvider,
        root_folder: str = "Social Archive",
        folder_structure: FolderStructure = FolderStructure.PLATFORM_YEAR_MONTH,
    ):
        self._root_provider = root_provider
        self._root: Optional[StorageRoot] = None
        self._root_folder = root_folder.strip("/")
        self._structure = FolderStructure(folder_structure)

    async def get_root(self) -> StorageRoot:
        """저장 루트를 한 번 요청해서 캐시한다."""
        if self._root is None:
            self._root = await self._root_provider()
            if self._root is None:
                raise StorageFailure(StorageFailureKind.NO_ROOT_SELECTED)
            logger.info(f"저장 루트 선택됨: {self._root.name}")
        return self._root

    async def ensure_access(self) -> StorageRoot:
        """권한을 확인하고, 허용되지 않았으면 다시 요청한다. 거부되면 StorageFailure."""
        root = await self.get_root()
        state = await root.query_permission()
        if state is not PermissionState.GRANTED:
            logger.info(f"저장 루트 권한 재요청 (현재: {state.value})")
            state = await root.request_permission()
        if state is not PermissionState.GRANTED:
            raise StorageFailure(StorageFailureKind.PERMISSION_DENIED, root.name)
        return root

    def folder_segments(self, platform: Platform, when: datetime) -> list[str]:
        year = f"{when.year:04d}"
        month = f"{when.month:02d}"
        name = platform.display_name

        if self._structure is FolderStructure.PLATFORM_YEAR_MONTH:
            segments = [name, year, month]
        elif self._structure is FolderStructure.YEAR_MONTH_PLATFORM:
            segments = [year, month, name]
        elif self._structure is FolderStructure.PLATFORM:
            segments = [name]
        else:
            segments = []

        prefix = [s for s in self._root_folder.split("/") if s]
        return prefix + segments

    async def ensure_folder(self, platform: Platform, when: datetime) -> str:
        """세그먼트를 하나씩 get-or-create 하여 게시물 폴더 경로를 반환."""
        return await self._ensure_path(self.folder_segments(platform, when))

    async def _ensure_path(self, segments: list[str]) -> str:
        root = await self.ensure_access()
        path = ""
        for segment in segments:
            path = join_path(path, segment)
            try:
                await root.create_directory(path)
            except (OSError, ValueError) as e:
                raise StorageFailure(StorageFailureKind.CREATE_FAILED, path) from e
        return path

    async def save_document(
        self,
        folder: str,
        document: StoredDocument,
        policy: CollisionPolicy = CollisionPolicy.FAIL,
    ) -> SaveResult:
        return await self.save_file(folder, document.filename, document.markdown.encode("utf-8"), policy)

    async def save_attachment(self, folder: str, filename: str, data: bytes) -> SaveResult:
        """첨부 파일은 항상 자동 이름 변경으로 저장한다."""
        attachments = await self._ensure_path(
            [s for s in folder.split("/") if s] + [ATTACHMENTS_FOLDER]
        )
        return await self.save_file(attachments, filename, data, CollisionPolicy.RENAME)

    async def save_file(
        self,
        folder: str,
        filename: str,
        data: bytes,
        policy: CollisionPolicy = CollisionPolicy.FAIL,
    ) -> SaveResult:
        root = await self.ensure_access()
        policy = CollisionPolicy(policy)

        if policy is CollisionPolicy.RENAME:
            filename = await self.resolve_available_name(root, folder, filename)
        elif policy is CollisionPolicy.FAIL:
            await self._check_available(root, folder, filename)

        path = join_path(folder, filename)
        try:
            await root.write(path, data, overwrite=policy is CollisionPolicy.OVERWRITE)
        except FileExistsError as e:
            raise StorageFailure(StorageFailureKind.COLLISION_UNRESOLVED, filename) from e
        except (OSError, ValueError) as e:
            raise StorageFailure(StorageFailureKind.CREATE_FAILED, f"{path}: {e}") from e

        logger.debug(f"저장 완료: {path} ({len(data)} bytes)")
        return SaveResult(path=path, filename=filename)

    async def ensure_available(self, folder: str, filename: str) -> None:
        """이름이 이미 있으면 collision-unresolved로 실패한다."""
        await self._check_available(await self.ensure_access(), folder, filename)

    @staticmethod
    async def _check_available(root: StorageRoot, folder: str, filename: str) -> None:
        if await root.exists(join_path(folder, filename)):
            raise StorageFailure(StorageFailureKind.COLLISION_UNRESOLVED, filename)

    async def resolve_available_name(self, root: StorageRoot, folder: str, filename: str) -> str:
        """"name.md"가 있으면 "name (1).md", "name (2).md" ... 순으로 빈 이름을 찾는다."""
        if not await root.exists(join_path(folder, filename)):
            return filename

        stem, extension = split_extension(filename)
        for n in range(1, MAX_RENAME_ATTEMPTS + 1):
            candidate = f"{stem} ({n}){extension}"
            if not await root.exists(join_path(folder, candidate)):
                return candidate

        raise StorageFailure(
            StorageFailureKind.COLLISION_UNRESOLVED,
            f"{filename}: {MAX_RENAME_ATTEMPTS}회 시도 후에도 빈 이름을 찾지 못함",
        )
