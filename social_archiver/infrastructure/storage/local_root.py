"""로컬 디렉터리 기반 StorageRoot 구현.

모든 파일 시스템 호출은 asyncio.to_thread로 워커 스레드에서 실행한다.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Union

from social_archiver.domain.services.storage_root import PermissionState

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".tmp"

# mkstemp는 0600으로 만든다. 일반 파일처럼 umask를 적용한 권한으로 맞춘다.
_UMASK = os.umask(0)
os.umask(_UMASK)
FILE_MODE = 0o666 & ~_UMASK


def _is_temp_name(name: str) -> bool:
    return name.startswith(".") and name.endswith(_TEMP_SUFFIX)


class LocalStorageRoot:
    """디렉터리 하나를 루트로 하는 저장소.

    권한 상태: 디렉터리가 없으면 prompt(요청 시 생성), 쓰기 가능하면 granted, 아니면 denied.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self._base = Path(base_dir).expanduser()

    @property
    def name(self) -> str:
        return self._base.name or str(self._base)

    @property
    def base_dir(self) -> Path:
        return self._base

    def resolve(self, path: str) -> Path:
        """루트 기준 POSIX 상대 경로를 실제 경로로. 루트 밖을 가리키면 ValueError."""
        relative = PurePosixPath(path or ".")
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"루트 밖을 가리키는 경로는 허용되지 않습니다: {path}")
        return self._base.joinpath(*relative.parts)

    # ─── 권한 ───

    def _permission_state(self) -> PermissionState:
        if not self._base.exists():
            return PermissionState.PROMPT
        if self._base.is_dir() and os.access(self._base, os.W_OK | os.X_OK):
            return PermissionState.GRANTED
        return PermissionState.DENIED

    async def query_permission(self) -> PermissionState:
        return await asyncio.to_thread(self._permission_state)

    async def request_permission(self) -> PermissionState:
        state = await self.query_permission()
        if state is not PermissionState.PROMPT:
            return state
        try:
            await asyncio.to_thread(self._base.mkdir, parents=True, exist_ok=True)
            logger.info(f"저장 루트 생성: {self._base}")
        except OSError as e:
            logger.error(f"저장 루트 생성 실패: {self._base} ({e})")
            return PermissionState.DENIED
        return await self.query_permission()

    # ─── 파일 연산 ───

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def create_directory(self, path: str) -> None:
        target = self.resolve(path)
        await asyncio.to_thread(target.mkdir, exist_ok=True)

    async def list(self, path: str = "") -> list[str]:
        target = self.resolve(path)

        def _list() -> list[str]:
            return sorted(p.name for p in target.iterdir() if not _is_temp_name(p.name))

        return await asyncio.to_thread(_list)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    async def write(self, path: str, data: bytes, overwrite: bool = False) -> None:
        await asyncio.to_thread(self._write_atomic, self.resolve(path), data, overwrite)

    async def delete(self, path: str) -> None:
        target = self.resolve(path)

        def _delete() -> None:
            if target.is_dir():
                target.rmdir()
            else:
                target.unlink()

        await asyncio.to_thread(_delete)

    @staticmethod
    def _write_atomic(target: Path, data: bytes, overwrite: bool) -> None:
        """숨김 임시 파일에 쓰고 fsync 후 os.replace로 교체한다.

        존재 확인과 교체 사이의 경쟁은 단일 작성자를 전제로 한다.
        """
        if not overwrite and target.exists():
            raise FileExistsError(str(target))

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=_TEMP_SUFFIX, dir=target.parent
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
