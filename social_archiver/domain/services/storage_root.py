from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class StorageRoot(Protocol):
    """권한으로 보호되는 쓰기 가능한 디렉터리 트리 핸들.

    경로는 루트 기준 POSIX 상대 경로("Facebook/2025/10/a.md")로 주고받는다.
    """

    @property
    def name(self) -> str:
        ...

    async def query_permission(self) -> PermissionState:
        ...

    async def request_permission(self) -> PermissionState:
        ...

    async def exists(self, path: str) -> bool:
        ...

    async def create_directory(self, path: str) -> None:
        """디렉터리를 만든다. 이미 있으면 아무것도 하지 않는다."""
        ...

    async def list(self, path: str = "") -> list[str]:
        ...

    async def read(self, path: str) -> bytes:
        ...

    async def write(self, path: str, data: bytes, overwrite: bool = False) -> None:
        """원자적 쓰기. overwrite=False면 대상이 있을 때 FileExistsError."""
        ...

    async def delete(self, path: str) -> None:
        ...


class StorageRootProvider(Protocol):
    """환경에서 저장 루트를 얻는다. 선택되지 않았으면 None."""

    async def __call__(self) -> Optional[StorageRoot]:
        ...
