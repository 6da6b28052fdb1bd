"""도메인 레이어 예외 정의.

실패 분류(taxonomy)마다 하나의 예외 타입을 두고, 세부 종류는 kind 열거형으로 구분한다.
메시지는 그대로 사용자에게 보여줄 사유 문자열로 쓰인다.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class DomainError(Exception):
    """도메인 레이어 최상위 예외."""

    category = "domain"

    @property
    def kind_label(self) -> str:
        kind = getattr(self, "kind", None)
        if kind is None:
            return self.category
        return f"{self.category}:{kind.value}"


class ConfigurationError(DomainError):
    """설정 파일 또는 셀렉터 프로파일이 잘못되었을 때."""

    category = "config"


class ExtractionFailure(DomainError):
    """후보 요소에서 구조적으로 일치하는 항목이 없거나 필수 필드가 빠졌을 때."""

    category = "extraction"

    def __init__(self, platform: str, reason: str):
        self.platform = platform
        self.reason = reason
        super().__init__(f"[{platform}] 게시물 추출 실패: {reason}")


class FetchFailureKind(str, Enum):
    NETWORK = "network"
    CORS_BLOCKED = "cors-blocked"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http-status"


class FetchFailure(DomainError):
    """미디어 한 건을 가져오지 못했을 때."""

    category = "fetch"

    def __init__(
        self,
        kind: FetchFailureKind,
        url: str,
        message: str = "",
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.url = url
        self.status_code = status_code
        detail = message or kind.value
        super().__init__(f"미디어 다운로드 실패 ({kind.value}): {detail}")


class StorageFailureKind(str, Enum):
    NO_ROOT_SELECTED = "no-root-selected"
    PERMISSION_DENIED = "permission-denied"
    CREATE_FAILED = "create-failed"
    COLLISION_UNRESOLVED = "collision-unresolved"


_STORAGE_MESSAGES = {
    StorageFailureKind.NO_ROOT_SELECTED: "저장 위치가 선택되지 않았습니다. 먼저 보관 폴더를 지정하세요.",
    StorageFailureKind.PERMISSION_DENIED: "저장 위치에 대한 쓰기 권한이 거부되었습니다.",
    StorageFailureKind.CREATE_FAILED: "파일 또는 폴더를 만들지 못했습니다.",
    StorageFailureKind.COLLISION_UNRESOLVED: "같은 이름의 파일이 이미 존재합니다.",
}


class StorageFailure(DomainError):
    """저장소 접근 또는 쓰기 실패."""

    category = "storage"

    def __init__(self, kind: StorageFailureKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        message = _STORAGE_MESSAGES[kind]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class RenderFailure(DomainError):
    """문서 렌더링 중 발생한 내부/예기치 않은 오류."""

    category = "render"


class CaptureError(DomainError):
    """브라우저 연결 실패 또는 로그인 세션 만료로 페이지를 캡처하지 못했을 때."""

    category = "capture"
