from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from social_archiver.domain.value_objects.clock import utc_now


@dataclass
class ArchiveResult:
    """게시물 한 건의 아카이브 결과."""

    post_id: str
    success: bool
    filename: Optional[str] = None
    final_path: Optional[str] = None
    failure_kind: Optional[str] = None
    reason: Optional[str] = None
    media_saved: int = 0
    media_omitted: int = 0
    preview: Optional[str] = None


@dataclass
class ArchiveRun:
    """캡처 한 번(스냅샷 → 추출 → 아카이브)의 실행 로그."""

    source: str
    started_at: datetime = field(default_factory=utc_now)

    completed_at: Optional[datetime] = None
    status: str = "running"  # running, success, partial, failed
    posts_found: int = 0
    posts_archived: int = 0
    error_message: Optional[str] = None
    results: list[ArchiveResult] = field(default_factory=list)
