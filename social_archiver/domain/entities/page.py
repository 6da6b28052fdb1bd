from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from social_archiver.domain.value_objects.clock import utc_now


@dataclass(frozen=True)
class PageSnapshot:
    """브라우저 탭에서 캡처한 DOM 스냅샷."""

    html: str
    url: str
    captured_at: datetime = field(default_factory=utc_now)
