from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from social_archiver.domain.entities.media import MediaReference


@dataclass(frozen=True)
class StoredDocument:
    """렌더링된 마크다운 문서. StorageCoordinator가 한 번 소비한다."""

    frontmatter_fields: dict[str, Any]
    title: str
    body: str
    markdown: str
    filename: str
    media_references: tuple[MediaReference, ...] = field(default_factory=tuple)
