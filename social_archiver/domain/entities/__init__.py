from social_archiver.domain.entities.archive_run import ArchiveResult, ArchiveRun
from social_archiver.domain.entities.document import StoredDocument
from social_archiver.domain.entities.media import MediaAsset, MediaFormat, MediaReference
from social_archiver.domain.entities.page import PageSnapshot
from social_archiver.domain.entities.platform import Platform, detect_platform
from social_archiver.domain.entities.post import (
    Author,
    Engagement,
    MediaRef,
    MediaType,
    PostContent,
    PostFlags,
    PostRecord,
    PostTimestamp,
    PostType,
    SourceUrls,
)

__all__ = [
    "ArchiveResult",
    "ArchiveRun",
    "Author",
    "Engagement",
    "MediaAsset",
    "MediaFormat",
    "MediaRef",
    "MediaReference",
    "MediaType",
    "PageSnapshot",
    "Platform",
    "PostContent",
    "PostFlags",
    "PostRecord",
    "PostTimestamp",
    "PostType",
    "SourceUrls",
    "StoredDocument",
    "detect_platform",
]
