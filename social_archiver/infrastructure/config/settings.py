from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml
from pydantic_settings import BaseSettings

from social_archiver.domain.entities import Platform
from social_archiver.domain.exceptions import ConfigurationError
from social_archiver.domain.value_objects.filename import FilenameTemplate
from social_archiver.infrastructure.rendering.markdown_renderer import RenderOptions
from social_archiver.infrastructure.storage.coordinator import CollisionPolicy, FolderStructure

E = TypeVar("E", bound=Enum)


# ──────────────────────────────────────────
# 환경변수 기반 설정 (.env)
# ──────────────────────────────────────────
class Settings(BaseSettings):
    # 보관 폴더(저장 루트). 비어 있으면 저장 위치 미선택 상태
    vault_path: str = ""
    cdp_port: int = 9222

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def _choice(enum_cls: type[E], value: Any, key: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(str(e.value) for e in enum_cls)
        raise ConfigurationError(f"'{key}' 값이 올바르지 않습니다: {value!r} (허용: {allowed})")


# ──────────────────────────────────────────
# YAML 기반 앱 설정 (config/settings.yaml)
# ──────────────────────────────────────────
class ArchiveConfig:
    def __init__(self, data: dict[str, Any]):
        self.root_folder: str = data.get("root_folder", "Social Archive")
        self.folder_structure: FolderStructure = _choice(
            FolderStructure, data.get("folder_structure", "platform/year/month"),
            "archive.folder_structure",
        )
        self.collision_policy: CollisionPolicy = _choice(
            CollisionPolicy, data.get("collision_policy", "fail"), "archive.collision_policy"
        )
        self.pause_seconds: float = data.get("pause_seconds", 0.1)
        self.skip_sponsored: bool = data.get("skip_sponsored", False)


class DateFormat(str, Enum):
    ISO = "YYYY-MM-DD"
    COMPACT = "YYYYMMDD"
    DAY_FIRST = "DD-MM-YYYY"


_DATE_FORMATS = {
    DateFormat.ISO: "%Y-%m-%d",
    DateFormat.COMPACT: "%Y%m%d",
    DateFormat.DAY_FIRST: "%d-%m-%Y",
}

_SEPARATORS = {"-": "-", "_": "_", " ": " ", "space": " "}


class FilenameConfig:
    def __init__(self, data: dict[str, Any]):
        self.include_date: bool = data.get("include_date", True)
        self.include_author: bool = data.get("include_author", True)
        self.include_title: bool = data.get("include_title", True)
        self.include_platform: bool = data.get("include_platform", False)
        self.date_format: DateFormat = _choice(
            DateFormat, data.get("date_format", "YYYY-MM-DD"), "filename.date_format"
        )
        separator = data.get("separator", "-")
        if separator not in _SEPARATORS:
            raise ConfigurationError(
                f"'filename.separator' 값이 올바르지 않습니다: {separator!r} (허용: -, _, space)"
            )
        self.separator: str = _SEPARATORS[separator]
        self.max_length: int = data.get("max_length", 200)

    def to_template(self) -> FilenameTemplate:
        return FilenameTemplate(
            include_date=self.include_date,
            include_author=self.include_author,
            include_title=self.include_title,
            include_platform=self.include_platform,
            date_format=_DATE_FORMATS[self.date_format],
            separator=self.separator,
            max_length=self.max_length,
        )


class MediaConfig:
    def __init__(self, data: dict[str, Any]):
        self.download_media: bool = data.get("download_media", True)
        self.download_images: bool = data.get("download_images", True)
        self.download_videos: bool = data.get("download_videos", True)
        self.max_file_size_mb: float = data.get("max_file_size_mb", 10)
        self.max_attempts: int = data.get("max_attempts", 3)
        self.timeout_seconds: float = data.get("timeout_seconds", 30.0)
        self.concurrency: int = data.get("concurrency", 3)
        self.use_relay: bool = data.get("use_relay", True)


class MarkdownConfig:
    def __init__(self, data: dict[str, Any]):
        self.include_engagement: bool = data.get("include_engagement", True)
        self.include_frontmatter: bool = data.get("include_frontmatter", True)
        self.include_media_links: bool = data.get("include_media_links", True)
        self.preserve_formatting: bool = data.get("preserve_formatting", True)
        self.max_title_length: int = data.get("max_title_length", 50)

    def to_render_options(self) -> RenderOptions:
        return RenderOptions(
            include_engagement=self.include_engagement,
            include_media_links=self.include_media_links,
            include_frontmatter=self.include_frontmatter,
            max_title_length=self.max_title_length,
            preserve_formatting=self.preserve_formatting,
        )


class ExtractionConfig:
    def __init__(self, data: dict[str, Any]):
        # 번들 selectors.yaml 위에 덮어쓸 사용자 셀렉터 파일
        self.selectors_override: Optional[str] = data.get("selectors_override")


class CaptureConfig:
    def __init__(self, data: dict[str, Any]):
        self.scroll_rounds: int = data.get("scroll_rounds", 3)
        self.scroll_delay_min: float = data.get("scroll_delay_min", 1.5)
        self.scroll_delay_max: float = data.get("scroll_delay_max", 3.0)
        self.platforms: list[Platform] = [
            _choice(Platform, p, "capture.platforms")
            for p in data.get("platforms", [p.value for p in Platform])
        ]


class WebConfig:
    def __init__(self, data: dict[str, Any]):
        self.host: str = data.get("host", "127.0.0.1")
        self.port: int = data.get("port", 8000)


class AppConfig:
    """YAML에서 로드된 전체 앱 설정."""

    def __init__(self, data: dict[str, Any]):
        self.name: str = data.get("app", {}).get("name", "Social Archiver")
        self.log_level: str = data.get("app", {}).get("log_level", "INFO")

        self.archive = ArchiveConfig(data.get("archive", {}))
        self.filename = FilenameConfig(data.get("filename", {}))
        self.media = MediaConfig(data.get("media", {}))
        self.markdown = MarkdownConfig(data.get("markdown", {}))
        self.extraction = ExtractionConfig(data.get("extraction", {}))
        self.capture = CaptureConfig(data.get("capture", {}))
        self.web = WebConfig(data.get("web", {}))


def load_app_config(path: str = "config/settings.yaml") -> AppConfig:
    """YAML 설정 파일을 로드하여 AppConfig를 반환."""
    config_path = Path(path)
    if not config_path.exists():
        return AppConfig({})
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return AppConfig(data)
