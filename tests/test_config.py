"""Tests for configuration loading."""

from pathlib import Path

import pytest

from social_archiver.domain.entities import Platform
from social_archiver.domain.exceptions import ConfigurationError
from social_archiver.infrastructure.config.settings import AppConfig, Settings, load_app_config
from social_archiver.infrastructure.storage.coordinator import CollisionPolicy, FolderStructure

PROJECT_CONFIG = Path(__file__).parent.parent / "config" / "settings.yaml"


class TestAppConfig:
    """Tests for YAML-backed AppConfig."""

    def test_defaults_when_file_missing(self, tmp_path):
        config = load_app_config(str(tmp_path / "missing.yaml"))

        assert config.name == "Social Archiver"
        assert config.archive.folder_structure is FolderStructure.PLATFORM_YEAR_MONTH
        assert config.archive.collision_policy is CollisionPolicy.FAIL
        assert config.media.max_attempts == 3
        assert config.media.timeout_seconds == 30.0
        assert config.capture.platforms == list(Platform)

    def test_project_settings_file_loads(self):
        config = load_app_config(str(PROJECT_CONFIG))

        assert config.archive.root_folder == "Social Archive"
        assert config.media.use_relay is True
        assert config.extraction.selectors_override is None

    def test_yaml_values_override_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "archive:\n"
            "  folder_structure: year/month/platform\n"
            "  collision_policy: rename\n"
            "filename:\n"
            "  separator: space\n"
            "  date_format: YYYYMMDD\n"
            "capture:\n"
            "  platforms: [linkedin]\n",
            encoding="utf-8",
        )

        config = load_app_config(str(path))

        assert config.archive.folder_structure is FolderStructure.YEAR_MONTH_PLATFORM
        assert config.archive.collision_policy is CollisionPolicy.RENAME
        template = config.filename.to_template()
        assert template.separator == " "
        assert template.date_format == "%Y%m%d"
        assert config.capture.platforms == [Platform.LINKEDIN]

    @pytest.mark.parametrize(
        "data",
        [
            {"archive": {"folder_structure": "by-author"}},
            {"archive": {"collision_policy": "merge"}},
            {"filename": {"separator": "+"}},
            {"filename": {"date_format": "MM/DD"}},
            {"capture": {"platforms": ["twitter"]}},
        ],
    )
    def test_invalid_values_raise(self, data):
        with pytest.raises(ConfigurationError):
            AppConfig(data)

    def test_render_options(self):
        options = AppConfig({"markdown": {"include_engagement": False}}).markdown.to_render_options()
        assert options.include_engagement is False
        assert options.include_frontmatter is True


class TestSettings:
    """Tests for environment-backed Settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("VAULT_PATH", "/tmp/vault")
        monkeypatch.setenv("CDP_PORT", "9333")

        settings = Settings()

        assert settings.vault_path == "/tmp/vault"
        assert settings.cdp_port == 9333
