"""Tests for settings loading."""

import pytest

from core.config import CONFIG_FILENAME, DEFAULT_REGISTRY, Settings, load_settings
from core.exceptions import ConfigError


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()

        assert settings == Settings()
        assert settings.registry_url == DEFAULT_REGISTRY
        assert settings.registry_timeout == 5.0
        assert settings.backup_suffix == ".depmend.backup"
        assert settings.deprecation_source == "registry"

    def test_reads_project_file(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            '{"registry_url": "http://localhost:4873", "test_command": "npm run test:ci"}'
        )

        settings = load_settings(tmp_path)

        assert settings.registry_url == "http://localhost:4873"
        assert settings.test_command == "npm run test:ci"

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('{"registry_url": "http://localhost:4873"}')

        settings = load_settings(tmp_path, registry_url="http://mirror.local", test_command=None)

        assert settings.registry_url == "http://mirror.local"
        assert settings.test_command is None

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_settings(tmp_path) == Settings()

    @pytest.mark.parametrize(
        "content",
        [
            "{broken",
            "[1, 2]",
            '{"max_concurrency": "lots"}',
            '{"deprecation_source": "carrier-pigeon"}',
        ],
    )
    def test_invalid_file(self, tmp_path, content):
        (tmp_path / CONFIG_FILENAME).write_text(content)
        with pytest.raises(ConfigError):
            load_settings(tmp_path)
