"""Tests for envvault.config.manager module.

Tests cover:
- ConfigManager.load with the cascading hierarchy
- ConfigManager.save with validation, layout preservation and atomic writes
- ConfigManager.get and get_source
- Local config discovery (_find_local_config)
- Redaction of sensitive keys in log output
"""

import stat
from unittest.mock import patch

import pytest

from envvault.config.manager import ConfigManager, is_sensitive_key
from envvault.config.settings import Settings
from envvault.dotenv.exceptions import DuplicateKeyError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run from an empty repository with no config environment variables."""
    for key in Settings.get_config_keys():
        monkeypatch.delenv(key, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / ".git").mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def global_config(tmp_path):
    return tmp_path / "global-config"


class TestConfigManagerLoad:
    """Tests for ConfigManager.load method."""

    def test_load_missing_file(self, global_config):
        """Returns defaults when no config file exists."""
        settings = ConfigManager(global_config).load()

        assert settings.sops_path == "sops"
        assert settings.overrides_mode == "home"
        assert settings.block_position == "bottom"
        assert settings.show_unchanged is False

    def test_load_valid_file(self, global_config):
        """Parses quoted and unquoted values."""
        global_config.write_text(
            """# sops settings
SOPS_PATH="/opt/sops"
SOPS_AGE_KEY_FILE='/keys/age.txt'

ENVVAULT_BLOCK_POSITION=top
"""
        )

        settings = ConfigManager(global_config).load()

        assert settings.sops_path == "/opt/sops"
        assert settings.age_key_file == "/keys/age.txt"
        assert settings.block_position == "top"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("yes", True), ("false", False)])
    def test_load_parses_boolean(self, global_config, raw, expected):
        global_config.write_text(f"ENVVAULT_SHOW_UNCHANGED={raw}\n")

        settings = ConfigManager(global_config).load()

        assert settings.show_unchanged is expected

    def test_unknown_keys_ignored_but_readable(self, global_config):
        global_config.write_text("SOMETHING_ELSE=1\n")
        manager = ConfigManager(global_config)

        manager.load()

        assert manager.get("SOMETHING_ELSE") == "1"

    def test_duplicate_keys_rejected(self, global_config):
        global_config.write_text("SOPS_PATH=a\nSOPS_PATH=b\n")

        with pytest.raises(DuplicateKeyError):
            ConfigManager(global_config).load()

    @patch("envvault.config.manager.logger")
    def test_invalid_enum_logs_warning(self, mock_logger, global_config):
        global_config.write_text("ENVVAULT_OVERRIDES_MODE=somewhere\n")

        ConfigManager(global_config).load()

        message = mock_logger.warning.call_args[0][0]
        assert message.startswith("ENVVAULT_OVERRIDES_MODE must be one of home, local")

    def test_reload_starts_from_defaults(self, global_config):
        global_config.write_text("SOPS_PATH=/opt/sops\n")
        manager = ConfigManager(global_config)
        manager.load()

        global_config.write_text("")
        settings = manager.load()

        assert settings.sops_path == "sops"


class TestCascadingHierarchy:
    """Tests for environment > local > global > defaults."""

    def test_local_overrides_global(self, global_config, isolated_config):
        global_config.write_text("SOPS_PATH=/global/sops\nSOPS_AGE_KEY_FILE=/global/age\n")
        (isolated_config / ".envvault").write_text("SOPS_PATH=/local/sops\n")
        manager = ConfigManager(global_config)

        settings = manager.load()

        assert settings.sops_path == "/local/sops"
        assert settings.age_key_file == "/global/age"
        assert manager.get_source("SOPS_PATH").startswith("local")
        assert manager.get_source("SOPS_AGE_KEY_FILE") == "global"

    def test_environment_overrides_local(self, global_config, isolated_config, monkeypatch):
        (isolated_config / ".envvault").write_text("SOPS_PATH=/local/sops\n")
        monkeypatch.setenv("SOPS_PATH", "/env/sops")
        manager = ConfigManager(global_config)

        settings = manager.load()

        assert settings.sops_path == "/env/sops"
        assert manager.get_source("SOPS_PATH") == "environment"

    def test_source_of_unset_key(self, global_config):
        manager = ConfigManager(global_config)
        manager.load()

        assert manager.get_source("SOPS_PATH") is None
        assert manager.get("SOPS_PATH", "fallback") == "fallback"


class TestFindLocalConfig:
    """Tests for ConfigManager._find_local_config."""

    def test_found_in_parent(self, global_config, isolated_config, monkeypatch):
        (isolated_config / ".envvault").write_text("SOPS_PATH=/x\n")
        nested = isolated_config / "apps" / "api"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert ConfigManager(global_config)._find_local_config() == isolated_config / ".envvault"

    def test_stops_at_repository_root(self, global_config, isolated_config, tmp_path):
        (tmp_path / ".envvault").write_text("SOPS_PATH=/outside\n")

        assert ConfigManager(global_config)._find_local_config() is None


class TestConfigManagerSave:
    """Tests for ConfigManager.save method."""

    def test_save_creates_file(self, global_config):
        manager = ConfigManager(global_config)

        manager.save("SOPS_PATH", "/opt/sops")

        assert global_config.read_text() == 'SOPS_PATH="/opt/sops"\n'
        assert manager.settings.sops_path == "/opt/sops"

    def test_save_preserves_layout(self, global_config):
        """Comments, blank lines and other keys stay where they were."""
        global_config.write_text("# mine\nSOPS_PATH=old\n\n# other\nOTHER=1\n")
        manager = ConfigManager(global_config)

        manager.save("SOPS_PATH", "new path")

        assert global_config.read_text() == '# mine\nSOPS_PATH="new path"\n\n# other\nOTHER=1\n'

    def test_save_file_is_private(self, global_config):
        ConfigManager(global_config).save("SOPS_PATH", "x")

        assert stat.S_IMODE(global_config.stat().st_mode) == 0o600

    def test_save_local_at_repository_root(self, global_config, isolated_config):
        manager = ConfigManager(global_config)

        manager.save("ENVVAULT_BLOCK_POSITION", "top", scope="local")

        assert (isolated_config / ".envvault").read_text() == 'ENVVAULT_BLOCK_POSITION="top"\n'
        assert manager.settings.block_position == "top"

    def test_invalid_key(self, global_config):
        with pytest.raises(ValueError, match="Invalid config key"):
            ConfigManager(global_config).save("1BAD", "x")

    def test_invalid_scope(self, global_config):
        with pytest.raises(ValueError, match="Invalid scope"):
            ConfigManager(global_config).save("SOPS_PATH", "x", scope="system")

    @patch("envvault.config.manager.logger")
    def test_lowercase_key_warns(self, mock_logger, global_config):
        ConfigManager(global_config).save("lower_key", "x")

        assert "UPPER_SNAKE_CASE" in mock_logger.warning.call_args[0][0]

    def test_sensitive_value_redacted_in_log(self, global_config):
        with patch("envvault.config.manager.log_message") as mock_log:
            ConfigManager(global_config).save("MY_API_TOKEN", "supersecret")

        messages = " ".join(call.args[0] for call in mock_log.call_args_list)
        assert "supersecret" not in messages
        assert "MY_API_TOKEN=<REDACTED>" in messages


class TestIsSensitiveKey:
    @pytest.mark.parametrize("key", ["API_KEY", "github_token", "DB_PASSWORD", "MY_SECRET", "GH_PAT"])
    def test_sensitive(self, key):
        assert is_sensitive_key(key) is True

    @pytest.mark.parametrize("key", ["ENVVAULT_BLOCK_POSITION", "ENVVAULT_SHOW_UNCHANGED"])
    def test_not_sensitive(self, key):
        assert is_sensitive_key(key) is False
