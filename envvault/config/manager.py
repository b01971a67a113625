"""Configuration manager for envvault.

This module provides the ConfigManager class for loading, saving, and
managing configuration values with a cascading hierarchy:

    1. Environment Variables (highest priority)
    2. Local Config (.envvault in project/parent directories)
    3. Global Config (~/.envvault-config)
    4. Built-in Defaults (lowest priority)

Config files are dotenv files and are read and written with the same
parser and renderer envvault uses for secrets.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Literal

from envvault.config.settings import CONFIG_FILE, Settings
from envvault.dotenv.models import QuoteStyle, create_entry, update_entry_value
from envvault.dotenv.parser import get_entry, parse
from envvault.dotenv.renderer import render
from envvault.integrations.git import find_repo_root
from envvault.utils.files import atomic_write_text, read_text_if_exists
from envvault.utils.logging import log_message

logger = logging.getLogger(__name__)

SENSITIVE_KEY_PATTERNS = ("TOKEN", "KEY", "SECRET", "PASSWORD", "PAT")

_KEY_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_UPPER_SNAKE_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")


def is_sensitive_key(key: str) -> bool:
    """Check whether a key name suggests it holds a credential."""
    upper = key.upper()
    return any(pattern in upper for pattern in SENSITIVE_KEY_PATTERNS)


class ConfigManager:
    """Manages configuration loading and saving with cascading hierarchy.

    Configuration Precedence (highest to lowest):
    1. Environment Variables - CI/CD, temporary overrides
    2. Local Config (.envvault) - Project-specific settings
    3. Global Config (~/.envvault-config) - User defaults
    4. Built-in Defaults - Fallback values

    Files are parsed strictly, so a config file declaring the same key
    twice raises DuplicateKeyError instead of silently picking one.
    """

    LOCAL_CONFIG_NAME = ".envvault"
    GLOBAL_CONFIG_NAME = ".envvault-config"

    def __init__(self, global_config_path: Path | None = None) -> None:
        self.global_config_path = global_config_path or CONFIG_FILE
        self.local_config_path: Path | None = None
        self.settings = Settings()
        self._raw_values: dict[str, str] = {}
        self._config_sources: dict[str, str] = {}

    def load(self) -> Settings:
        """Load configuration from all sources with cascading precedence.

        Each call starts from clean defaults, so repeated loads never keep
        stale values.
        """
        self.settings = Settings()
        self.local_config_path = None
        self._raw_values = {}
        self._config_sources = {}

        if self.global_config_path.exists():
            log_message(f"Loading global configuration from {self.global_config_path}")
            self._load_file(self.global_config_path, source="global")

        local_path = self._find_local_config()
        if local_path:
            self.local_config_path = local_path
            log_message(f"Loading local configuration from {local_path}")
            self._load_file(local_path, source=f"local ({local_path})")

        self._load_environment()

        for key, value in self._raw_values.items():
            self._apply_value_to_settings(key, value)

        for problem in self.settings.validate():
            logger.warning(problem)

        log_message(f"Configuration loaded successfully ({len(self._raw_values)} keys)")
        return self.settings

    def _find_local_config(self) -> Path | None:
        """Find local .envvault config by traversing up from CWD.

        Stops at the first .envvault file, at a repository root (a directory
        containing .git), or at the filesystem root.
        """
        current = Path.cwd()
        while True:
            config_path = current / self.LOCAL_CONFIG_NAME
            if config_path.is_file():
                return config_path

            if (current / ".git").exists():
                break

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def _read_file_values(self, path: Path) -> dict[str, str]:
        text = read_text_if_exists(path)
        if text is None:
            return {}
        return {entry.key: entry.value for entry in parse(text).entries}

    def _load_file(self, path: Path, source: str = "file") -> None:
        for key, value in self._read_file_values(path).items():
            self._raw_values[key] = value
            self._config_sources[key] = source

    def _load_environment(self) -> None:
        """Override config with environment variables for known keys only."""
        for key in Settings.get_config_keys():
            env_value = os.environ.get(key)
            if env_value is not None:
                self._raw_values[key] = env_value
                self._config_sources[key] = "environment"

    def _apply_value_to_settings(self, key: str, value: str) -> None:
        attr = Settings.get_attribute_for_key(key)
        if attr is None:
            return

        current_value = getattr(self.settings, attr)
        if isinstance(current_value, bool):
            setattr(self.settings, attr, value.lower() in ("true", "1", "yes"))
        else:
            setattr(self.settings, attr, value)

    def save(
        self,
        key: str,
        value: str,
        scope: Literal["global", "local"] = "global",
    ) -> None:
        """Save a configuration value to a config file and reload.

        Comments, blank lines and unrelated keys in the target file are kept
        where they are. The file is replaced atomically with mode 0600.

        Raises:
            ValueError: If key name is invalid or scope is not "global"/"local".
        """
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid config key: {key}")

        if not _UPPER_SNAKE_RE.match(key):
            logger.warning("Config key %r is not in UPPER_SNAKE_CASE format", key)

        if scope not in ("global", "local"):
            raise ValueError(f"Invalid scope: {scope}. Must be 'global' or 'local'")

        if scope == "local":
            if self.local_config_path is None:
                repo_root = find_repo_root()
                base = repo_root if repo_root else Path.cwd()
                self.local_config_path = base / self.LOCAL_CONFIG_NAME
            target_path = self.local_config_path
        else:
            target_path = self.global_config_path

        document = parse(read_text_if_exists(target_path) or "")
        existing = get_entry(document, key)
        if existing is not None:
            updated = update_entry_value(existing, value)
            entries = [updated if entry.key == key else entry for entry in document.entries]
        else:
            entries = [*document.entries, create_entry(key, value, quote_style=QuoteStyle.DOUBLE)]

        atomic_write_text(target_path, render(document.with_entries(entries)))
        self._log_config_save(key, scope)
        self.load()

    def _log_config_save(self, key: str, scope: str) -> None:
        """Log a configuration save, never including the value."""
        if is_sensitive_key(key):
            log_message(f"Configuration saved to {scope}: {key}=<REDACTED>")
        else:
            log_message(f"Configuration saved to {scope}: {key}")

    def get(self, key: str, default: str = "") -> str:
        """Return the effective raw value for ``key``."""
        return self._raw_values.get(key, default)

    def get_source(self, key: str) -> str | None:
        """Return where the effective value for ``key`` came from."""
        return self._config_sources.get(key)


__all__ = [
    "ConfigManager",
    "SENSITIVE_KEY_PATTERNS",
    "is_sensitive_key",
]
