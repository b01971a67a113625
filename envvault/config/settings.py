"""Settings dataclass for envvault.

Every configurable value lives on Settings with its built-in default.
Config files and environment variables use the UPPER_SNAKE_CASE names in
``_KEY_TO_ATTR``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE = Path.home() / ".envvault-config"
DEFAULT_OVERRIDES_DIR = Path.home() / ".envvault" / "overrides"

OVERRIDES_MODES = ("home", "local")
BLOCK_POSITIONS = ("bottom", "top")

_KEY_TO_ATTR: dict[str, str] = {
    "SOPS_PATH": "sops_path",
    "SOPS_AGE_KEY_FILE": "age_key_file",
    "ENVVAULT_OVERRIDES_DIR": "overrides_dir",
    "ENVVAULT_OVERRIDES_MODE": "overrides_mode",
    "ENVVAULT_BLOCK_POSITION": "block_position",
    "ENVVAULT_SHOW_UNCHANGED": "show_unchanged",
}


@dataclass
class Settings:
    """Effective envvault configuration.

    Attributes:
        sops_path: sops executable name or path
        age_key_file: Path to the age identity file, empty to let sops decide
        overrides_dir: Root of per-developer override files (home mode)
        overrides_mode: "home" or "local" (``apps/<service>/.env.local``)
        block_position: Where new managed blocks go: "bottom" or "top"
        show_unchanged: Include unchanged keys in diff output
    """

    sops_path: str = "sops"
    age_key_file: str = ""
    overrides_dir: str = str(DEFAULT_OVERRIDES_DIR)
    overrides_mode: str = "home"
    block_position: str = "bottom"
    show_unchanged: bool = False

    @staticmethod
    def get_config_keys() -> list[str]:
        return list(_KEY_TO_ATTR)

    @staticmethod
    def get_attribute_for_key(key: str) -> str | None:
        return _KEY_TO_ATTR.get(key)

    def validate(self) -> list[str]:
        """Return human-readable problems with enumerated settings."""
        problems: list[str] = []
        if self.overrides_mode not in OVERRIDES_MODES:
            problems.append(
                f"ENVVAULT_OVERRIDES_MODE must be one of {', '.join(OVERRIDES_MODES)}, "
                f"got {self.overrides_mode!r}"
            )
        if self.block_position not in BLOCK_POSITIONS:
            problems.append(
                f"ENVVAULT_BLOCK_POSITION must be one of {', '.join(BLOCK_POSITIONS)}, "
                f"got {self.block_position!r}"
            )
        return problems


__all__ = [
    "CONFIG_FILE",
    "DEFAULT_OVERRIDES_DIR",
    "OVERRIDES_MODES",
    "BLOCK_POSITIONS",
    "Settings",
]
