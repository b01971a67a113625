"""Per-developer local overrides.

An override file is a small dotenv file whose values win over the shared,
decrypted secrets when a managed block is generated. It lives either in the
developer's home directory or next to the service:

    home:   <overrides_dir>/<safe repo>/<env>/<service>.env
    local:  <base_dir>/apps/<service>/.env.local
"""

from __future__ import annotations

import logging
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from envvault.config.settings import DEFAULT_OVERRIDES_DIR
from envvault.dotenv.diff import merge
from envvault.dotenv.models import Entry, create_entry, update_entry_value
from envvault.dotenv.parser import parse
from envvault.dotenv.renderer import render_entries_simple
from envvault.integrations.git import ensure_gitignore_pattern
from envvault.utils.files import atomic_write_text, read_text_if_exists
from envvault.utils.logging import log_message

logger = logging.getLogger(__name__)

OverridesMode = Literal["home", "local"]

LOCAL_OVERRIDES_NAME = ".env.local"

_UNSAFE_REPO_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def safe_repo_name(repo: str) -> str:
    """Replace characters that are unsafe in a directory name with ``_``."""
    return _UNSAFE_REPO_CHARS.sub("_", repo)


def get_overrides_path(
    repo: str,
    env: str,
    service: str,
    mode: OverridesMode = "home",
    base_dir: Path | None = None,
    overrides_dir: Path | str | None = None,
) -> Path:
    """Resolve the override file for (repo, env, service).

    Args:
        repo: Repository name, sanitized for use as a directory
        env: Environment name
        service: Service name
        mode: "home" for a per-user file, "local" for apps/<service>/.env.local
        base_dir: Project root for local mode (default CWD)
        overrides_dir: Root for home mode (default ~/.envvault/overrides)
    """
    if mode == "local":
        return (base_dir or Path.cwd()) / "apps" / service / LOCAL_OVERRIDES_NAME
    if mode != "home":
        raise ValueError(f"Invalid overrides mode: {mode}. Must be 'home' or 'local'")

    root = Path(overrides_dir).expanduser() if overrides_dir else DEFAULT_OVERRIDES_DIR
    return root / safe_repo_name(repo) / env / f"{service}.env"


@dataclass(frozen=True)
class OverrideTarget:
    """Identifies one override file."""

    repo: str
    env: str
    service: str
    mode: OverridesMode = "home"
    base_dir: Path | None = None
    overrides_dir: Path | str | None = None

    @property
    def path(self) -> Path:
        return get_overrides_path(
            self.repo,
            self.env,
            self.service,
            self.mode,
            self.base_dir,
            self.overrides_dir,
        )


def read_overrides(target: OverrideTarget) -> list[Entry]:
    """Read override entries; a missing file means no overrides.

    Raises:
        DuplicateKeyError: If the file declares a key twice.
    """
    text = read_text_if_exists(target.path)
    if text is None:
        return []
    return list(parse(text).entries)


def write_overrides(target: OverrideTarget, entries: list[Entry]) -> None:
    """Replace the override file with ``entries`` sorted by key.

    Home-mode files are always private (0600). A local-mode file keeps its
    current permissions, and a new one is created 0600.
    """
    if target.mode == "local" and target.path.exists():
        mode = stat.S_IMODE(target.path.stat().st_mode)
    else:
        mode = 0o600
    atomic_write_text(target.path, render_entries_simple(entries), mode=mode)
    log_message(f"Wrote {len(entries)} overrides to {target.path}")


def remove_overrides(target: OverrideTarget) -> bool:
    """Delete the override file. Returns False if it did not exist."""
    try:
        target.path.unlink()
    except FileNotFoundError:
        return False
    log_message(f"Removed overrides file {target.path}")
    return True


def set_override(target: OverrideTarget, key: str, value: str) -> None:
    """Add or update one override, keeping the existing entry's metadata."""
    entries = read_overrides(target)
    for index, entry in enumerate(entries):
        if entry.key == key:
            entries[index] = update_entry_value(entry, value)
            break
    else:
        entries.append(create_entry(key, value))
    write_overrides(target, entries)


def get_override(target: OverrideTarget, key: str) -> str | None:
    for entry in read_overrides(target):
        if entry.key == key:
            return entry.value
    return None


def remove_override_key(target: OverrideTarget, key: str) -> bool:
    """Drop one key. The file is deleted when no overrides remain.

    Returns:
        False if the key was not overridden.
    """
    entries = read_overrides(target)
    remaining = [entry for entry in entries if entry.key != key]
    if len(remaining) == len(entries):
        return False

    if remaining:
        write_overrides(target, remaining)
    else:
        remove_overrides(target)
    return True


def has_overrides(target: OverrideTarget) -> bool:
    return target.path.is_file()


def get_override_keys(target: OverrideTarget) -> list[str]:
    return sorted(entry.key for entry in read_overrides(target))


def merge_with_overrides(shared: list[Entry], local: list[Entry]) -> list[Entry]:
    """Overlay local overrides on shared entries (overrides win)."""
    return merge(shared, local)


def get_overridden_entries(shared: list[Entry], local: list[Entry]) -> list[Entry]:
    """Local entries that replace a shared key with a different value."""
    shared_values = {entry.key: entry.value for entry in shared}
    return [
        entry
        for entry in local
        if entry.key in shared_values and shared_values[entry.key] != entry.value
    ]


def get_overridden_keys(shared: list[Entry], local: list[Entry]) -> list[str]:
    return sorted(entry.key for entry in get_overridden_entries(shared, local))


def ensure_in_gitignore(gitignore_path: Path, pattern: str = LOCAL_OVERRIDES_NAME) -> bool:
    """Make sure local override files are ignored by git.

    Returns:
        True if the pattern was added, False if it was already there.
    """
    added = ensure_gitignore_pattern(gitignore_path, pattern)
    if added:
        logger.debug("Added %s to %s", pattern, gitignore_path)
    return added


__all__ = [
    "LOCAL_OVERRIDES_NAME",
    "OverrideTarget",
    "safe_repo_name",
    "get_overrides_path",
    "read_overrides",
    "write_overrides",
    "remove_overrides",
    "set_override",
    "get_override",
    "remove_override_key",
    "has_overrides",
    "get_override_keys",
    "merge_with_overrides",
    "get_overridden_entries",
    "get_overridden_keys",
    "ensure_in_gitignore",
]
