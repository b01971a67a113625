"""Interfaces for the external tools envvault drives.

SopsAdapter and GitAdapter satisfy these structurally. Commands accept any
implementation, so tests can pass in-memory fakes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from envvault.dotenv.models import Entry
from envvault.integrations.git import GitStatus
from envvault.integrations.sops import DecryptedData


@runtime_checkable
class SecretsBackend(Protocol):
    """Decrypts and re-encrypts secret files."""

    def decrypt(self, path: Path) -> DecryptedData: ...

    def decrypt_entries(self, path: Path) -> list[Entry]: ...

    def encrypt(self, path: Path) -> None: ...

    def encrypt_data(self, path: Path, data: dict[str, str]) -> None: ...

    def rotate(self, path: Path) -> None: ...

    def update_keys(self, path: Path) -> None: ...


@runtime_checkable
class VersionControl(Protocol):
    """Commits files and reports repository state."""

    def is_repo(self) -> bool: ...

    def status(self) -> GitStatus: ...

    def commit(
        self,
        message: str,
        files: list[str] | tuple[str, ...] = (),
        allow_empty: bool = False,
    ) -> str: ...

    def add_to_gitignore(self, pattern: str) -> bool: ...


__all__ = [
    "SecretsBackend",
    "VersionControl",
]
