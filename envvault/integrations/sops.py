"""SOPS adapter for envvault.

Wraps the ``sops`` binary. Decrypted output is YAML; the top-level ``sops``
key is the file's encryption metadata and everything else is secret data.

Decrypted values are returned to the caller and never logged.
"""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from envvault.dotenv.models import Entry, create_entry
from envvault.utils.errors import SopsError, SopsNotInstalledError
from envvault.utils.logging import log_command, log_message

_VERSION_RE = re.compile(r"sops (\d+\.\d+\.\d+)")


@dataclass(frozen=True)
class SopsMetadata:
    lastmodified: str = ""
    mac: str = ""
    recipient_hashes: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DecryptedData:
    """Result of decrypting one file.

    Attributes:
        data: Secret keys mapped to their string values
        metadata: The file's ``sops`` metadata section
    """

    data: dict[str, str] = field(default_factory=dict)
    metadata: SopsMetadata = field(default_factory=SopsMetadata)

    def __repr__(self) -> str:
        return f"DecryptedData(keys={sorted(self.data)}, metadata={self.metadata!r})"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def version_at_least(version: str, minimum: str) -> bool:
    """Compare dotted numeric versions (``3.9.0`` >= ``3.8.0``)."""

    def as_tuple(text: str) -> tuple[int, ...]:
        return tuple(int(part) for part in re.findall(r"\d+", text))

    return as_tuple(version) >= as_tuple(minimum)


def record_to_env(record: dict[str, Any]) -> dict[str, str]:
    """Convert decrypted YAML data to strings, dropping null values."""
    return {str(key): _stringify(value) for key, value in record.items() if value is not None}


class SopsAdapter:
    """Runs sops with a fixed binary path and environment.

    Args:
        sops_path: Executable name or path
        age_key_file: Exported to sops as SOPS_AGE_KEY_FILE when given;
            defaults to the caller's SOPS_AGE_KEY_FILE
        env: Extra environment variables for the subprocess
    """

    def __init__(
        self,
        sops_path: str = "sops",
        age_key_file: str | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.sops_path = sops_path
        self.age_key_file = age_key_file or os.environ.get("SOPS_AGE_KEY_FILE") or None
        self.env = {**os.environ, **(env or {})}
        if self.age_key_file:
            self.env["SOPS_AGE_KEY_FILE"] = self.age_key_file

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        command = [self.sops_path, *args]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                env=self.env,
            )
        except FileNotFoundError as e:
            raise SopsNotInstalledError(
                f"sops executable not found: {self.sops_path}. "
                "Install it from https://github.com/getsops/sops"
            ) from e

        # Only the argument list is logged, never stdout.
        log_command(" ".join(command), result.returncode)
        return result

    def _check(self, result: subprocess.CompletedProcess[str], action: str, path: Path) -> None:
        if result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else "unknown error"
            raise SopsError(f"Failed to {action} {path}: {stderr}", result.returncode)

    def is_available(self) -> bool:
        try:
            return self._run("--version").returncode == 0
        except SopsNotInstalledError:
            return False

    def get_version(self) -> str | None:
        """Return the installed sops version (e.g. ``3.8.1``), if any."""
        try:
            result = self._run("--version")
        except SopsNotInstalledError:
            return None
        if result.returncode != 0:
            return None
        match = _VERSION_RE.search(result.stdout)
        return match.group(1) if match else None

    def decrypt(self, path: Path) -> DecryptedData:
        """Decrypt a file and split it into data and metadata.

        Raises:
            SopsError: If sops fails or its output is not a YAML mapping.
        """
        result = self._run("-d", str(path))
        self._check(result, "decrypt", path)

        try:
            parsed = yaml.safe_load(result.stdout) or {}
        except yaml.YAMLError as e:
            raise SopsError(f"Decrypted output of {path} is not valid YAML") from e
        if not isinstance(parsed, dict):
            raise SopsError(f"Decrypted output of {path} is not a mapping")

        sops_meta = parsed.pop("sops", None) or {}
        hashes = sops_meta.get("recipient_hashes")
        metadata = SopsMetadata(
            lastmodified=str(sops_meta.get("lastmodified", "")),
            mac=str(sops_meta.get("mac", "")),
            recipient_hashes=tuple(hashes) if hashes is not None else None,
        )
        data = record_to_env(parsed)
        log_message(f"Decrypted {path} ({len(data)} keys)")
        return DecryptedData(data=data, metadata=metadata)

    def decrypt_entries(self, path: Path) -> list[Entry]:
        """Decrypt a file into entries sorted by key."""
        data = self.decrypt(path).data
        return [create_entry(key, data[key]) for key in sorted(data)]

    def encrypt(self, path: Path) -> None:
        """Encrypt a plaintext file in place."""
        self._check(self._run("-e", "-i", str(path)), "encrypt", path)

    def encrypt_data(self, path: Path, data: dict[str, str]) -> None:
        """Write ``data`` as YAML to ``path`` and encrypt it in place."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(dict(data), sort_keys=True), encoding="utf-8")
        self.encrypt(path)

    def update_keys(self, path: Path) -> None:
        """Re-encrypt the data key for the current recipient list."""
        self._check(self._run("updatekeys", "-y", str(path)), "update keys for", path)

    def rotate(self, path: Path) -> None:
        """Generate a new data key and re-encrypt all values."""
        self._check(self._run("rotate", "-i", str(path)), "rotate", path)

    def is_encrypted(self, path: Path) -> bool:
        """Check whether a file carries a ``sops`` metadata section."""
        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError):
            return False
        return isinstance(parsed, dict) and parsed.get("sops") is not None


__all__ = [
    "SopsMetadata",
    "DecryptedData",
    "version_at_least",
    "record_to_env",
    "SopsAdapter",
]
