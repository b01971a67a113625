"""Custom exceptions and exit codes for envvault.

Every error raised by envvault derives from EnvVaultError and carries an
ExitCode, so the CLI can map failures to process exit statuses in one place.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes used by the envvault CLI."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    SOPS_NOT_INSTALLED = 2
    CONFIG_ERROR = 3
    USER_CANCELLED = 4
    GIT_ERROR = 5
    PARSE_ERROR = 6


class EnvVaultError(Exception):
    """Base exception for envvault errors.

    Subclasses override ``_default_exit_code``; callers may still pass an
    explicit ``exit_code`` to override it for a single raise site.
    """

    _default_exit_code: ExitCode = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code if exit_code is not None else self._default_exit_code


class SopsNotInstalledError(EnvVaultError):
    """Raised when the sops binary cannot be found on PATH."""

    _default_exit_code = ExitCode.SOPS_NOT_INSTALLED


class SopsError(EnvVaultError):
    """Raised when a sops subprocess exits with a nonzero status.

    Attributes:
        exit_status: The sops process exit status, if it ran at all
    """

    def __init__(self, message: str, exit_status: int | None = None) -> None:
        super().__init__(f"SOPS error: {message}")
        self.exit_status = exit_status


class ConfigError(EnvVaultError):
    """Raised when project or user configuration is missing or invalid."""

    _default_exit_code = ExitCode.CONFIG_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(f"Config error: {message}")


class GitOperationError(EnvVaultError):
    """Raised when a git command fails."""

    _default_exit_code = ExitCode.GIT_ERROR


class UserCancelledError(EnvVaultError):
    """Raised when the user aborts an interactive operation."""

    _default_exit_code = ExitCode.USER_CANCELLED


__all__ = [
    "ExitCode",
    "EnvVaultError",
    "SopsNotInstalledError",
    "SopsError",
    "ConfigError",
    "GitOperationError",
    "UserCancelledError",
]
