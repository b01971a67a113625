"""Exceptions raised by the dotenv document model."""

from __future__ import annotations

from envvault.utils.errors import EnvVaultError, ExitCode


class DotenvError(EnvVaultError):
    """Base class for dotenv parsing and rendering failures."""

    _default_exit_code = ExitCode.PARSE_ERROR


class DuplicateKeyError(DotenvError):
    """Raised by the strict parser when a key is declared more than once.

    Attributes:
        key: First colliding key in document order
        line_numbers: Every 1-based line on which ``key`` was declared
        collisions: Every colliding key mapped to its line numbers
    """

    def __init__(
        self,
        key: str,
        line_numbers: list[int],
        collisions: dict[str, list[int]] | None = None,
    ) -> None:
        self.key = key
        self.line_numbers = list(line_numbers)
        self.collisions = dict(collisions) if collisions else {key: self.line_numbers}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [
            f'Duplicate key "{key}" found on lines: {", ".join(str(n) for n in lines)}'
            for key, lines in self.collisions.items()
        ]
        return "; ".join(parts)


class UnsafeRenderError(DotenvError):
    """Raised when a rendered entry would re-parse to a different value.

    The message names the key only; the value is never included.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f'Refusing to render "{key}": output would not re-parse to the same value')


class InvalidBlockNameError(DotenvError):
    """Raised when an environment or service name cannot appear in a delimiter line."""

    _default_exit_code = ExitCode.GENERAL_ERROR

    def __init__(self, label: str, name: str) -> None:
        self.label = label
        self.name = name
        super().__init__(f"Invalid {label} name for managed block: {name!r}")


__all__ = [
    "DotenvError",
    "DuplicateKeyError",
    "InvalidBlockNameError",
    "UnsafeRenderError",
]
