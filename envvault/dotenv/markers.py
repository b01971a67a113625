"""Managed-block delimiter tokens.

Only the canonical spelling is ever written:

    # >>> envvault:managed env=<ENV> service=<SERVICE>
    # <<< envvault:managed

Older files also contain start lines without a space before the environment
token (``managedenv=dev``), with a space after ``env=`` (``env= dev``), or
with the environment given positionally (``managed dev service=api``,
``manageddev service=api``). All of those are accepted on read.
"""

from __future__ import annotations

import re

MARKER = "envvault:managed"

START_PREFIX = f"# >>> {MARKER}"
END_DELIMITER = f"# <<< {MARKER}"

_NAME = r"[A-Za-z0-9_.-]+"

START_PATTERN = re.compile(
    r"^\s*#\s*>>>\s*"
    + re.escape(MARKER)
    + r"(?:\s*env=\s*|\s+|)"
    + rf"(?P<env>{_NAME})\s+service=(?P<service>{_NAME})\s*$"
)
END_PATTERN = re.compile(r"^\s*#\s*<<<\s*" + re.escape(MARKER) + r"\s*$")

NAME_PATTERN = re.compile(rf"^{_NAME}$")


def format_start_delimiter(environment: str, service: str) -> str:
    """Build the canonical start delimiter line for a block."""
    return f"{START_PREFIX} env={environment} service={service}"


def match_start(line: str) -> tuple[str, str] | None:
    """Return ``(environment, service)`` when ``line`` is a start delimiter."""
    match = START_PATTERN.match(line)
    if match is None:
        return None
    return match.group("env"), match.group("service")


def is_end_delimiter(line: str) -> bool:
    return END_PATTERN.match(line) is not None


def is_block_delimiter(line: str) -> bool:
    """Check whether ``line`` is any managed-block start or end delimiter."""
    return START_PATTERN.match(line) is not None or is_end_delimiter(line)


def is_valid_name(name: str) -> bool:
    """Check whether ``name`` can appear as an environment or service token."""
    return bool(NAME_PATTERN.match(name))


__all__ = [
    "MARKER",
    "START_PREFIX",
    "END_DELIMITER",
    "START_PATTERN",
    "END_PATTERN",
    "format_start_delimiter",
    "match_start",
    "is_end_delimiter",
    "is_block_delimiter",
    "is_valid_name",
]
