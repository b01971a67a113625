"""Data model for dotenv documents.

This module defines the structures shared by the parser, renderer,
managed-block engine and diff engine:

- Entry: one ``KEY=VALUE`` declaration plus its metadata
- ParsedDocument: the round-trip representation of a whole file
- ManagedBlock: a generator-owned (environment, service) region
- DiffResult: key-only comparison of two entry lists
- RenderOptions / DiffFormatOptions: enumerated rendering settings

All structures are immutable. Transformations return new objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum

KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Characters that make an unquoted value re-parse differently.
_FORCE_QUOTE_CHARS = frozenset({"#", "=", "$"})
_LEADING_QUOTE_CHARS = ('"', "'")


class QuoteStyle(Enum):
    """Preferred quoting for a rendered value.

    Attributes:
        NONE: Emit the raw value (upgraded to DOUBLE when unsafe)
        SINGLE: Wrap in single quotes, escaping only ``'``
        DOUBLE: Wrap in double quotes with backslash escapes
    """

    NONE = "none"
    SINGLE = "single"
    DOUBLE = "double"


class BlockPosition(Enum):
    """Where a new managed block is inserted."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Entry:
    """One logical ``KEY=VALUE`` declaration.

    Attributes:
        key: Variable name matching ``[A-Za-z_][A-Za-z0-9_]*``
        value: Fully unquoted/unescaped logical value
        comment: Comment lines directly above the key, newline-joined,
            without the leading ``#``
        has_export: Whether the line is prefixed with ``export``
        quote_style: Preferred quoting on render
        source_line: 1-based line number when the entry came from a parse
    """

    key: str
    value: str
    comment: str | None = None
    has_export: bool = False
    quote_style: QuoteStyle = QuoteStyle.NONE
    source_line: int | None = None

    def __repr__(self) -> str:
        # Values are secrets; keep them out of tracebacks and debug output.
        return (
            f"Entry(key={self.key!r}, value=<{len(self.value)} chars>, "
            f"quote_style={self.quote_style.value}, has_export={self.has_export}, "
            f"source_line={self.source_line})"
        )


@dataclass(frozen=True)
class ParsedDocument:
    """Round-trip representation of one dotenv file.

    Attributes:
        entries: Declarations in the order they were encountered
        raw_lines: Every physical line not represented by an Entry (blank
            lines, free-standing comments, block delimiters, opaque lines)
        original_text: The normalized source text
        layout: Position of every line group in the source. An ``int`` is an
            index into ``raw_lines``; a ``str`` is the key of an entry (its
            comment lines plus the assignment line).
    """

    entries: tuple[Entry, ...] = ()
    raw_lines: tuple[str, ...] = ()
    original_text: str | None = None
    layout: tuple[int | str, ...] = ()

    def with_entries(self, entries: list[Entry] | tuple[Entry, ...]) -> ParsedDocument:
        """Return a copy of this document holding ``entries`` instead."""
        return replace(self, entries=tuple(entries))


@dataclass(frozen=True)
class ManagedBlock:
    """A delimited region owned by a generator.

    ``start_line`` and ``end_line`` are 1-based and include the delimiter
    lines themselves: ``start_line`` is the start delimiter and ``end_line``
    is the end delimiter. Body lines are ``start_line + 1 .. end_line - 1``.

    Attributes:
        environment: Environment name from the start delimiter
        service: Service name from the start delimiter
        start_line: Line number of the start delimiter
        end_line: Line number of the end delimiter
        entries: Body entries, parsed leniently (last occurrence wins)
    """

    environment: str
    service: str
    start_line: int
    end_line: int
    entries: tuple[Entry, ...] = ()

    @property
    def body_line_count(self) -> int:
        """Number of physical lines between the delimiters."""
        return self.end_line - self.start_line - 1


@dataclass(frozen=True)
class DiffResult:
    """Key-level comparison of two entry lists.

    Holds key names only. There is deliberately no field that could carry a
    value, so anything formatted from a DiffResult cannot leak one.
    """

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()


@dataclass(frozen=True)
class RenderOptions:
    """Options for rendering a document.

    Attributes:
        order: Explicit key order. When set, entries are emitted in this
            order (unlisted keys follow in document order) and raw lines are
            appended after them.
        header: Comment emitted as ``# <header>`` plus a blank line at the top
        include_comments: Emit entry comments above their keys
        compact: Drop blank lines and free-standing comments
    """

    order: tuple[str, ...] | None = None
    header: str | None = None
    include_comments: bool = True
    compact: bool = False


@dataclass(frozen=True)
class DiffFormatOptions:
    """Options for the safe diff formatters.

    Attributes:
        show_unchanged: Include the unchanged key section
        colorize: Wrap sections in Rich markup (green/red/yellow/dim)
        compact: One line per category instead of one line per key
    """

    show_unchanged: bool = False
    colorize: bool = False
    compact: bool = False


@dataclass(frozen=True)
class ChangeCount:
    """Counts of changed keys in a DiffResult."""

    added: int = 0
    removed: int = 0
    changed: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.changed


def is_valid_key(key: str) -> bool:
    """Check whether ``key`` is a legal dotenv variable name."""
    return bool(KEY_PATTERN.match(key))


def needs_quoting(value: str) -> bool:
    """Check whether an unquoted ``value`` would re-parse incorrectly.

    A value needs quoting when it contains whitespace (space, tab, newline,
    carriage return), ``#``, ``=`` or ``$``, or starts with a quote character.
    """
    if value.startswith(_LEADING_QUOTE_CHARS):
        return True
    return any(ch.isspace() or ch in _FORCE_QUOTE_CHARS for ch in value)


def create_entry(
    key: str,
    value: str,
    *,
    comment: str | None = None,
    has_export: bool = False,
    quote_style: QuoteStyle = QuoteStyle.NONE,
) -> Entry:
    """Create a synthesized Entry (no source line)."""
    return Entry(
        key=key,
        value=value,
        comment=comment,
        has_export=has_export,
        quote_style=quote_style,
    )


def update_entry_value(entry: Entry, new_value: str) -> Entry:
    """Return a copy of ``entry`` holding ``new_value``.

    An entry with no explicit quoting is upgraded to DOUBLE when the new
    value needs quoting. An explicit style is never changed.
    """
    quote_style = entry.quote_style
    if quote_style is QuoteStyle.NONE and needs_quoting(new_value):
        quote_style = QuoteStyle.DOUBLE
    return replace(entry, value=new_value, quote_style=quote_style)


def entries_to_dict(entries: list[Entry] | tuple[Entry, ...]) -> dict[str, str]:
    """Collapse entries to a key -> value mapping (last occurrence wins)."""
    return {entry.key: entry.value for entry in entries}


def entries_from_dict(data: dict[str, str]) -> list[Entry]:
    """Create synthesized entries from a mapping, sorted by key."""
    return [create_entry(key, data[key]) for key in sorted(data)]


__all__ = [
    "KEY_PATTERN",
    "QuoteStyle",
    "BlockPosition",
    "Entry",
    "ParsedDocument",
    "ManagedBlock",
    "DiffResult",
    "RenderOptions",
    "DiffFormatOptions",
    "ChangeCount",
    "is_valid_key",
    "needs_quoting",
    "create_entry",
    "update_entry_value",
    "entries_to_dict",
    "entries_from_dict",
]
