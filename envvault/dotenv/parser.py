"""Dotenv parser.

Turns dotenv text into a ParsedDocument. Two entry points share one grammar:

- parse(): strict, raises DuplicateKeyError listing every collision
- parse_lenient(): used for managed-block bodies, last occurrence wins

Lines the grammar does not understand are never rejected; they are kept in
``raw_lines`` so the renderer can reproduce them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace

from envvault.dotenv.exceptions import DuplicateKeyError
from envvault.dotenv.markers import is_block_delimiter
from envvault.dotenv.models import Entry, ParsedDocument, QuoteStyle

logger = logging.getLogger(__name__)

ASSIGNMENT_PATTERN = re.compile(r"^\s*(export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")

# An unquoted value ends at the first "#" that follows whitespace.
_INLINE_COMMENT = re.compile(r"\s#")
# After a closing quote only whitespace and an optional comment may follow.
_QUOTED_TAIL = re.compile(r"^\s*(?:#.*)?$")

_DOUBLE_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


def normalize_newlines(text: str) -> str:
    """Convert ``\\r\\n`` and bare ``\\r`` line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    """Split normalized text into physical lines.

    A trailing newline terminates the last line rather than starting an
    empty one, so ``"A=1\\n"`` is one line and ``""`` is none.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def unescape_double(body: str) -> str:
    """Unescape the inside of a double-quoted value in a single pass.

    Recognized escapes are ``\\\\``, ``\\"``, ``\\n``, ``\\r`` and ``\\t``.
    Any other backslash sequence is kept verbatim.
    """
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body) and body[i + 1] in _DOUBLE_ESCAPES:
            out.append(_DOUBLE_ESCAPES[body[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def unescape_single(body: str) -> str:
    """Unescape the inside of a single-quoted value (only ``\\'``)."""
    return body.replace("\\'", "'")


def _find_closing_double(raw: str) -> int:
    i = 1
    while i < len(raw):
        ch = raw[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i
        i += 1
    return -1


def _find_closing_single(raw: str) -> int:
    i = 1
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw) and raw[i + 1] == "'":
            i += 2
            continue
        if ch == "'":
            return i
        i += 1
    return -1


def parse_value(raw: str) -> tuple[str, QuoteStyle]:
    """Decode the text after ``=`` into a logical value and its quote style.

    A quoted value must be closed on the same line and may only be followed
    by whitespace or a comment. Anything else is read as an unquoted value.
    """
    raw = raw.strip()

    if raw.startswith('"'):
        end = _find_closing_double(raw)
        if end != -1 and _QUOTED_TAIL.match(raw[end + 1 :]):
            return unescape_double(raw[1:end]), QuoteStyle.DOUBLE
    elif raw.startswith("'"):
        end = _find_closing_single(raw)
        if end != -1 and _QUOTED_TAIL.match(raw[end + 1 :]):
            return unescape_single(raw[1:end]), QuoteStyle.SINGLE

    match = _INLINE_COMMENT.search(raw)
    if match:
        raw = raw[: match.start()]
    return raw.strip(), QuoteStyle.NONE


def parse_assignment(
    line: str,
    line_number: int | None = None,
    comment: str | None = None,
) -> Entry | None:
    """Parse one physical line as ``[export ]KEY=VALUE``.

    Returns:
        The Entry, or None if the line is not an assignment.
    """
    match = ASSIGNMENT_PATTERN.match(line)
    if match is None:
        return None
    value, quote_style = parse_value(match.group(3))
    return Entry(
        key=match.group(2),
        value=value,
        comment=comment,
        has_export=match.group(1) is not None,
        quote_style=quote_style,
        source_line=line_number,
    )


def is_comment_line(line: str) -> bool:
    return line.lstrip().startswith("#")


def comment_text(line: str) -> str:
    """Strip the leading ``#`` and surrounding whitespace from a comment line."""
    return line.strip()[1:].strip()


@dataclass
class _Walk:
    """Mutable state for one pass over a document."""

    entries: list[Entry] = field(default_factory=list)
    raw_lines: list[str] = field(default_factory=list)
    layout: list[int | str] = field(default_factory=list)
    seen: dict[str, list[int]] = field(default_factory=dict)
    # (physical line, stripped comment) waiting to attach to the next key
    pending: list[tuple[str, str]] = field(default_factory=list)

    def push_raw(self, line: str) -> None:
        self.layout.append(len(self.raw_lines))
        self.raw_lines.append(line)

    def flush_pending(self) -> None:
        for line, _ in self.pending:
            self.push_raw(line)
        self.pending.clear()

    def take_comment(self) -> str | None:
        if not self.pending:
            return None
        comment = "\n".join(text for _, text in self.pending)
        self.pending.clear()
        return comment


def _walk(text: str) -> tuple[str, _Walk]:
    normalized = normalize_newlines(text)
    state = _Walk()

    for line_number, line in enumerate(split_lines(normalized), start=1):
        if not line.strip():
            state.flush_pending()
            state.push_raw(line)
            continue

        if is_comment_line(line):
            if is_block_delimiter(line):
                state.flush_pending()
                state.push_raw(line)
            else:
                state.pending.append((line, comment_text(line)))
            continue

        entry = parse_assignment(line, line_number)
        if entry is None:
            state.flush_pending()
            state.push_raw(line)
            continue

        entry = replace(entry, comment=state.take_comment())
        state.seen.setdefault(entry.key, []).append(line_number)
        state.entries.append(entry)
        state.layout.append(entry.key)

    state.flush_pending()
    return normalized, state


def parse(text: str) -> ParsedDocument:
    """Parse dotenv text strictly.

    Args:
        text: Dotenv source with any line-ending convention

    Returns:
        ParsedDocument with entries in declaration order

    Raises:
        DuplicateKeyError: If any key is declared more than once. All
            colliding keys and their line numbers are reported together.
    """
    normalized, state = _walk(text)

    collisions = {key: lines for key, lines in state.seen.items() if len(lines) > 1}
    if collisions:
        first_key = next(iter(collisions))
        logger.debug("Duplicate keys found: %s", ", ".join(collisions))
        raise DuplicateKeyError(first_key, collisions[first_key], collisions)

    return ParsedDocument(
        entries=tuple(state.entries),
        raw_lines=tuple(state.raw_lines),
        original_text=normalized,
        layout=tuple(state.layout),
    )


def parse_lenient(text: str) -> ParsedDocument:
    """Parse dotenv text, tolerating duplicate keys.

    A duplicated key keeps the position of its first occurrence and takes
    the value, comment, quoting and source line of its last occurrence.
    """
    normalized, state = _walk(text)

    latest: dict[str, Entry] = {}
    for entry in state.entries:
        latest[entry.key] = entry

    layout: list[int | str] = []
    placed: set[str] = set()
    for item in state.layout:
        if isinstance(item, str):
            if item in placed:
                continue
            placed.add(item)
        layout.append(item)

    return ParsedDocument(
        entries=tuple(latest.values()),
        raw_lines=tuple(state.raw_lines),
        original_text=normalized,
        layout=tuple(layout),
    )


def find_duplicate_keys(text: str) -> dict[str, list[int]]:
    """Return every key declared more than once, mapped to its line numbers."""
    _, state = _walk(text)
    return {key: lines for key, lines in state.seen.items() if len(lines) > 1}


def get_keys(document: ParsedDocument) -> list[str]:
    return [entry.key for entry in document.entries]


def has_key(document: ParsedDocument, key: str) -> bool:
    return any(entry.key == key for entry in document.entries)


def get_entry(document: ParsedDocument, key: str) -> Entry | None:
    for entry in document.entries:
        if entry.key == key:
            return entry
    return None


def get_value(document: ParsedDocument, key: str, default: str | None = None) -> str | None:
    """Look up the value of ``key``, returning ``default`` when absent."""
    entry = get_entry(document, key)
    return entry.value if entry is not None else default


__all__ = [
    "ASSIGNMENT_PATTERN",
    "normalize_newlines",
    "split_lines",
    "unescape_double",
    "unescape_single",
    "parse_value",
    "parse_assignment",
    "parse",
    "parse_lenient",
    "find_duplicate_keys",
    "get_keys",
    "has_key",
    "get_entry",
    "get_value",
]
