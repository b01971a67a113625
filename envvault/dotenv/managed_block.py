"""Managed-block engine.

A managed block is a region of a dotenv file owned by envvault, keyed by
(environment, service):

    # >>> envvault:managed env=dev service=api
    API_KEY=...
    # <<< envvault:managed

Everything outside the delimiters belongs to the user and is preserved.
Blocks are always regenerated wholesale: insert() replaces an existing
block's body rather than merging into it.

Line numbers on ManagedBlock are 1-based and include the delimiter lines.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from envvault.dotenv.exceptions import InvalidBlockNameError
from envvault.dotenv.markers import (
    END_DELIMITER,
    format_start_delimiter,
    is_end_delimiter,
    is_valid_name,
    match_start,
)
from envvault.dotenv.models import BlockPosition, Entry, ManagedBlock
from envvault.dotenv.parser import normalize_newlines, parse_lenient, split_lines
from envvault.dotenv.renderer import render_entries_simple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Span:
    environment: str
    service: str
    start: int  # 0-based index of the start delimiter
    end: int  # 0-based index of the end delimiter


def _scan(lines: list[str]) -> list[_Span]:
    """Find every well-formed block in document order.

    A start delimiter followed by another start before any end is dangling
    and is dropped. End delimiters with no open block are ignored.
    """
    spans: list[_Span] = []
    open_start: tuple[str, str, int] | None = None

    for index, line in enumerate(lines):
        names = match_start(line)
        if names is not None:
            if open_start is not None:
                logger.debug("Skipping unterminated managed block at line %d", open_start[2] + 1)
            open_start = (names[0], names[1], index)
        elif is_end_delimiter(line) and open_start is not None:
            environment, service, start = open_start
            spans.append(_Span(environment, service, start, index))
            open_start = None

    if open_start is not None:
        logger.debug("Skipping unterminated managed block at line %d", open_start[2] + 1)
    return spans


def _find_span(lines: list[str], environment: str, service: str) -> _Span | None:
    for span in _scan(lines):
        if span.environment == environment and span.service == service:
            return span
    return None


def _to_block(lines: list[str], span: _Span) -> ManagedBlock:
    body = "\n".join(lines[span.start + 1 : span.end])
    document = parse_lenient(body)
    return ManagedBlock(
        environment=span.environment,
        service=span.service,
        start_line=span.start + 1,
        end_line=span.end + 1,
        entries=document.entries,
    )


def _lines_of(text: str) -> list[str]:
    return split_lines(normalize_newlines(text))


def _join(lines: list[str]) -> str:
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def _is_blank(line: str) -> bool:
    return not line.strip()


def extract(text: str, environment: str, service: str) -> ManagedBlock | None:
    """Locate the first well-formed block for (environment, service).

    Returns:
        The block, or None if no matching start delimiter is followed by an
        end delimiter.
    """
    lines = _lines_of(text)
    span = _find_span(lines, environment, service)
    if span is None:
        return None
    return _to_block(lines, span)


def find_all(text: str) -> list[ManagedBlock]:
    """Return every well-formed managed block in document order."""
    lines = _lines_of(text)
    return [_to_block(lines, span) for span in _scan(lines)]


def has_block(text: str, environment: str, service: str) -> bool:
    return _find_span(_lines_of(text), environment, service) is not None


def render_managed_block(environment: str, service: str, entries: Iterable[Entry]) -> str:
    """Render a complete block, delimiters included, with entries sorted by key.

    When ``entries`` repeats a key, the last occurrence is used. Entry
    comments are not written; the block body holds assignments only.

    Raises:
        InvalidBlockNameError: If the environment or service name cannot be
            written into a delimiter line.
    """
    for label, name in (("environment", environment), ("service", service)):
        if not is_valid_name(name):
            raise InvalidBlockNameError(label, name)

    unique = {entry.key: entry for entry in entries}
    body = render_entries_simple(unique.values(), include_comments=False)
    return f"{format_start_delimiter(environment, service)}\n{body}{END_DELIMITER}\n"


def _top_insert_index(lines: list[str]) -> int | None:
    """Index just past the managed blocks that open the file, if any.

    Blocks count as opening the file when only blank lines precede and
    separate them.
    """
    starts = {span.start: span for span in _scan(lines)}
    index = 0
    last_end: int | None = None
    while True:
        while index < len(lines) and _is_blank(lines[index]):
            index += 1
        span = starts.get(index)
        if span is None:
            break
        last_end = span.end
        index = span.end + 1
    return None if last_end is None else last_end + 1


def insert(
    text: str,
    environment: str,
    service: str,
    entries: Iterable[Entry],
    position: BlockPosition | str = BlockPosition.BOTTOM,
) -> str:
    """Write a block for (environment, service) into ``text``.

    An existing block is replaced in place and its old entries discarded.
    Otherwise the block is appended after one blank line (bottom), or placed
    after the managed blocks that open the file, or first when there are
    none (top).

    Returns:
        The new document text with ``\\n`` line endings.
    """
    position = BlockPosition(position)
    lines = _lines_of(text)
    block_lines = split_lines(render_managed_block(environment, service, entries))

    span = _find_span(lines, environment, service)
    if span is not None:
        logger.debug("Replacing managed block env=%s service=%s", environment, service)
        return _join(lines[: span.start] + block_lines + lines[span.end + 1 :])

    logger.debug(
        "Inserting managed block env=%s service=%s at %s",
        environment,
        service,
        position.value,
    )

    if position is BlockPosition.BOTTOM:
        while lines and _is_blank(lines[-1]):
            lines.pop()
        if not lines:
            return _join(block_lines)
        return _join(lines + [""] + block_lines)

    split_at = _top_insert_index(lines)
    if split_at is not None:
        head, rest = lines[:split_at], lines[split_at:]
        separator = [""] if rest and not _is_blank(rest[0]) else []
        return _join(head + [""] + block_lines + separator + rest)

    separator = [""] if lines and not _is_blank(lines[0]) else []
    return _join(block_lines + separator + lines)


def _collapse_blank_runs(lines: list[str]) -> list[str]:
    result: list[str] = []
    for line in lines:
        if _is_blank(line) and result and _is_blank(result[-1]):
            continue
        result.append("" if _is_blank(line) else line)
    while result and _is_blank(result[0]):
        result.pop(0)
    while result and _is_blank(result[-1]):
        result.pop()
    return result


def remove(text: str, environment: str, service: str) -> str:
    """Delete the block for (environment, service), delimiters included.

    A blank line directly above the block goes with it, and any run of
    blank lines left behind is collapsed to one. Text without a matching
    block is returned unchanged.
    """
    lines = _lines_of(text)
    span = _find_span(lines, environment, service)
    if span is None:
        return text

    start = span.start
    if start > 0 and _is_blank(lines[start - 1]):
        start -= 1
    logger.debug("Removing managed block env=%s service=%s", environment, service)
    return _join(_collapse_blank_runs(lines[:start] + lines[span.end + 1 :]))


__all__ = [
    "extract",
    "find_all",
    "has_block",
    "render_managed_block",
    "insert",
    "remove",
]
