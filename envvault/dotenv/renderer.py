"""Dotenv renderer.

Serializes entries and documents back to text. Every rendered assignment is
re-parsed before it is returned; if the round trip would change the key or
the value, UnsafeRenderError is raised instead of emitting the line.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from envvault.dotenv.exceptions import UnsafeRenderError
from envvault.dotenv.markers import is_block_delimiter
from envvault.dotenv.models import (
    Entry,
    ParsedDocument,
    QuoteStyle,
    RenderOptions,
    entries_from_dict,
    needs_quoting,
)
from envvault.dotenv.parser import parse_assignment


def escape_double(value: str) -> str:
    """Escape a value for a double-quoted context (backslash first)."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def escape_single(value: str) -> str:
    return value.replace("'", "\\'")


def effective_quote_style(entry: Entry) -> QuoteStyle:
    """Return the quoting actually used for ``entry``.

    Styles are only ever upgraded: NONE becomes DOUBLE when the value needs
    quoting, and SINGLE becomes DOUBLE when single quotes cannot hold the
    value on one line.
    """
    style = entry.quote_style
    if style is QuoteStyle.NONE and needs_quoting(entry.value):
        return QuoteStyle.DOUBLE
    if style is QuoteStyle.SINGLE and (
        entry.value.endswith("\\") or "\n" in entry.value or "\r" in entry.value
    ):
        return QuoteStyle.DOUBLE
    return style


def format_value(entry: Entry) -> str:
    style = effective_quote_style(entry)
    if style is QuoteStyle.DOUBLE:
        return f'"{escape_double(entry.value)}"'
    if style is QuoteStyle.SINGLE:
        return f"'{escape_single(entry.value)}'"
    return entry.value


def format_comment(comment: str) -> list[str]:
    """Turn a newline-joined comment into ``# `` prefixed lines."""
    return [f"# {line}" if line else "#" for line in comment.split("\n")]


def render_entry(entry: Entry) -> str:
    """Render one entry as a single ``[export ]KEY=VALUE`` line.

    Comments are not included; see render() for document output.

    Raises:
        UnsafeRenderError: If the line would not re-parse to the same key
            and value.
    """
    prefix = "export " if entry.has_export else ""
    line = f"{prefix}{entry.key}={format_value(entry)}"

    reparsed = parse_assignment(line)
    if reparsed is None or reparsed.key != entry.key or reparsed.value != entry.value:
        raise UnsafeRenderError(entry.key)
    return line


def _entry_lines(entry: Entry, options: RenderOptions) -> list[str]:
    lines: list[str] = []
    if options.include_comments and entry.comment is not None:
        comment_lines = format_comment(entry.comment)
        # A comment must never re-parse as a block delimiter.
        if any(is_block_delimiter(line) for line in comment_lines):
            raise UnsafeRenderError(entry.key)
        lines.extend(comment_lines)
    lines.append(render_entry(entry))
    return lines


def _keep_raw(line: str, options: RenderOptions) -> bool:
    if not options.compact:
        return True
    if not line.strip():
        return False
    if line.lstrip().startswith("#") and not is_block_delimiter(line):
        return False
    return True


def _join(lines: list[str]) -> str:
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def _ordered_entries(entries: tuple[Entry, ...], order: tuple[str, ...]) -> list[Entry]:
    by_key = {entry.key: entry for entry in entries}
    result = [by_key[key] for key in dict.fromkeys(order) if key in by_key]
    listed = {entry.key for entry in result}
    result.extend(entry for entry in entries if entry.key not in listed)
    return result


def _render_interleaved(document: ParsedDocument, options: RenderOptions) -> list[str]:
    lines: list[str] = []
    by_key = {entry.key: entry for entry in document.entries}
    emitted: set[str] = set()
    used_raw: set[int] = set()

    for item in document.layout:
        if isinstance(item, int):
            if 0 <= item < len(document.raw_lines) and item not in used_raw:
                used_raw.add(item)
                raw = document.raw_lines[item]
                if _keep_raw(raw, options):
                    lines.append(raw)
        elif item in by_key and item not in emitted:
            emitted.add(item)
            lines.extend(_entry_lines(by_key[item], options))

    # Entries added after parsing and raw lines with no layout slot go last.
    for entry in document.entries:
        if entry.key not in emitted:
            emitted.add(entry.key)
            lines.extend(_entry_lines(entry, options))
    for index, raw in enumerate(document.raw_lines):
        if index not in used_raw and _keep_raw(raw, options):
            lines.append(raw)

    return lines


def render(document: ParsedDocument, options: RenderOptions | None = None) -> str:
    """Render a document back to text.

    Without an explicit order, entries and raw lines come out where the
    parser found them. With ``options.order`` entries are emitted first in
    that order and raw lines follow.

    Returns:
        The document text, ending in a newline unless empty.
    """
    options = options or RenderOptions()
    lines: list[str] = []

    if options.header:
        lines.extend(format_comment(options.header))
        lines.append("")

    if options.order is not None:
        for entry in _ordered_entries(document.entries, options.order):
            lines.extend(_entry_lines(entry, options))
        lines.extend(raw for raw in document.raw_lines if _keep_raw(raw, options))
    else:
        lines.extend(_render_interleaved(document, options))

    return _join(lines)


def render_entries(entries: Iterable[Entry], options: RenderOptions | None = None) -> str:
    """Render a bare entry list in the given order."""
    return render(ParsedDocument(entries=tuple(entries)), options)


def render_entries_simple(entries: Iterable[Entry], include_comments: bool = True) -> str:
    """Render entries sorted by key, with no raw-line passthrough.

    Used for snapshots and scratch files where output must be identical
    across runs regardless of input order.
    """
    options = RenderOptions(include_comments=include_comments)
    ordered = sorted(entries, key=lambda entry: entry.key)
    return _join([line for entry in ordered for line in _entry_lines(entry, options)])


def render_mapping(data: Mapping[str, str]) -> str:
    """Render a plain key/value mapping, sorted by key."""
    return render_entries_simple(entries_from_dict(dict(data)))


__all__ = [
    "escape_double",
    "escape_single",
    "effective_quote_style",
    "format_value",
    "format_comment",
    "render_entry",
    "render",
    "render_entries",
    "render_entries_simple",
    "render_mapping",
]
