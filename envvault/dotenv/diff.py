"""Diff and merge for entry lists.

The comparison result (DiffResult) holds key names only, and every safe
formatter here accepts nothing but a DiffResult. A formatter therefore has
no value to leak.

unsafe_format_masked_diff() is the single exception: it takes the value
maps explicitly, masks them, and must only be reached behind an explicit
opt-in flag.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace

from envvault.dotenv.models import (
    ChangeCount,
    DiffFormatOptions,
    DiffResult,
    Entry,
    QuoteStyle,
    entries_to_dict,
)


def diff_mappings(old: Mapping[str, str], new: Mapping[str, str]) -> DiffResult:
    """Compare two key/value maps.

    An empty string is a value like any other: ``""`` vs ``"x"`` is a change.
    """
    old_keys = set(old)
    new_keys = set(new)
    common = old_keys & new_keys
    return DiffResult(
        added=tuple(sorted(new_keys - old_keys)),
        removed=tuple(sorted(old_keys - new_keys)),
        changed=tuple(sorted(key for key in common if old[key] != new[key])),
        unchanged=tuple(sorted(key for key in common if old[key] == new[key])),
    )


def diff(old_entries: Iterable[Entry], new_entries: Iterable[Entry]) -> DiffResult:
    """Compare two entry lists by key and value."""
    return diff_mappings(entries_to_dict(tuple(old_entries)), entries_to_dict(tuple(new_entries)))


def has_changes(result: DiffResult) -> bool:
    return bool(result.added or result.removed or result.changed)


def change_count(result: DiffResult) -> ChangeCount:
    return ChangeCount(
        added=len(result.added),
        removed=len(result.removed),
        changed=len(result.changed),
    )


def changed_keys(result: DiffResult) -> list[str]:
    """All added, removed and changed keys, sorted."""
    return sorted({*result.added, *result.removed, *result.changed})


def filter_entries_by_keys(entries: Iterable[Entry], keys: Iterable[str]) -> list[Entry]:
    wanted = set(keys)
    return [entry for entry in entries if entry.key in wanted]


def unique_entries(entries: Iterable[Entry]) -> list[Entry]:
    """Drop repeated keys, keeping the last occurrence in first position."""
    result: dict[str, Entry] = {}
    for entry in entries:
        result[entry.key] = entry
    return list(result.values())


def merge(base: Iterable[Entry], overlay: Iterable[Entry]) -> list[Entry]:
    """Overlay ``overlay`` on top of ``base``.

    Overlay values win. A key present in both keeps the base comment when
    the overlay has none, and keeps the base quoting when the overlay
    does not specify any. The result is sorted by key.
    """
    merged: dict[str, Entry] = {entry.key: entry for entry in base}

    for entry in overlay:
        existing = merged.get(entry.key)
        if existing is None:
            merged[entry.key] = entry
            continue
        merged[entry.key] = replace(
            entry,
            comment=entry.comment if entry.comment is not None else existing.comment,
            quote_style=(
                entry.quote_style
                if entry.quote_style is not QuoteStyle.NONE
                else existing.quote_style
            ),
            has_export=entry.has_export or existing.has_export,
        )

    return [merged[key] for key in sorted(merged)]


def _section(
    title: str,
    keys: tuple[str, ...],
    symbol: str,
    color: str,
    options: DiffFormatOptions,
) -> list[str]:
    if not keys:
        return []
    heading = f"{title} ({len(keys)}):"
    if options.compact:
        line = f"{heading} {', '.join(keys)}"
        return [f"[{color}]{line}[/{color}]" if options.colorize else line]
    if options.colorize:
        heading = f"[bold {color}]{heading}[/bold {color}]"
        items = [f"  [{color}]{symbol} {key}[/{color}]" for key in keys]
    else:
        items = [f"  {symbol} {key}" for key in keys]
    return [heading, *items]


def format_safe_summary(result: DiffResult, options: DiffFormatOptions | None = None) -> str:
    """Human-readable summary listing keys by change category.

    Example:
        Added (1):
          + NEW_KEY
        Changed (1):
          ~ API_URL
    """
    options = options or DiffFormatOptions()
    if not has_changes(result) and not (options.show_unchanged and result.unchanged):
        return "No changes detected."

    sections = [
        _section("Added", result.added, "+", "green", options),
        _section("Removed", result.removed, "-", "red", options),
        _section("Changed", result.changed, "~", "yellow", options),
    ]
    if options.show_unchanged:
        sections.append(_section("Unchanged", result.unchanged, "=", "dim", options))

    return "\n".join(line for section in sections for line in section)


def format_markdown(result: DiffResult, show_unchanged: bool = False) -> str:
    """Markdown summary suitable for a pull request description."""
    lines = ["## Environment Changes", ""]
    if not has_changes(result):
        lines.append("No changes detected.")
        return "\n".join(lines) + "\n"

    categories = [
        ("Added", result.added),
        ("Removed", result.removed),
        ("Changed", result.changed),
    ]
    if show_unchanged:
        categories.append(("Unchanged", result.unchanged))

    for title, keys in categories:
        if not keys:
            continue
        lines.append(f"### {title} ({len(keys)})")
        lines.append("")
        lines.extend(f"- `{key}`" for key in keys)
        lines.append("")

    return "\n".join(lines)


def one_line_summary(result: DiffResult) -> str:
    """Summary like ``3 changes: +1 -1 ~1``."""
    counts = change_count(result)
    if counts.total == 0:
        return "No changes"
    noun = "change" if counts.total == 1 else "changes"
    return f"{counts.total} {noun}: +{counts.added} -{counts.removed} ~{counts.changed}"


def compact_summary(result: DiffResult) -> str:
    """Summary like ``1 added, 2 removed``, omitting empty categories."""
    counts = change_count(result)
    parts = [
        f"{count} {label}"
        for count, label in (
            (counts.added, "added"),
            (counts.removed, "removed"),
            (counts.changed, "changed"),
        )
        if count
    ]
    return ", ".join(parts) if parts else "No changes"


def mask_value(value: str) -> str:
    """Mask a secret, keeping the first and last two characters.

    Values of four characters or fewer are masked entirely.
    """
    if len(value) <= 4:
        return "*" * len(value)
    return f"{value[:2]}****{value[-2:]}"


def unsafe_format_masked_diff(
    result: DiffResult,
    old_values: Mapping[str, str],
    new_values: Mapping[str, str],
    mask: Callable[[str], str] = mask_value,
) -> str:
    """Format a diff with masked values.

    UNSAFE: this is the only formatter that sees values. Partial values are
    still printed, so callers must gate it behind an explicit flag.
    """
    lines: list[str] = []
    lines.extend(f"+ {key}={mask(new_values[key])}" for key in result.added)
    lines.extend(f"- {key}={mask(old_values[key])}" for key in result.removed)
    lines.extend(
        f"~ {key}: {mask(old_values[key])} -> {mask(new_values[key])}" for key in result.changed
    )
    if not lines:
        return "No changes detected."
    return "\n".join(lines)


__all__ = [
    "diff",
    "diff_mappings",
    "has_changes",
    "change_count",
    "changed_keys",
    "filter_entries_by_keys",
    "unique_entries",
    "merge",
    "format_safe_summary",
    "format_markdown",
    "one_line_summary",
    "compact_summary",
    "mask_value",
    "unsafe_format_masked_diff",
]
