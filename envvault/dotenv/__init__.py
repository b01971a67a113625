"""Dotenv document model for envvault.

This package contains:
- models: Entry, ParsedDocument, ManagedBlock, DiffResult and options
- parser: Text to ParsedDocument (strict and lenient)
- renderer: ParsedDocument or entries back to text
- managed_block: Generator-owned (environment, service) regions
- diff: Value-free comparison, merge and summaries
"""

from envvault.dotenv.diff import (
    compact_summary,
    diff,
    diff_mappings,
    format_markdown,
    format_safe_summary,
    has_changes,
    merge,
    one_line_summary,
    unsafe_format_masked_diff,
)
from envvault.dotenv.exceptions import (
    DotenvError,
    DuplicateKeyError,
    InvalidBlockNameError,
    UnsafeRenderError,
)
from envvault.dotenv.managed_block import extract, find_all, insert, remove
from envvault.dotenv.models import (
    BlockPosition,
    DiffFormatOptions,
    DiffResult,
    Entry,
    ManagedBlock,
    ParsedDocument,
    QuoteStyle,
    RenderOptions,
    create_entry,
    update_entry_value,
)
from envvault.dotenv.parser import parse, parse_lenient
from envvault.dotenv.renderer import render, render_entries, render_entries_simple, render_entry

__all__ = [
    # Models
    "BlockPosition",
    "DiffFormatOptions",
    "DiffResult",
    "Entry",
    "ManagedBlock",
    "ParsedDocument",
    "QuoteStyle",
    "RenderOptions",
    "create_entry",
    "update_entry_value",
    # Exceptions
    "DotenvError",
    "DuplicateKeyError",
    "InvalidBlockNameError",
    "UnsafeRenderError",
    # Parser
    "parse",
    "parse_lenient",
    # Renderer
    "render",
    "render_entry",
    "render_entries",
    "render_entries_simple",
    # Managed blocks
    "extract",
    "find_all",
    "insert",
    "remove",
    # Diff
    "diff",
    "diff_mappings",
    "merge",
    "has_changes",
    "format_safe_summary",
    "format_markdown",
    "one_line_summary",
    "compact_summary",
    "unsafe_format_masked_diff",
]
