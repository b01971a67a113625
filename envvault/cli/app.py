"""CLI interface for envvault.

This module provides the Typer-based command-line interface. Commands
print key names and counts only; values are shown (masked) solely by
``diff --unsafe-show-masked-values``.
"""

import stat
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from envvault import REQUIRED_SOPS_VERSION
from envvault.cli.pull import pull
from envvault.config.manager import ConfigManager
from envvault.config.project import load_project_config
from envvault.dotenv.diff import (
    compact_summary,
    diff,
    format_markdown,
    format_safe_summary,
    unsafe_format_masked_diff,
)
from envvault.dotenv.managed_block import find_all, remove
from envvault.dotenv.models import BlockPosition, DiffFormatOptions, entries_to_dict
from envvault.dotenv.parser import parse
from envvault.dotenv.renderer import render
from envvault.integrations.git import find_repo_root
from envvault.integrations.sops import SopsAdapter, version_at_least
from envvault.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_success,
    print_warning,
    show_version,
)
from envvault.utils.errors import EnvVaultError, ExitCode, UserCancelledError
from envvault.utils.files import atomic_write_text
from envvault.utils.logging import setup_logging

app = typer.Typer(
    name="envvault",
    help="Manage encrypted per-environment dotenv files",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


@contextmanager
def handle_errors() -> Iterator[None]:
    """Map envvault errors to messages and exit codes."""
    try:
        yield
    except UserCancelledError as e:
        print_info(str(e))
        raise typer.Exit(ExitCode.USER_CANCELLED) from None
    except EnvVaultError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from None
    except KeyboardInterrupt:
        print_info("Operation cancelled by user")
        raise typer.Exit(ExitCode.USER_CANCELLED) from None


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise EnvVaultError(f"File not found: {path}") from None


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """Manage encrypted per-environment dotenv files."""
    setup_logging()


@app.command("pull")
def pull_command(
    env: Annotated[
        str,
        typer.Option("--env", "-e", help="Environment to pull (e.g. dev)"),
    ],
    service: Annotated[
        Optional[list[str]],
        typer.Option("--service", "-s", help="Service to pull (repeatable, default: all)"),
    ] = None,
    position: Annotated[
        Optional[str],
        typer.Option("--position", help="Where new blocks go: top or bottom"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would change without writing"),
    ] = False,
    project_dir: Annotated[
        Optional[Path],
        typer.Option("--project-dir", help="Project root (default: repository root)"),
    ] = None,
) -> None:
    """Decrypt secrets and write them into each service's managed block."""
    with handle_errors():
        config = ConfigManager()
        settings = config.load()

        root = project_dir or find_repo_root() or Path.cwd()
        project = load_project_config(root)

        try:
            block_position = BlockPosition(position or settings.block_position)
        except ValueError:
            raise EnvVaultError(
                f"Invalid position: {position}. Must be 'top' or 'bottom'"
            ) from None

        backend = SopsAdapter(
            sops_path=settings.sops_path,
            age_key_file=settings.age_key_file or None,
        )
        sops_version = backend.get_version()
        if sops_version and not version_at_least(sops_version, REQUIRED_SOPS_VERSION):
            print_warning(
                f"sops {sops_version} is older than the supported {REQUIRED_SOPS_VERSION}"
            )

        results = pull(
            project,
            settings,
            backend,
            env,
            services=service,
            repo_name=root.name,
            position=block_position,
            dry_run=dry_run,
        )

        options = DiffFormatOptions(show_unchanged=settings.show_unchanged, colorize=True)
        for result in results:
            print_header(f"{result.service} ({env})")
            if result.error is not None:
                print_error(result.error)
                continue
            console.print(format_safe_summary(result.diff, options))
            if result.overridden_keys:
                print_info(f"Local overrides: {', '.join(result.overridden_keys)}")
            if result.missing_keys:
                print_warning(f"Missing required keys: {', '.join(result.missing_keys)}")
            if dry_run:
                print_info(f"Dry run: {result.output_path} not written")
            elif result.written:
                print_success(f"Updated {result.output_path} ({compact_summary(result.diff)})")
            else:
                print_success(f"{result.output_path} is up to date")

        failed = [result.service for result in results if result.error is not None]
        if failed:
            raise EnvVaultError(f"Failed to pull: {', '.join(failed)}")


@app.command("diff")
def diff_command(
    old: Annotated[Path, typer.Argument(help="Original dotenv file")],
    new: Annotated[Path, typer.Argument(help="Updated dotenv file")],
    show_unchanged: Annotated[
        bool,
        typer.Option("--show-unchanged", help="Also list unchanged keys"),
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="One line per change category"),
    ] = False,
    markdown: Annotated[
        bool,
        typer.Option("--markdown", help="Output a Markdown summary"),
    ] = False,
    unsafe_show_masked_values: Annotated[
        bool,
        typer.Option(
            "--unsafe-show-masked-values",
            help="UNSAFE: print partially masked values for changed keys",
        ),
    ] = False,
) -> None:
    """Compare two dotenv files by key, without printing values.

    Both files are parsed strictly, managed blocks included, so a key
    declared more than once anywhere in a file is an error.
    """
    with handle_errors():
        old_entries = parse(_read_file(old)).entries
        new_entries = parse(_read_file(new)).entries
        result = diff(old_entries, new_entries)

        if markdown:
            console.print(format_markdown(result, show_unchanged=show_unchanged), markup=False)
        else:
            options = DiffFormatOptions(
                show_unchanged=show_unchanged,
                colorize=True,
                compact=compact,
            )
            console.print(format_safe_summary(result, options))

        if unsafe_show_masked_values:
            print_warning("Showing masked values. Do not share this output.")
            console.print(
                unsafe_format_masked_diff(
                    result,
                    entries_to_dict(old_entries),
                    entries_to_dict(new_entries),
                ),
                markup=False,
            )


@app.command("blocks")
def blocks_command(
    file: Annotated[Path, typer.Argument(help="Dotenv file to inspect")],
) -> None:
    """List the managed blocks in a file."""
    with handle_errors():
        blocks = find_all(_read_file(file))
        if not blocks:
            print_info(f"No managed blocks in {file}")
            return

        table = Table(title=str(file))
        table.add_column("Environment")
        table.add_column("Service")
        table.add_column("Lines", justify="right")
        table.add_column("Keys", justify="right")
        for block in blocks:
            table.add_row(
                block.environment,
                block.service,
                f"{block.start_line}-{block.end_line}",
                str(len(block.entries)),
            )
        console.print(table)


@app.command("remove-block")
def remove_block_command(
    file: Annotated[Path, typer.Argument(help="Dotenv file to edit")],
    env: Annotated[str, typer.Option("--env", "-e", help="Block environment")],
    service: Annotated[str, typer.Option("--service", "-s", help="Block service")],
) -> None:
    """Delete one managed block from a file."""
    with handle_errors():
        text = _read_file(file)
        updated = remove(text, env, service)
        if updated == text:
            raise EnvVaultError(f"No managed block env={env} service={service} in {file}")

        atomic_write_text(file, updated, mode=stat.S_IMODE(file.stat().st_mode))
        print_success(f"Removed block env={env} service={service} from {file}")


@app.command("fmt")
def fmt_command(
    file: Annotated[Path, typer.Argument(help="Dotenv file to normalize")],
    check: Annotated[
        bool,
        typer.Option("--check", help="Exit non-zero if the file would change"),
    ] = False,
) -> None:
    """Normalize quoting and line endings of a dotenv file.

    The whole file is parsed strictly, managed blocks included, so a key
    declared both by hand and inside a block (or in two blocks) is reported
    as a duplicate and the file is left untouched.
    """
    with handle_errors():
        text = _read_file(file)
        formatted = render(parse(text))

        if formatted == text:
            print_success(f"{file} is already formatted")
            return

        if check:
            print_warning(f"{file} would be reformatted")
            raise typer.Exit(ExitCode.GENERAL_ERROR)

        atomic_write_text(file, formatted, mode=stat.S_IMODE(file.stat().st_mode))
        print_success(f"Formatted {file}")


__all__ = ["app"]
