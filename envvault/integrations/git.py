"""Git adapter for envvault.

Thin subprocess wrapper around the ``git`` binary. Every command runs in
the adapter's working directory and failures raise GitOperationError.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from envvault.utils.errors import GitOperationError
from envvault.utils.logging import log_command


def find_repo_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default CWD) to the directory holding .git."""
    current = (start or Path.cwd()).resolve()
    while True:
        if (current / ".git").exists():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def has_gitignore_pattern(content: str, pattern: str) -> bool:
    """Check whether a .gitignore text contains ``pattern`` as its own line.

    Commented-out lines and patterns that merely contain ``pattern`` as a
    substring do not count.
    """
    for line in content.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and stripped == pattern:
            return True
    return False


def ensure_gitignore_pattern(gitignore_path: Path, pattern: str) -> bool:
    """Append ``pattern`` to a .gitignore file unless it is already listed.

    Returns:
        True if the pattern was added, False if it was already present.
    """
    content = gitignore_path.read_text(encoding="utf-8") if gitignore_path.exists() else ""
    if has_gitignore_pattern(content, pattern):
        return False

    if content and not content.endswith("\n"):
        content += "\n"
    gitignore_path.write_text(f"{content}{pattern}\n", encoding="utf-8")
    return True


@dataclass
class GitStatus:
    """Summary of ``git status --porcelain``.

    Attributes:
        is_repo: Whether the directory is inside a git work tree
        is_clean: No staged, modified or untracked files
        branch: Current branch name, or None when detached or not a repo
        staged: Paths with changes in the index
        modified: Paths with unstaged changes in the work tree
        untracked: Paths git does not track
    """

    is_repo: bool
    is_clean: bool = True
    branch: str | None = None
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)


class GitAdapter:
    """Runs git commands inside one working directory."""

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = cwd or Path.cwd()

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        try:
            result = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitOperationError("git is not installed or not on PATH") from e

        log_command(" ".join(command), result.returncode)
        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else "unknown error"
            raise GitOperationError(
                f"git {args[0]} failed (exit code {result.returncode}): {stderr}"
            )
        return result

    def is_repo(self) -> bool:
        try:
            result = self._run("rev-parse", "--is-inside-work-tree", check=False)
        except GitOperationError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def get_branch(self) -> str | None:
        """Return the current branch, or None when HEAD is detached."""
        result = self._run("rev-parse", "--abbrev-ref", "HEAD", check=False)
        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        return None if branch == "HEAD" else branch

    def status(self) -> GitStatus:
        """Collect branch and file state from ``git status --porcelain``."""
        if not self.is_repo():
            return GitStatus(is_repo=False)

        result = self._run("status", "--porcelain")
        staged: list[str] = []
        modified: list[str] = []
        untracked: list[str] = []

        for line in result.stdout.splitlines():
            if len(line) < 4:
                continue
            index_state, worktree_state, path = line[0], line[1], line[3:]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            if index_state == "?" and worktree_state == "?":
                untracked.append(path)
                continue
            if index_state not in (" ", "?"):
                staged.append(path)
            if worktree_state not in (" ", "?"):
                modified.append(path)

        return GitStatus(
            is_repo=True,
            is_clean=not (staged or modified or untracked),
            branch=self.get_branch(),
            staged=staged,
            modified=modified,
            untracked=untracked,
        )

    def get_file_at_head(self, path: str) -> str | None:
        """Return a file's committed content, or None if HEAD lacks it."""
        result = self._run("show", f"HEAD:{path}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout

    def is_tracked(self, path: str) -> bool:
        result = self._run("ls-files", "--error-unmatch", path, check=False)
        return result.returncode == 0

    def add(self, files: list[str]) -> None:
        if files:
            self._run("add", "--", *files)

    def commit(
        self,
        message: str,
        files: list[str] | tuple[str, ...] = (),
        allow_empty: bool = False,
    ) -> str:
        """Stage ``files``, commit, and return the new revision id."""
        self.add(list(files))
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._run(*args)
        return self._run("rev-parse", "HEAD").stdout.strip()

    def add_to_gitignore(self, pattern: str) -> bool:
        """Append ``pattern`` to the .gitignore in the working directory.

        Returns:
            True if the pattern was added, False if it was already present.
        """
        return ensure_gitignore_pattern(self.cwd / ".gitignore", pattern)


__all__ = [
    "find_repo_root",
    "has_gitignore_pattern",
    "ensure_gitignore_pattern",
    "GitStatus",
    "GitAdapter",
]
