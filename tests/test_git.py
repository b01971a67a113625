"""Tests for envvault.integrations.git module."""

import subprocess
from unittest.mock import patch

import pytest

from envvault.integrations.git import (
    GitAdapter,
    ensure_gitignore_pattern,
    find_repo_root,
    has_gitignore_pattern,
)
from envvault.integrations.protocols import VersionControl
from envvault.utils.errors import ExitCode, GitOperationError


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestFindRepoRoot:
    """Tests for find_repo_root."""

    def test_finds_parent_with_git(self, tmp_path):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_repo_root(nested) == tmp_path.resolve()

    def test_git_file_counts(self, tmp_path):
        """Worktrees and submodules use a .git file."""
        (tmp_path / ".git").write_text("gitdir: /elsewhere\n")

        assert find_repo_root(tmp_path) == tmp_path.resolve()


class TestGitignorePatterns:
    """Tests for .gitignore pattern helpers."""

    def test_exact_line_match(self):
        assert has_gitignore_pattern("node_modules\n.env.local\n", ".env.local") is True

    def test_substring_does_not_match(self):
        assert has_gitignore_pattern("*.env.local.bak\n", ".env.local") is False

    def test_commented_line_does_not_match(self):
        assert has_gitignore_pattern("# .env.local\n", ".env.local") is False

    def test_whitespace_tolerated(self):
        assert has_gitignore_pattern("  .env.local  \n", ".env.local") is True

    def test_ensure_creates_file(self, tmp_path):
        path = tmp_path / ".gitignore"

        assert ensure_gitignore_pattern(path, ".env") is True
        assert path.read_text() == ".env\n"

    def test_ensure_adds_missing_newline(self, tmp_path):
        path = tmp_path / ".gitignore"
        path.write_text("dist")

        ensure_gitignore_pattern(path, ".env")

        assert path.read_text() == "dist\n.env\n"


class TestGitAdapter:
    """Tests for GitAdapter subprocess calls."""

    def test_is_version_control(self, tmp_path):
        assert isinstance(GitAdapter(tmp_path), VersionControl)

    @patch("envvault.integrations.git.subprocess.run")
    def test_runs_in_cwd(self, mock_run, tmp_path):
        mock_run.return_value = _completed(stdout="true\n")

        assert GitAdapter(tmp_path).is_repo() is True
        assert mock_run.call_args[0][0] == ["git", "rev-parse", "--is-inside-work-tree"]
        assert mock_run.call_args[1]["cwd"] == tmp_path

    @patch("envvault.integrations.git.subprocess.run")
    def test_not_a_repo(self, mock_run, tmp_path):
        mock_run.return_value = _completed(stderr="fatal: not a git repository", returncode=128)

        assert GitAdapter(tmp_path).is_repo() is False

    @patch("envvault.integrations.git.subprocess.run")
    def test_git_missing(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError()
        adapter = GitAdapter(tmp_path)

        assert adapter.is_repo() is False
        with pytest.raises(GitOperationError) as exc_info:
            adapter.add(["a.txt"])

        assert exc_info.value.exit_code == ExitCode.GIT_ERROR

    @patch("envvault.integrations.git.subprocess.run")
    def test_detached_head(self, mock_run, tmp_path):
        mock_run.return_value = _completed(stdout="HEAD\n")

        assert GitAdapter(tmp_path).get_branch() is None

    @patch("envvault.integrations.git.subprocess.run")
    def test_status(self, mock_run, tmp_path):
        porcelain = "M  staged.txt\n M modified.txt\nMM both.txt\n?? new.txt\nR  old.txt -> renamed.txt\n"
        mock_run.side_effect = [
            _completed(stdout="true\n"),
            _completed(stdout=porcelain),
            _completed(stdout="main\n"),
        ]

        status = GitAdapter(tmp_path).status()

        assert status.is_repo is True
        assert status.is_clean is False
        assert status.branch == "main"
        assert status.staged == ["staged.txt", "both.txt", "renamed.txt"]
        assert status.modified == ["modified.txt", "both.txt"]
        assert status.untracked == ["new.txt"]

    @patch("envvault.integrations.git.subprocess.run")
    def test_status_outside_repo(self, mock_run, tmp_path):
        mock_run.return_value = _completed(returncode=128)

        status = GitAdapter(tmp_path).status()

        assert status.is_repo is False
        assert mock_run.call_count == 1

    @patch("envvault.integrations.git.subprocess.run")
    def test_file_at_head(self, mock_run, tmp_path):
        mock_run.return_value = _completed(stdout="A=1\n")

        assert GitAdapter(tmp_path).get_file_at_head(".env") == "A=1\n"
        assert mock_run.call_args[0][0] == ["git", "show", "HEAD:.env"]

    @patch("envvault.integrations.git.subprocess.run")
    def test_file_missing_at_head(self, mock_run, tmp_path):
        mock_run.return_value = _completed(returncode=128)

        assert GitAdapter(tmp_path).get_file_at_head(".env") is None

    @patch("envvault.integrations.git.subprocess.run")
    def test_commit(self, mock_run, tmp_path):
        mock_run.side_effect = [
            _completed(),
            _completed(),
            _completed(stdout="abc123\n"),
        ]

        revision = GitAdapter(tmp_path).commit("Update secrets", files=["secrets/dev/api.sops.yaml"])

        assert revision == "abc123"
        commands = [call[0][0] for call in mock_run.call_args_list]
        assert commands == [
            ["git", "add", "--", "secrets/dev/api.sops.yaml"],
            ["git", "commit", "-m", "Update secrets"],
            ["git", "rev-parse", "HEAD"],
        ]

    @patch("envvault.integrations.git.subprocess.run")
    def test_commit_failure(self, mock_run, tmp_path):
        mock_run.return_value = _completed(stderr="nothing to commit\n", returncode=1)

        with pytest.raises(GitOperationError, match="git commit failed \\(exit code 1\\): nothing to commit"):
            GitAdapter(tmp_path).commit("msg")

    def test_add_to_gitignore(self, tmp_path):
        adapter = GitAdapter(tmp_path)

        assert adapter.add_to_gitignore(".env.local") is True
        assert adapter.add_to_gitignore(".env.local") is False
