"""Tests for git metadata collection. subprocess is mocked throughout."""

import subprocess
from unittest.mock import MagicMock

import pytest

from crtool_core.errors import SourceInfoError
from crtool_core.git import get_changed_files, get_source_info, is_git_repo, parse_commit_line


def _completed(stdout="", returncode=0, stderr=""):
    result = MagicMock()
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


def _fake_git(outputs: dict):
    """Return a subprocess.run replacement that answers by git subcommand args."""

    def run(cmd, **kwargs):
        key = tuple(cmd[1:])
        if key not in outputs:
            raise AssertionError(f"unexpected git call: {cmd}")
        return outputs[key]

    return run


REPO_OUTPUTS = {
    ("rev-parse", "--is-inside-work-tree"): _completed("true\n"),
    ("rev-parse", "--abbrev-ref", "HEAD"): _completed("feature/login\n"),
    ("log", "-1", "--pretty=format:%H|%s|%an"): _completed("abc123|Fix login|bug|Alice\n"),
    ("diff", "--cached", "--name-only"): _completed("src/a.py\n"),
    ("diff", "--name-only"): _completed("src/b.py\nsrc/a.py\n"),
    ("ls-files", "--others", "--exclude-standard"): _completed("new.txt\n"),
}


class TestParseCommitLine:
    def test_simple_line(self):
        assert parse_commit_line("abc|Initial commit|Bob") == ("abc", "Initial commit", "Bob")

    def test_subject_containing_separator(self):
        assert parse_commit_line("abc|a|b|Bob") == ("abc", "a|b", "Bob")

    def test_hash_only(self):
        assert parse_commit_line("abc") == ("abc", "", "")


class TestGetSourceInfo:
    def test_collects_branch_commit_and_files(self, mocker):
        mocker.patch("crtool_core.git.subprocess.run", side_effect=_fake_git(REPO_OUTPUTS))

        info = get_source_info()

        assert info.branch == "feature/login"
        assert info.commit_hash == "abc123"
        assert info.commit_message == "Fix login|bug"
        assert info.author == "Alice"
        assert info.changed_files == ["new.txt", "src/a.py", "src/b.py"]

    def test_outside_repository_raises(self, mocker):
        mocker.patch(
            "crtool_core.git.subprocess.run",
            return_value=_completed(returncode=128, stderr="fatal: not a git repository"),
        )
        with pytest.raises(SourceInfoError, match="not a git repository"):
            get_source_info()

    def test_failing_subcommand_raises(self, mocker):
        outputs = dict(REPO_OUTPUTS)
        outputs[("log", "-1", "--pretty=format:%H|%s|%an")] = _completed(
            returncode=128, stderr="fatal: bad default revision 'HEAD'"
        )
        mocker.patch("crtool_core.git.subprocess.run", side_effect=_fake_git(outputs))
        with pytest.raises(SourceInfoError, match="bad default revision"):
            get_source_info()


class TestGitErrors:
    def test_missing_git_binary_is_not_a_repo(self, mocker):
        mocker.patch("crtool_core.git.subprocess.run", side_effect=FileNotFoundError("git"))
        assert is_git_repo() is False

    def test_timeout_raises_source_info_error(self, mocker):
        mocker.patch(
            "crtool_core.git.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="git", timeout=10),
        )
        with pytest.raises(SourceInfoError, match="timed out"):
            get_changed_files()

    def test_cwd_passed_through(self, mocker):
        run = mocker.patch("crtool_core.git.subprocess.run", return_value=_completed("true\n"))
        is_git_repo(cwd="/tmp/repo")
        assert run.call_args.kwargs["cwd"] == "/tmp/repo"
