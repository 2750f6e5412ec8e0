"""Read branch, last commit and changed files from the local git checkout."""

from __future__ import annotations

import logging
import subprocess

from crtool_core.errors import SourceInfoError
from crtool_core.models import SourceInfo

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 10
_COMMIT_FORMAT = "--pretty=format:%H|%s|%an"


def _git(*args: str, cwd: str | None = None) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise SourceInfoError("git executable not found") from e
    except subprocess.TimeoutExpired as e:
        raise SourceInfoError(f"git {' '.join(args)} timed out") from e

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        raise SourceInfoError(f"git {' '.join(args)} failed: {detail}")
    return result.stdout.strip()


def is_git_repo(cwd: str | None = None) -> bool:
    try:
        return _git("rev-parse", "--is-inside-work-tree", cwd=cwd) == "true"
    except SourceInfoError:
        return False


def parse_commit_line(line: str) -> tuple[str, str, str]:
    """Split ``<hash>|<subject>|<author>``. The subject may itself contain '|'."""
    commit_hash, sep, rest = line.partition("|")
    if not sep:
        return commit_hash, "", ""
    message, _, author = rest.rpartition("|")
    return commit_hash, message, author


def get_changed_files(cwd: str | None = None) -> list[str]:
    """Staged, unstaged and untracked files, de-duplicated and sorted."""
    outputs = [
        _git("diff", "--cached", "--name-only", cwd=cwd),
        _git("diff", "--name-only", cwd=cwd),
        _git("ls-files", "--others", "--exclude-standard", cwd=cwd),
    ]
    files = {name for out in outputs for name in out.splitlines() if name.strip()}
    return sorted(files)


def get_source_info(cwd: str | None = None) -> SourceInfo:
    """Return git metadata for ``cwd``. Raises SourceInfoError outside a repository."""
    if not is_git_repo(cwd):
        raise SourceInfoError("current directory is not a git repository")

    branch = _git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)
    commit_hash, message, author = parse_commit_line(_git("log", "-1", _COMMIT_FORMAT, cwd=cwd))
    changed = get_changed_files(cwd)
    logger.debug("Source info: %s@%s, %d changed file(s)", branch, commit_hash[:7], len(changed))
    return SourceInfo(
        branch=branch,
        commit_hash=commit_hash,
        commit_message=message,
        author=author,
        changed_files=changed,
    )
