"""Line-oriented statistics over a unified diff and the review prose."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable

from crtool_core.models import ReviewStats

logger = logging.getLogger(__name__)

_FILE_HEADER = "diff --git"
_SECTION_MARKER = "##"
_ISSUES_HEADINGS = ("主要问题", "Main Issues")
_ISSUE_MARKERS = ("1.", "2.")

# Severity → keywords that flag it inside the issues section.
SEVERITY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "high": ("严重", "High"),
    "medium": ("中等", "Medium"),
    "low": ("低", "Low"),
}


def is_ignored(filename: str, patterns: Iterable[str]) -> bool:
    """Return True if filename matches any ignore pattern (case-sensitive glob)."""
    return any(fnmatch.fnmatchcase(filename, pattern) for pattern in patterns)


def _file_from_header(line: str) -> str | None:
    # "diff --git a/src/foo.py b/src/foo.py" → "src/foo.py"
    parts = line.split(" ")
    if len(parts) < 4:
        return None
    path = parts[3]
    return path[2:] if path.startswith("b/") else path


def analyze_stats(diff_text: str, review_text: str, ignore_patterns: Iterable[str] = ()) -> ReviewStats:
    """Count changed files and lines in the diff, and issues in the review.

    Never raises: anything that does not look like a header or a +/- line is
    ignored, so malformed input degrades to partial or zero counts.

    Ignored files are left out of ``files_changed`` only. Their added and
    deleted lines still count, matching the plain line-prefix scan.
    """
    patterns = list(ignore_patterns or ())
    stats = ReviewStats()

    changed_files: set[str] = set()
    for line in (diff_text or "").split("\n"):
        if line.startswith(_FILE_HEADER):
            current_file = _file_from_header(line)
            if current_file and not is_ignored(current_file, patterns):
                changed_files.add(current_file)
        elif line.startswith("+") and not line.startswith("+++"):
            stats.lines_added += 1
        elif line.startswith("-") and not line.startswith("---"):
            stats.lines_deleted += 1
    stats.files_changed = len(changed_files)

    for section in (review_text or "").split(_SECTION_MARKER):
        section = section.strip()
        if not section.startswith(_ISSUES_HEADINGS):
            continue

        # Coarse signal: each severity counts at most once per section.
        for level, keywords in SEVERITY_KEYWORDS.items():
            if any(keyword in section for keyword in keywords):
                stats.issues_by_level[level] = stats.issues_by_level.get(level, 0) + 1

        for line in section.split("\n"):
            for marker in _ISSUE_MARKERS:
                if line.startswith(marker):
                    issue = line[len(marker) :].strip()
                    if issue:
                        stats.common_issues.append(issue)
                    break

    logger.debug(
        "Diff stats: %d file(s), +%d -%d, issues=%s",
        stats.files_changed,
        stats.lines_added,
        stats.lines_deleted,
        stats.issues_by_level,
    )
    return stats
