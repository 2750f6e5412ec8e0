"""Review data models.

Everything here is a plain dataclass so the export layer and the CLI can
consume a ReviewHistory without knowing how it was produced.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fingerprint(content: str) -> str:
    """Return the lowercase hex SHA-256 of the exact UTF-8 bytes of ``content``."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ReviewRequest:
    """A diff submitted for review. Built once per invocation, never mutated."""

    content: str
    size: int
    fingerprint: str

    @classmethod
    def from_text(cls, text: str) -> ReviewRequest:
        return cls(content=text, size=len(text.encode("utf-8")), fingerprint=fingerprint(text))


@dataclass
class CacheEntry:
    """One cached review, stored as ``<fingerprint>.json``."""

    fingerprint: str
    content: str
    result: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "result": self.result,
            "datetime": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, key: str, d: dict) -> CacheEntry:
        """Build an entry from its JSON form.

        Raises KeyError, TypeError or ValueError on a malformed payload; the
        cache treats all three as a corrupt entry.
        """
        created_at = datetime.fromisoformat(d["datetime"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        content = d["content"]
        result = d["result"]
        if not isinstance(content, str) or not isinstance(result, str):
            raise TypeError("cache entry content and result must be strings")
        return cls(fingerprint=key, content=content, result=result, created_at=created_at)


@dataclass
class ReviewStats:
    """Counts derived from the diff and the review prose."""

    files_changed: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    issues_by_level: dict[str, int] = field(default_factory=dict)
    common_issues: list[str] = field(default_factory=list)
    computed_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def empty(cls) -> ReviewStats:
        return cls()

    def to_dict(self) -> dict:
        return {
            "files_changed": self.files_changed,
            "lines_added": self.lines_added,
            "lines_deleted": self.lines_deleted,
            "issues_by_level": dict(self.issues_by_level),
            "common_issues": list(self.common_issues),
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass
class SourceInfo:
    """Git metadata of the working directory the diff came from."""

    branch: str = ""
    commit_hash: str = ""
    commit_message: str = ""
    author: str = ""
    changed_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "branch": self.branch,
            "commit_hash": self.commit_hash,
            "commit_message": self.commit_message,
            "author": self.author,
            "changed_files": list(self.changed_files),
        }


@dataclass
class ReviewHistory:
    """The finished review handed to every exporter.

    ``id`` is the first 8 hex characters of the diff fingerprint, so two
    reviews of the same diff share an id.
    """

    id: str
    result: str
    source_info: SourceInfo | None = None
    stats: ReviewStats | None = None
    created_at: datetime = field(default_factory=_utcnow)
    cached: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "git_info": self.source_info.to_dict() if self.source_info else None,
            "stats": self.stats.to_dict() if self.stats else None,
            "result": self.result,
            "datetime": self.created_at.isoformat(),
            "cached": self.cached,
        }
