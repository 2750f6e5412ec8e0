"""Content-addressed review cache.

One JSON file per diff, named after the SHA-256 of the diff text:

    <cache.dir>/<fingerprint>.json  →  {"content": ..., "result": ..., "datetime": ...}

Keying on the content hash means two reviews of the same diff always hit the
same file, so concurrent writers can race without harm: whichever writes last
stores an identical content/result pair. No locking is done.

Reads are deliberately forgiving. A missing, corrupt, mismatched or expired
entry is simply a miss; only writes report failures, and the reviewer logs
those instead of aborting.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from crtool_core.errors import CacheReadError, CacheWriteError
from crtool_core.models import CacheEntry, fingerprint

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ContentCache:
    def __init__(self, config: dict):
        cache_cfg = config.get("cache") or {}
        self.enabled: bool = bool(cache_cfg.get("enabled", True))
        self.dir = Path(cache_cfg.get("dir") or "./.cache/code_review")
        self.expiry = timedelta(days=cache_cfg.get("expire_days", 7))

    def path_for(self, content: str) -> Path:
        return self.dir / f"{fingerprint(content)}{_SUFFIX}"

    def get(self, content: str) -> str | None:
        """Return the cached review for ``content`` or None on any kind of miss."""
        if not self.enabled:
            return None

        path = self.path_for(content)
        entry = self._read_entry(path)
        if entry is None:
            return None

        if self._is_expired(entry):
            logger.debug("Cache entry %s expired; removing it.", path.name)
            self._remove(path)
            return None

        # Guards against a hash collision or a truncated/hand-edited file.
        if entry.content != content:
            logger.debug("Cache entry %s does not match the request content; ignoring it.", path.name)
            return None

        logger.debug("Cache hit for %s", path.name)
        return entry.result

    def set(self, content: str, result: str) -> None:
        """Persist a review. Raises CacheWriteError if the entry cannot be written."""
        if not self.enabled:
            return

        key = fingerprint(content)
        entry = CacheEntry(fingerprint=key, content=content, result=result, created_at=_now())
        path = self.dir / f"{key}{_SUFFIX}"
        try:
            self.dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(entry.to_dict(), ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise CacheWriteError(f"could not write cache entry {path}: {e}") from e

    def clean(self) -> int:
        """Delete corrupt and expired entries and return how many were removed.

        Independent of get/set; meant to be run on demand (``cr cache clean``).
        """
        if not self.enabled or not self.dir.exists():
            return 0

        try:
            files = sorted(p for p in self.dir.iterdir() if p.is_file() and p.suffix == _SUFFIX)
        except OSError as e:
            raise CacheReadError(f"could not list cache directory {self.dir}: {e}") from e

        removed = 0
        for path in files:
            entry = self._read_entry(path)
            if entry is None or self._is_expired(entry):
                if self._remove(path):
                    removed += 1
        logger.info("Removed %d stale cache entr%s from %s", removed, "y" if removed == 1 else "ies", self.dir)
        return removed

    def _is_expired(self, entry: CacheEntry) -> bool:
        return _now() - entry.created_at > self.expiry

    @staticmethod
    def _read_entry(path: Path) -> CacheEntry | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read cache entry %s: %s", path, e)
            return None
        try:
            data = json.loads(raw)
            return CacheEntry.from_dict(path.stem, data)
        except (ValueError, KeyError, TypeError) as e:
            logger.debug("Corrupt cache entry %s: %s", path, e)
            return None

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove cache entry %s: %s", path, e)
            return False
