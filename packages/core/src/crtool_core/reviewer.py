"""Core review orchestration.

    validate config → validate input → cache lookup
        hit:  → assemble history
        miss: → remote review → cache store (best-effort) → assemble history

Everything after the remote review is enrichment: a failure to read git
metadata or compute stats is logged and replaced by an empty value, so a
successful review always produces a ReviewHistory.
"""

from __future__ import annotations

import logging
from typing import Callable

from crtool_core.cache import ContentCache
from crtool_core.config import resolve_template, validate_config
from crtool_core.errors import CacheWriteError, EmptyInputError, InputTooLargeError, RemoteReviewError
from crtool_core.git import get_source_info
from crtool_core.models import ReviewHistory, ReviewRequest, ReviewStats, SourceInfo
from crtool_core.providers.base import BaseReviewer
from crtool_core.providers.openai import get_reviewer
from crtool_core.stats import analyze_stats

logger = logging.getLogger(__name__)

HISTORY_ID_LENGTH = 8


class Reviewer:
    """Turns a diff into a ReviewHistory.

    All collaborators are injectable so tests (and other front-ends) can swap
    the cache, the remote provider, or the git metadata source.
    """

    def __init__(
        self,
        config: dict,
        cache: ContentCache | None = None,
        provider: BaseReviewer | None = None,
        source_info: Callable[[], SourceInfo] | None = None,
    ):
        self.config = config
        self.cache = cache if cache is not None else ContentCache(config)
        self._provider = provider
        self._source_info = source_info or get_source_info

    @property
    def provider(self) -> BaseReviewer:
        # Built lazily so config validation always runs before the SDK client exists.
        if self._provider is None:
            self._provider = get_reviewer(self.config)
        return self._provider

    def review(self, diff_text: str) -> ReviewHistory:
        validate_config(self.config)
        request = self._validate_input(diff_text)

        result = self.cache.get(request.content)
        if result is not None:
            logger.info("Using cached review for %s", request.fingerprint[:HISTORY_ID_LENGTH])
            return self._assemble_history(request, result, cached=True)

        result = self._remote_review(request)

        try:
            self.cache.set(request.content, result)
        except CacheWriteError as e:
            logger.warning("Could not save review to cache: %s", e)

        return self._assemble_history(request, result, cached=False)

    def _validate_input(self, diff_text: str) -> ReviewRequest:
        if not diff_text or not diff_text.strip():
            raise EmptyInputError()
        request = ReviewRequest.from_text(diff_text)
        limit = (self.config.get("review") or {}).get("max_diff_size")
        if limit and request.size > limit:
            raise InputTooLargeError(request.size, limit)
        return request

    def _remote_review(self, request: ReviewRequest) -> str:
        system_prompt = resolve_template(self.config)
        logger.info("Requesting review from %s (%d bytes)", self.config.get("model_name"), request.size)
        try:
            return self.provider.review(system_prompt, request.content)
        except RemoteReviewError:
            raise
        except Exception as e:
            raise RemoteReviewError(str(e)) from e

    def _assemble_history(self, request: ReviewRequest, result: str, cached: bool) -> ReviewHistory:
        output_cfg = self.config.get("output") or {}

        source_info = None
        if output_cfg.get("include_git_info", True):
            try:
                source_info = self._source_info()
            except Exception as e:
                logger.warning("Could not read git information: %s", e)

        stats = None
        if output_cfg.get("include_stats", True):
            ignore_patterns = (self.config.get("review") or {}).get("ignore_patterns") or []
            try:
                stats = analyze_stats(request.content, result, ignore_patterns)
            except Exception as e:
                logger.warning("Could not analyze review statistics: %s", e)
                stats = ReviewStats.empty()

        return ReviewHistory(
            id=request.fingerprint[:HISTORY_ID_LENGTH],
            result=result,
            source_info=source_info,
            stats=stats,
            cached=cached,
        )
