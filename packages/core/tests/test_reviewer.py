"""Tests for the review orchestration in crtool_core.reviewer."""

from __future__ import annotations

import copy
from unittest.mock import MagicMock

import pytest

from crtool_core.cache import ContentCache
from crtool_core.config import DEFAULT_CONFIG
from crtool_core.errors import (
    CacheWriteError,
    ConfigError,
    EmptyInputError,
    InputTooLargeError,
    RemoteReviewError,
    SourceInfoError,
)
from crtool_core.models import SourceInfo, fingerprint
from crtool_core.reviewer import Reviewer

DIFF = "diff --git a/app.py b/app.py\n+print('hi')\n-print('bye')\n"
REVIEW = "## 主要问题\n1. 打印语句（低）\n"


def _config(tmp_path, **overrides) -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["api_key"] = "sk-test"
    config["cache"]["dir"] = str(tmp_path / "cache")
    config.update(overrides)
    return config


def _source_info():
    return SourceInfo(branch="main", commit_hash="abc123", commit_message="init", author="dev", changed_files=["app.py"])


def _reviewer(config, provider=None, cache=None, source_info=_source_info):
    if provider is None:
        provider = MagicMock()
        provider.review.return_value = REVIEW
    return Reviewer(config, cache=cache, provider=provider, source_info=source_info)


# ---------------------------------------------------------------------------
# Pre-flight validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_missing_api_key_raises_config_error(self, tmp_path):
        config = _config(tmp_path, api_key=None)
        reviewer = _reviewer(config)
        with pytest.raises(ConfigError):
            reviewer.review(DIFF)
        reviewer.provider.review.assert_not_called()

    def test_unknown_template_without_default_raises_config_error(self, tmp_path):
        config = _config(tmp_path)
        config["review"]["template"] = "strict"
        config["review"]["templates"] = {}
        with pytest.raises(ConfigError):
            _reviewer(config).review(DIFF)

    @pytest.mark.parametrize("diff", ["", "   \n\t\n"])
    def test_empty_input_never_reaches_provider(self, tmp_path, diff):
        reviewer = _reviewer(_config(tmp_path))
        with pytest.raises(EmptyInputError):
            reviewer.review(diff)
        reviewer.provider.review.assert_not_called()
        assert not (tmp_path / "cache").exists()

    def test_oversized_input_raises(self, tmp_path):
        config = _config(tmp_path)
        config["review"]["max_diff_size"] = 10
        reviewer = _reviewer(config)

        with pytest.raises(InputTooLargeError) as exc_info:
            reviewer.review(DIFF)

        assert exc_info.value.limit == 10
        assert exc_info.value.size == len(DIFF.encode("utf-8"))
        reviewer.provider.review.assert_not_called()

    def test_size_measured_in_utf8_bytes(self, tmp_path):
        config = _config(tmp_path)
        config["review"]["max_diff_size"] = 5
        # Two characters, six bytes.
        with pytest.raises(InputTooLargeError):
            _reviewer(config).review("中文")

    def test_zero_limit_disables_size_check(self, tmp_path):
        config = _config(tmp_path)
        config["review"]["max_diff_size"] = 0
        history = _reviewer(config).review(DIFF * 100)
        assert history.result == REVIEW


# ---------------------------------------------------------------------------
# Cache interaction
# ---------------------------------------------------------------------------


class TestCaching:
    def test_miss_calls_provider_and_stores_result(self, tmp_path):
        config = _config(tmp_path)
        reviewer = _reviewer(config)

        history = reviewer.review(DIFF)

        assert history.result == REVIEW
        assert history.cached is False
        reviewer.provider.review.assert_called_once()
        system_prompt, diff_text = reviewer.provider.review.call_args.args
        assert "主要问题" in system_prompt
        assert diff_text == DIFF
        assert ContentCache(config).get(DIFF) == REVIEW

    def test_hit_skips_provider(self, tmp_path):
        config = _config(tmp_path)
        ContentCache(config).set(DIFF, "cached review")
        reviewer = _reviewer(config)

        history = reviewer.review(DIFF)

        assert history.result == "cached review"
        assert history.cached is True
        reviewer.provider.review.assert_not_called()

    def test_second_review_of_same_diff_is_cached(self, tmp_path):
        reviewer = _reviewer(_config(tmp_path))
        first = reviewer.review(DIFF)
        second = reviewer.review(DIFF)

        assert first.result == second.result
        assert second.cached is True
        assert reviewer.provider.review.call_count == 1

    def test_disabled_cache_always_calls_provider(self, tmp_path):
        config = _config(tmp_path)
        config["cache"]["enabled"] = False
        reviewer = _reviewer(config)

        reviewer.review(DIFF)
        reviewer.review(DIFF)

        assert reviewer.provider.review.call_count == 2

    def test_cache_write_failure_is_logged_not_raised(self, tmp_path, caplog):
        cache = MagicMock()
        cache.get.return_value = None
        cache.set.side_effect = CacheWriteError("disk full")
        reviewer = _reviewer(_config(tmp_path), cache=cache)

        with caplog.at_level("WARNING", logger="crtool_core.reviewer"):
            history = reviewer.review(DIFF)

        assert history.result == REVIEW
        assert "disk full" in caplog.text

    def test_remote_failure_leaves_cache_untouched(self, tmp_path):
        config = _config(tmp_path)
        provider = MagicMock()
        provider.review.side_effect = RemoteReviewError("503")
        reviewer = _reviewer(config, provider=provider)

        with pytest.raises(RemoteReviewError):
            reviewer.review(DIFF)

        assert ContentCache(config).get(DIFF) is None


# ---------------------------------------------------------------------------
# Remote errors
# ---------------------------------------------------------------------------


class TestRemoteErrors:
    def test_unexpected_provider_exception_wrapped(self, tmp_path):
        provider = MagicMock()
        provider.review.side_effect = ValueError("bad payload")

        with pytest.raises(RemoteReviewError, match="bad payload") as exc_info:
            _reviewer(_config(tmp_path), provider=provider).review(DIFF)

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_provider_built_lazily_from_config(self, tmp_path, mocker):
        fake = MagicMock()
        fake.review.return_value = REVIEW
        get_reviewer = mocker.patch("crtool_core.reviewer.get_reviewer", return_value=fake)
        reviewer = Reviewer(_config(tmp_path), source_info=_source_info)

        get_reviewer.assert_not_called()
        reviewer.review(DIFF)
        get_reviewer.assert_called_once()


# ---------------------------------------------------------------------------
# History assembly
# ---------------------------------------------------------------------------


class TestHistory:
    def test_id_is_fingerprint_prefix(self, tmp_path):
        history = _reviewer(_config(tmp_path)).review(DIFF)
        assert history.id == fingerprint(DIFF)[:8]
        assert len(history.id) == 8

    def test_source_info_and_stats_attached(self, tmp_path):
        history = _reviewer(_config(tmp_path)).review(DIFF)

        assert history.source_info.branch == "main"
        assert history.stats.files_changed == 1
        assert history.stats.lines_added == 1
        assert history.stats.lines_deleted == 1
        assert history.stats.issues_by_level == {"low": 1}

    def test_source_info_failure_degrades_to_none(self, tmp_path, caplog):
        def broken():
            raise SourceInfoError("not a git repository")

        with caplog.at_level("WARNING", logger="crtool_core.reviewer"):
            history = _reviewer(_config(tmp_path), source_info=broken).review(DIFF)

        assert history.source_info is None
        assert history.result == REVIEW
        assert "not a git repository" in caplog.text

    def test_stats_failure_degrades_to_empty(self, tmp_path, mocker):
        mocker.patch("crtool_core.reviewer.analyze_stats", side_effect=RuntimeError("boom"))

        history = _reviewer(_config(tmp_path)).review(DIFF)

        assert history.stats is not None
        assert history.stats.files_changed == 0
        assert history.stats.common_issues == []

    def test_git_info_disabled(self, tmp_path):
        config = _config(tmp_path)
        config["output"]["include_git_info"] = False
        source_info = MagicMock()

        history = _reviewer(config, source_info=source_info).review(DIFF)

        assert history.source_info is None
        source_info.assert_not_called()

    def test_stats_disabled(self, tmp_path):
        config = _config(tmp_path)
        config["output"]["include_stats"] = False
        history = _reviewer(config).review(DIFF)
        assert history.stats is None

    def test_ignore_patterns_passed_to_stats(self, tmp_path):
        config = _config(tmp_path)
        config["review"]["ignore_patterns"] = ["*.py"]
        history = _reviewer(config).review(DIFF)
        assert history.stats.files_changed == 0
