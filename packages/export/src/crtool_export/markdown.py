"""Markdown report. The review text is embedded verbatim, with no escaping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from crtool_export.base import BaseExporter

if TYPE_CHECKING:
    from crtool_core.models import ReviewHistory

REPORT_TITLE = "代码评审报告"

# Display names for the severity keys produced by crtool_core.stats.
LEVEL_LABELS = {"high": "严重", "medium": "中等", "low": "低"}


def level_label(level: str) -> str:
    return LEVEL_LABELS.get(level, level)


class MarkdownExporter(BaseExporter):
    FORMAT = "markdown"
    EXTENSION = "md"

    def render(self, history: ReviewHistory) -> str:
        lines = [f"# {REPORT_TITLE}", ""]

        info = history.source_info
        if info is not None:
            lines += [
                "## Git 信息",
                "",
                f"- 分支: `{info.branch}`",
                f"- 提交: `{info.commit_hash}`",
                f"- 作者: {info.author}",
                f"- 提交信息: {info.commit_message}",
                "",
            ]

        stats = history.stats
        if stats is not None:
            lines += [
                "## 变更统计",
                "",
                f"- 变更文件数: {stats.files_changed}",
                f"- 新增行数: {stats.lines_added}",
                f"- 删除行数: {stats.lines_deleted}",
                "",
            ]
            if stats.issues_by_level:
                lines += ["### 问题级别统计", ""]
                lines += [f"- {level_label(level)}: {count}" for level, count in stats.issues_by_level.items()]
                lines.append("")
            if stats.common_issues:
                lines += ["### 常见问题", ""]
                lines += [f"{i}. {issue}" for i, issue in enumerate(stats.common_issues, 1)]
                lines.append("")

        lines += ["## 评审详情", ""]
        return "\n".join(lines) + "\n" + history.result
