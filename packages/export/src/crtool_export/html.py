"""Self-contained HTML report.

Every piece of user-controlled text (git metadata, issue names, review
prose) goes through html.escape before it is placed in markup. The review
markdown is converted by a small line-oriented renderer that only emits tags
it generates itself.
"""

from __future__ import annotations

import re
from datetime import datetime
from html import escape
from typing import TYPE_CHECKING

from crtool_export.base import BaseExporter
from crtool_export.markdown import REPORT_TITLE, level_label

if TYPE_CHECKING:
    from crtool_core.models import ReviewHistory

_BASE_CSS = """
body { font-family: Arial, sans-serif; }
.container { margin: 20px; }
"""

_GITHUB_CSS = """
:root { --bg-color: #f6f8fa; --border-color: #d0d7de; }
body {
    font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Helvetica, Arial, sans-serif;
    line-height: 1.5; color: #24292f; margin: 0; padding: 20px;
}
.container {
    max-width: 1200px; margin: 0 auto; background: white; padding: 2rem;
    border-radius: 6px; box-shadow: 0 1px 3px rgba(0,0,0,0.12);
}
h1, h2, h3 { margin-top: 1.5em; margin-bottom: 1em; }
h1 { padding-bottom: .3em; border-bottom: 1px solid var(--border-color); }
.git-info table { border-collapse: collapse; }
.git-info td { padding: .5em 1em .5em 0; }
.stats-grid {
    display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
    gap: 1rem; margin: 1rem 0;
}
.stat-item {
    background: var(--bg-color); border: 1px solid var(--border-color);
    border-radius: 6px; padding: 1rem; text-align: center;
}
.stat-value { font-size: 2rem; font-weight: bold; }
.stat-label { color: #666; margin-top: 0.5rem; }
.issues-by-level { display: flex; gap: 1rem; margin: 1rem 0; }
.issue-level { padding: 0.5rem 1rem; border-radius: 6px; display: flex; gap: 0.5rem; align-items: center; }
.issue-level.high { background: #ffebe9; color: #cf222e; }
.issue-level.medium { background: #fff8c5; color: #9a6700; }
.issue-level.low { background: #ddf4ff; color: #0969da; }
.review-result { margin-top: 2rem; }
.markdown-body { background: white; padding: 1rem; border: 1px solid var(--border-color); border-radius: 6px; }
.footer { margin-top: 2rem; padding-top: 1rem; border-top: 1px solid var(--border-color); color: #666; font-size: 0.9rem; }
code, pre {
    background: var(--bg-color); border-radius: 3px; font-size: 85%;
    font-family: SFMono-Regular, Consolas, Liberation Mono, Menlo, monospace;
}
code { padding: 0.2em 0.4em; }
pre { padding: 1em; overflow-x: auto; }
"""

CSS_TEMPLATES = {"default": _BASE_CSS, "github": _GITHUB_CSS}

_ORDERED_ITEM_RE = re.compile(r"^\d+\.\s+")
_HEADINGS = (("### ", "h3"), ("## ", "h2"), ("# ", "h1"))


def markdown_to_html(text: str) -> str:
    """Convert review markdown to HTML: headings, lists, fenced code, paragraphs.

    Inline markup is not interpreted; every line is escaped as plain text.
    """
    out: list[str] = []
    open_list: str | None = None
    in_code = False

    def close_list() -> None:
        nonlocal open_list
        if open_list:
            out.append(f"</{open_list}>")
            open_list = None

    def open_list_of(tag: str) -> None:
        nonlocal open_list
        if open_list != tag:
            close_list()
            out.append(f"<{tag}>")
            open_list = tag

    for raw in text.split("\n"):
        if raw.strip().startswith("```"):
            if in_code:
                out.append("</code></pre>")
                in_code = False
            else:
                close_list()
                out.append("<pre><code>")
                in_code = True
            continue
        if in_code:
            out.append(escape(raw))
            continue

        line = raw.strip()
        if not line:
            close_list()
            continue

        for prefix, tag in _HEADINGS:
            if line.startswith(prefix):
                close_list()
                out.append(f"<{tag}>{escape(line[len(prefix):])}</{tag}>")
                break
        else:
            if line.startswith(("- ", "* ")):
                open_list_of("ul")
                out.append(f"<li>{escape(line[2:])}</li>")
            elif _ORDERED_ITEM_RE.match(line):
                open_list_of("ol")
                out.append(f"<li>{escape(_ORDERED_ITEM_RE.sub('', line, count=1))}</li>")
            else:
                close_list()
                out.append(f"<p>{escape(line)}</p>")

    close_list()
    if in_code:
        out.append("</code></pre>")
    return "\n".join(out)


class HTMLExporter(BaseExporter):
    FORMAT = "html"
    EXTENSION = "html"

    def css(self) -> str:
        name = self.output_cfg.get("css_template") or "github"
        return CSS_TEMPLATES.get(name, _BASE_CSS)

    def render(self, history: ReviewHistory) -> str:
        parts = [
            "<!DOCTYPE html>",
            '<html lang="zh-CN">',
            "<head>",
            '    <meta charset="UTF-8">',
            f"    <title>{REPORT_TITLE} {escape(history.id)}</title>",
            f"    <style>{self.css()}</style>",
            "</head>",
            "<body>",
            '<div class="container">',
            f"<h1>{REPORT_TITLE}</h1>",
        ]
        parts += self._git_section(history)
        parts += self._stats_section(history)
        parts += [
            '<div class="review-result">',
            "<h2>评审详情</h2>",
            '<div class="markdown-body">',
            markdown_to_html(history.result),
            "</div>",
            "</div>",
            f'<div class="footer">生成时间：{datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</div>',
            "</div>",
            "</body>",
            "</html>",
        ]
        return "\n".join(parts) + "\n"

    @staticmethod
    def _git_section(history: ReviewHistory) -> list[str]:
        info = history.source_info
        if info is None:
            return []
        rows = [
            ("分支", f"<code>{escape(info.branch)}</code>"),
            ("提交", f"<code>{escape(info.commit_hash)}</code>"),
            ("作者", escape(info.author)),
            ("提交信息", escape(info.commit_message)),
        ]
        return (
            ['<div class="git-info">', "<h2>Git 信息</h2>", "<table>"]
            + [f"<tr><td>{label}：</td><td>{value}</td></tr>" for label, value in rows]
            + ["</table>", "</div>"]
        )

    @staticmethod
    def _stats_section(history: ReviewHistory) -> list[str]:
        stats = history.stats
        if stats is None:
            return []
        items = [
            (stats.files_changed, "变更文件数"),
            (stats.lines_added, "新增行数"),
            (stats.lines_deleted, "删除行数"),
        ]
        parts = ['<div class="stats">', "<h2>变更统计</h2>", '<div class="stats-grid">']
        for value, label in items:
            parts.append(
                f'<div class="stat-item"><div class="stat-value">{value}</div>'
                f'<div class="stat-label">{label}</div></div>'
            )
        parts.append("</div>")

        if stats.issues_by_level:
            parts += ["<h3>问题级别统计</h3>", '<div class="issues-by-level">']
            for level, count in stats.issues_by_level.items():
                parts.append(
                    f'<div class="issue-level {escape(level)}">'
                    f'<span class="level-name">{escape(level_label(level))}</span>'
                    f'<span class="level-count">{count}</span></div>'
                )
            parts.append("</div>")

        if stats.common_issues:
            parts += ["<h3>常见问题</h3>", "<ol>"]
            parts += [f"<li>{escape(issue)}</li>" for issue in stats.common_issues]
            parts.append("</ol>")

        parts.append("</div>")
        return parts
