"""review command: review a diff and export the reports."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markdown import Markdown

from crtool_core.errors import CrToolError
from crtool_core.reviewer import Reviewer
from crtool_export.factory import export_history

console = Console()


def _read_diff(diff_file: str | None) -> str:
    if diff_file:
        with open(diff_file, "rb") as f:
            raw = f.read()
        source = diff_file
    else:
        stdin = click.get_binary_stream("stdin")
        if stdin.isatty():
            raise click.UsageError("Pipe a diff into cr (e.g. `git diff | cr review`) or pass --diff-file.")
        raw = stdin.read()
        source = "stdin"
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise click.ClickException(
            f"Diff from {source} is not valid UTF-8 (byte offset {e.start}). Binary changes cannot be reviewed."
        )


@click.command("review")
@click.option(
    "--diff-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the diff from this file instead of stdin.",
)
@click.option("--output", "-o", "output_dir", default=None, help="Report output directory. Overrides config file.")
@click.option(
    "--format",
    "-f",
    "formats",
    multiple=True,
    help="Report format (markdown, html, pdf). Repeatable. Overrides config file.",
)
@click.option("--template", default=None, help="Review template name from the config file.")
@click.option("--no-cache", is_flag=True, help="Skip the review cache for this run.")
@click.pass_context
def review_cmd(
    ctx,
    diff_file: str | None,
    output_dir: str | None,
    formats: tuple[str, ...],
    template: str | None,
    no_cache: bool,
):
    """Review a unified diff with the configured model.

    \b
    Required configuration (config file or environment):
      CR_TOOL_API_KEY      API key for the review endpoint
      CR_TOOL_MODEL_NAME   model name (default: qwen-plus)
      CR_TOOL_BASE_URL     OpenAI-compatible endpoint (default: DashScope)
    """
    from crtool_core.config import load_config

    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        config = load_config(
            config_path,
            cli_overrides={
                "output.dir": output_dir,
                "output.format": list(formats) or None,
                "review.template": template,
                "cache.enabled": False if no_cache else None,
            },
        )
    except CrToolError as e:
        raise click.ClickException(str(e))

    diff_text = _read_diff(diff_file)

    try:
        with console.status("Reviewing changes..."):
            history = Reviewer(config).review(diff_text)
    except CrToolError as e:
        raise click.ClickException(f"Code review failed: {e}")

    if history.cached:
        console.print("[dim]Using cached review result.[/dim]")
    console.print(Markdown(history.result))

    requested = config["output"].get("format") or []
    artifacts = export_history(history, requested, config)
    for artifact in artifacts:
        console.print(f"[green]Report saved to {artifact.path}[/green]")

    failed = len(requested) - len(artifacts)
    if failed:
        console.print(f"[yellow]{failed} report format(s) could not be exported; see the log above.[/yellow]")
