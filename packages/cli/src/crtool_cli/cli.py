"""CLI entry point for cr-tool.

Commands:
  review   review a diff read from stdin or a file and export reports
  init     write a starter config file with your API key
  cache    maintenance of the local review cache
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from crtool_cli.commands.cache import cache_cmd
from crtool_cli.commands.init import init_cmd
from crtool_cli.commands.review import review_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("cr-tool"),
    prog_name="cr",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the configuration file. Defaults to .cr-tool.yml, then ~/.cr-tool/config.yml.",
    envvar="CR_TOOL_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """AI-powered code review for git diffs.

    \b
    Examples:
      git diff | cr review                  review the working tree changes
      git diff main | cr review -f html     export an HTML report
      cr review --diff-file changes.patch -f markdown -f pdf
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(init_cmd)
main.add_command(cache_cmd)
