"""cache command group: maintenance of the local review cache."""

from __future__ import annotations

import click
from rich.console import Console

from crtool_core.errors import CrToolError

console = Console()


@click.group("cache")
def cache_cmd():
    """Manage the local review cache."""


@cache_cmd.command("clean")
@click.pass_context
def clean_cmd(ctx):
    """Delete expired and corrupt cache entries."""
    from crtool_core.cache import ContentCache
    from crtool_core.config import load_config

    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        config = load_config(config_path)
        cache = ContentCache(config)
        if not cache.enabled:
            console.print("[yellow]Cache is disabled; nothing to clean.[/yellow]")
            return
        removed = cache.clean()
    except CrToolError as e:
        raise click.ClickException(str(e))

    console.print(f"Removed {removed} cache entr{'y' if removed == 1 else 'ies'} from {cache.dir}.")
