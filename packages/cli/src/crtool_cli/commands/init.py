"""init command: write a starter configuration file."""

from __future__ import annotations

import click
from rich.console import Console

from crtool_core.config import DEFAULT_CONFIG, write_config

console = Console()

DEFAULT_CONFIG_PATH = "~/.cr-tool/config.yml"


@click.command("init")
@click.option(
    "--path",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Where to write the config file.",
)
def init_cmd(config_path: str):
    """Create a config file with your API key and model.

    Existing keys in the file are preserved; only the answers given here are
    written over them.
    """
    console.print("\n[bold cyan]cr init[/bold cyan]: configuration setup\n")

    api_key = click.prompt("API key", hide_input=True, default="", show_default=False).strip()
    if not api_key:
        raise click.UsageError("API key must not be empty.")

    model_name = click.prompt("Model name", default=DEFAULT_CONFIG["model_name"])
    base_url = click.prompt("Endpoint URL", default=DEFAULT_CONFIG["base_url"])
    formats = click.prompt(
        "Report formats (comma separated: markdown, html, pdf)",
        default=",".join(DEFAULT_CONFIG["output"]["format"]),
    )

    config = {
        "api_key": api_key,
        "model_name": model_name,
        "base_url": base_url,
        "output": {
            "dir": DEFAULT_CONFIG["output"]["dir"],
            "format": [f.strip() for f in formats.split(",") if f.strip()],
        },
        "cache": dict(DEFAULT_CONFIG["cache"]),
    }

    try:
        path = write_config(config_path, config)
    except OSError as e:
        raise click.ClickException(f"Could not write config file: {e}")
    console.print(f"[green]Created {path}[/green]")
    console.print("Run a review with: [bold]git diff | cr review[/bold]")
