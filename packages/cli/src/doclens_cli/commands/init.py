"""init command: interactive setup wizard.

Why an init wizard:
- Runs once and writes .doclens.yml, so every later command (and every
  teammate who clones the repo) shares the same provider, content
  directory and database location.
- Puts the content database next to the content by default, so it can be
  committed and reviewed alongside the documents it tracks.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up doclens for this repository by writing .doclens.yml."""
    config_path = Path((ctx.obj or {}).get("config_path", ".doclens.yml"))
    console.print("\n[bold cyan]doclens init[/bold cyan]: setup wizard\n")

    # --- Choose provider ---
    provider = click.prompt(
        "AI provider",
        type=click.Choice(["anthropic", "openai"]),
        default="anthropic",
    )
    api_key_env = "ANTHROPIC_API_KEY" if provider == "anthropic" else "OPENAI_API_KEY"

    # --- Content location ---
    content_dir = click.prompt("Content directory", default="content")
    if not Path(content_dir).is_dir():
        console.print(f"[yellow]{content_dir} does not exist yet; create it before running discover.[/yellow]")
    db_path = click.prompt("Content database path", default=".doclens/content-db.json")

    config: dict = {"provider": provider, "content_dir": content_dir, "db_path": db_path}
    _write_config(config_path, config)
    console.print(f"[green]Wrote {config_path}[/green]")

    console.print(f"\n[yellow]Remember to export [bold]{api_key_env}[/bold] before reviewing.[/yellow]")
    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Start with: [bold]doclens discover[/bold], then [bold]doclens review[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
