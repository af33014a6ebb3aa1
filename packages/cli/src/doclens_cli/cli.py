"""CLI entry point for doclens.

Commands:
  discover  track new content files in the database
  review    score every document awaiting review
  improve   rewrite the worst-scoring documents
  workflow  discover, review and improve in one run
  status    summarize the content database
  costs     report AI spend per document and in total
  init      interactive setup wizard writing .doclens.yml
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from doclens_cli.commands.costs import costs_cmd
from doclens_cli.commands.discover import discover_cmd
from doclens_cli.commands.improve import improve_cmd
from doclens_cli.commands.init import init_cmd
from doclens_cli.commands.review import review_cmd
from doclens_cli.commands.status import status_cmd
from doclens_cli.commands.workflow import workflow_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .doclens.yml settings.

    Store selection:
      store: memory → MemoryStore   (dry run, nothing written)
      (default)     → JSONFileStore (db_path, default .doclens/content-db.json)

    This factory lives in cli.py so neither doclens_core nor doclens_store
    know about the CLI config format.
    """
    from doclens_store.json_file import JSONFileStore

    store_type = config.get("store", "json")

    if store_type == "memory":
        from doclens_store.memory import MemoryStore

        console.print("[yellow]Using in-memory store: results will not be saved.[/yellow]")
        return MemoryStore()

    if store_type != "json":
        console.print(f"[yellow]Unknown store {store_type!r}. Falling back to the JSON file store.[/yellow]")
    return JSONFileStore(db_path=config["db_path"])


def _version() -> str:
    try:
        return importlib.metadata.version("doclens")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


@click.group()
@click.version_option(version=_version(), prog_name="doclens")
@click.option(
    "--config",
    "config_path",
    default=".doclens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="DOCLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI-assisted content quality workflow for markdown documentation."""
    from doclens_core.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.call_on_close(store.close)


main.add_command(discover_cmd)
main.add_command(review_cmd)
main.add_command(improve_cmd)
main.add_command(workflow_cmd)
main.add_command(status_cmd)
main.add_command(costs_cmd)
main.add_command(init_cmd)
