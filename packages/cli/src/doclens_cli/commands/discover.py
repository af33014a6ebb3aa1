"""discover command: start tracking new content files."""

from __future__ import annotations

import click
from rich.console import Console

from doclens_cli.runtime import build_workflow, display_path, run

console = Console()


@click.command("discover")
@click.pass_context
def discover_cmd(ctx):
    """Add every untracked content file to the database as needing review.

    Discovery makes no AI calls, so it is free to run as often as you like.
    """
    workflow = build_workflow(ctx, with_assessor=False)

    async def _discover():
        await workflow.initialize()
        return await workflow.discover_and_report()

    result = run(_discover())
    if not result.successful:
        console.print("[dim]No new content found.[/dim]")
        return
    console.print(f"[green]Discovered {len(result.successful)} new file(s):[/green]")
    for identifier in result.successful:
        console.print(f"  {display_path(identifier)}")
