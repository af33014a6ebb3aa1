"""improve command: rewrite the worst-scoring documents."""

from __future__ import annotations

import click
from rich.console import Console

from doclens_cli.runtime import build_workflow, display_path, print_batch_result, run

console = Console()


@click.command("improve")
@click.option("--count", type=click.IntRange(min=1), default=None, help="How many documents to improve.")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Documents improved concurrently.")
@click.pass_context
def improve_cmd(ctx, count: int | None, batch_size: int | None):
    """Improve the lowest-scoring reviewed content.

    Each rewrite is validated before it replaces the original file; a
    truncated or suspiciously short result is rejected and nothing changes.
    """
    config = ctx.obj["config"]
    count = count or int(config["improve_count"])
    workflow = build_workflow(ctx)

    async def _improve():
        await workflow.initialize()
        return await workflow.improve_worst_batch(count, batch_size)

    result = run(_improve())
    if not result.summary.total:
        console.print("[dim]No reviewed content needs improvement.[/dim]")
        return
    print_batch_result(console, "Improve", result)
    entries = workflow.store.get_data().entries
    for identifier in result.successful:
        entry = entries[identifier]
        score = entry.average_score()
        console.print(f"  [green]✓[/green] {display_path(identifier)}: {score:.1f} ({entry.status.value})")
