"""workflow command: discover, review and improve in one run."""

from __future__ import annotations

import click
from rich.console import Console

from doclens_cli.runtime import build_workflow, print_batch_result, run

console = Console()


@click.command("workflow")
@click.option("--count", type=click.IntRange(min=0), default=None, help="How many documents to improve.")
@click.pass_context
def workflow_cmd(ctx, count: int | None):
    """Run the complete content workflow.

    Phases run strictly in order: a phase never starts before the previous
    one's results are saved.
    """
    config = ctx.obj["config"]
    improve_count = count if count is not None else int(config["improve_count"])
    workflow = build_workflow(ctx)

    async def _run():
        await workflow.initialize()
        return await workflow.run_full_workflow(improve_count=improve_count)

    report = run(_run())
    console.print(f"[bold]Discovered[/bold] {report.discovery.summary.succeeded} new file(s)")
    print_batch_result(console, "Review", report.review)
    print_batch_result(console, "Improve", report.improvement)
