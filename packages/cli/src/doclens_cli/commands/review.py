"""review command: score every document awaiting review."""

from __future__ import annotations

import click
from rich.console import Console

from doclens_cli.runtime import build_workflow, print_batch_result, run

console = Console()


@click.command("review")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Documents scored concurrently.")
@click.option("--estimate", is_flag=True, help="Only print the estimated cost; make no AI calls.")
@click.pass_context
def review_cmd(ctx, batch_size: int | None, estimate: bool):
    """Score all content with status needs_review.

    \b
    Required environment variables:
      ANTHROPIC_API_KEY    Required when provider is anthropic
      OPENAI_API_KEY       Required when provider is openai
    """
    workflow = build_workflow(ctx)

    async def _estimate():
        await workflow.initialize()
        return len(workflow.content_needing_review()), await workflow.estimate_review_cost()

    if estimate:
        pending, cost = run(_estimate())
        if cost is None:
            console.print("[yellow]The configured provider cannot estimate costs.[/yellow]")
        else:
            console.print(f"Estimated cost to review {pending} document(s): [bold]${cost:.4f}[/bold]")
        return

    async def _review():
        await workflow.initialize()
        return await workflow.review_all_batch(batch_size)

    result = run(_review())
    if not result.summary.total:
        console.print("[dim]Nothing needs review. Run `doclens discover` to pick up new files.[/dim]")
        return
    print_batch_result(console, "Review", result)
