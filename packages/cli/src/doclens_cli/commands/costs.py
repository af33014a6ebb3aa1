"""costs command: report AI spend recorded in the content database."""

from __future__ import annotations

import os

import click
from rich.console import Console
from rich.table import Table

from doclens_cli.runtime import build_workflow, display_path, run

console = Console()


@click.command("costs")
@click.option("--path", "path", default=None, help="Only report costs for this content file.")
@click.pass_context
def costs_cmd(ctx, path: str | None):
    """Show AI spend by operation type and by document."""
    workflow = build_workflow(ctx, with_assessor=False)
    run(workflow.initialize())

    identifier = os.path.abspath(path) if path else None
    if identifier is not None and identifier not in workflow.store.get_data().entries:
        raise click.UsageError(f"{path} is not tracked. Run `doclens discover` first.")

    summary = workflow.cost_summary(identifier)
    if not summary.total_operations:
        console.print("[yellow]No costs recorded yet.[/yellow]")
        return

    totals = Table(title="Cost Totals", show_header=True)
    totals.add_column("Operation", style="bold")
    totals.add_column("Cost (USD)", justify="right")
    totals.add_row("review", f"${summary.totals.review:.4f}")
    totals.add_row("improve", f"${summary.totals.improvement:.4f}")
    totals.add_row("generate", f"${summary.totals.generation:.4f}")
    totals.add_row("[bold]total[/bold]", f"[bold]${summary.totals.total:.4f}[/bold]")
    console.print(totals)
    console.print(f"  Operations recorded: {summary.total_operations}")
    if summary.average_cost_per_quality_point:
        console.print(f"  Avg cost per quality point: ${summary.average_cost_per_quality_point:.4f}")

    if identifier is None:
        per_entry = Table(title="Cost by Document", show_header=True)
        per_entry.add_column("Document")
        per_entry.add_column("Operations", justify="right")
        per_entry.add_column("Total (USD)", justify="right")
        ranked = sorted(summary.by_entry.items(), key=lambda item: item[1].total_cost, reverse=True)
        for key, accounting in ranked:
            per_entry.add_row(
                display_path(key),
                str(len(accounting.operation_history)),
                f"${accounting.total_cost:.4f}",
            )
        console.print(per_entry)
