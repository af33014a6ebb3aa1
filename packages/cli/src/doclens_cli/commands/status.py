"""status command: summarize the content database."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from doclens_cli.runtime import build_workflow, display_path, run

console = Console()


@click.command("status")
@click.pass_context
def status_cmd(ctx):
    """Show how much content is in each lifecycle stage."""
    workflow = build_workflow(ctx, with_assessor=False)
    run(workflow.initialize())
    status = workflow.get_status()

    table = Table(title="Content Status", show_header=True)
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("[yellow]needs_review[/yellow]", str(status.needs_review))
    table.add_row("[blue]needs_improvement[/blue]", str(status.needs_improvement))
    table.add_row("[green]meets_targets[/green]", str(status.meets_targets))
    table.add_row("total", str(status.total))
    console.print(table)

    if status.average_score > 0:
        console.print(f"  Average score:  {status.average_score:.1f}/10")
    if status.worst_scoring:
        console.print(f"  Lowest scoring: {display_path(status.worst_scoring)}")

    # --- Next steps ---
    if status.needs_review:
        console.print(f"\nNext: [bold]doclens review[/bold] to score {status.needs_review} file(s)")
    elif status.needs_improvement:
        console.print(f"\nNext: [bold]doclens improve[/bold] ({status.needs_improvement} file(s) below target)")
    elif status.total:
        console.print("\n[green]All content meets its targets.[/green]")
    else:
        console.print("\n[dim]No content tracked yet. Run `doclens discover`.[/dim]")
