"""Glue between click commands and the async ContentWorkflow.

Commands never build collaborators themselves: they ask for a workflow
(with or without an assessor) and hand a coroutine to ``run``, which maps
workflow errors onto click's error reporting.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Awaitable, TypeVar

import click

from doclens_core.errors import DoclensError, PersistenceError
from doclens_core.sources.filesystem import FileSystemSource
from doclens_core.workflow import BatchResult, ContentWorkflow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_workflow(ctx: click.Context, with_assessor: bool = True) -> ContentWorkflow:
    """Assemble a ContentWorkflow from ``ctx.obj``.

    Commands that only read the database (status, costs, discover) pass
    ``with_assessor=False`` so they work without an API key. Otherwise one
    assessor is built per operation; the improve assessor is only separate
    when the config picks a different provider or model for rewrites.
    """
    from doclens_core.config import resolve_model_options
    from doclens_core.providers import get_assessor

    config = ctx.obj["config"]
    assessor = improve_assessor = None
    if with_assessor:
        review_options = resolve_model_options(config, "review")
        improve_options = resolve_model_options(config, "improve")
        for provider, _ in (review_options, improve_options):
            _require_api_key(config, provider)
        try:
            assessor = get_assessor(config, "review")
            if improve_options != review_options:
                improve_assessor = get_assessor(config, "improve")
        except (ImportError, ValueError) as e:
            raise click.UsageError(str(e))

    return ContentWorkflow(
        store=ctx.obj["store"],
        source=FileSystemSource(config["content_dir"], config["extensions"]),
        assessor=assessor,
        improve_assessor=improve_assessor,
        target_scores=config.get("target_scores"),
        batch_size=int(config["batch_size"]),
        review_delay=float(config["review_delay"]),
        improve_delay=float(config["improve_delay"]),
    )


def _require_api_key(config: dict, provider: str) -> None:
    if provider == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if provider == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")


def run(coro: Awaitable[T]) -> T:
    """Run a workflow coroutine, reporting expected failures without a traceback."""
    try:
        return asyncio.run(coro)
    except PersistenceError as e:
        raise click.ClickException(f"Content database error: {e}")
    except (DoclensError, FileNotFoundError) as e:
        raise click.ClickException(str(e))


def display_path(identifier: str) -> str:
    """Show identifiers relative to the working directory when possible."""
    try:
        return os.path.relpath(identifier)
    except ValueError:
        # Different drive on Windows.
        return identifier


def print_batch_result(console, label: str, result: BatchResult) -> None:
    summary = result.summary
    colour = "green" if not summary.failed else "yellow"
    console.print(
        f"[{colour}]{label}: {summary.succeeded}/{summary.total} succeeded, "
        f"{summary.failed} failed ({summary.duration:.1f}s)[/{colour}]"
    )
    for failure in result.failed:
        console.print(f"  [red]✗[/red] {display_path(failure.identifier)}: {failure.error}")
