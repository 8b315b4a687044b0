"""CLI commands for the manual review queue.

Provides commands for listing, claiming, resolving and annotating review items.
"""

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from uuid import UUID

import click

from ..review.errors import ReviewQueueError
from ..review.models import ReviewItem, ReviewItemFilter, ReviewPriority, ReviewStatus
from ..review.queue import ReviewQueue, get_review_queue
from ..review.selection import sort_queue


def _run(action: Callable[[ReviewQueue], Awaitable[None]]) -> None:
    """Run an async command against the queue, reporting domain errors."""

    async def _main() -> None:
        queue = get_review_queue()
        try:
            await action(queue)
        finally:
            await queue.close()

    try:
        asyncio.run(_main())
    except ReviewQueueError as e:
        click.echo(f"Error [{e.error_code}]: {e.message}", err=True)
        sys.exit(1)


def _parse_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise click.BadParameter(f"Not a valid id: {value}") from None


def _echo_item(item: ReviewItem, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(item.model_dump(mode="json"), indent=2))
        return
    click.echo(f"Review item: {item.id}")
    click.echo(f"  Calculation: {item.calculation_id}")
    click.echo(f"  Priority: {item.priority.value}")
    click.echo(f"  Status: {item.status.value}")
    click.echo(f"  Assigned to: {item.assigned_to or '-'}")
    click.echo(f"  Created: {item.created_at}")
    if item.notes:
        click.echo("  Notes:")
        for line in item.notes.splitlines():
            click.echo(f"    {line}")


@click.group("review")
def review_group() -> None:
    """Work the manual review queue."""
    pass


@review_group.command("list")
@click.option("--status", "-s", type=click.Choice([s.value for s in ReviewStatus]), help="Filter by status")
@click.option("--priority", "-p", type=click.Choice([p.value for p in ReviewPriority]), help="Filter by priority")
@click.option("--assigned-to", "-a", help="Filter by reviewer")
@click.option("--unassigned", is_flag=True, help="Only unassigned items")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_items(
    status: str | None,
    priority: str | None,
    assigned_to: str | None,
    unassigned: bool,
    as_json: bool,
) -> None:
    """List review items in queue order."""

    async def _list(queue: ReviewQueue) -> None:
        items = sort_queue(
            await queue.list_items(
                ReviewItemFilter(
                    status=ReviewStatus(status) if status else None,
                    priority=ReviewPriority(priority) if priority else None,
                    assigned_to=assigned_to,
                    unassigned_only=unassigned,
                )
            )
        )

        if as_json:
            data = {
                "items": [item.model_dump(mode="json") for item in items],
                "count": len(items),
            }
            click.echo(json.dumps(data, indent=2))
        else:
            click.echo(f"Review items ({len(items)} total):")
            click.echo("")
            for item in items:
                click.echo(f"  {item.id}")
                click.echo(f"    Priority: {item.priority.value}")
                click.echo(f"    Status: {item.status.value}")
                click.echo(f"    Assigned to: {item.assigned_to or '-'}")
                click.echo("")

    _run(_list)


@review_group.command("next")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def next_item(as_json: bool) -> None:
    """Show the next item a reviewer should pick up."""

    async def _next(queue: ReviewQueue) -> None:
        item = await queue.select_next()
        if item is None:
            click.echo("No review items available")
            return
        _echo_item(item, as_json)

    _run(_next)


@review_group.command("show")
@click.argument("item_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_item(item_id: str, as_json: bool) -> None:
    """Show a review item and its calculation."""

    async def _show(queue: ReviewQueue) -> None:
        details = await queue.get_details(_parse_id(item_id))
        if as_json:
            click.echo(json.dumps(details.model_dump(mode="json"), indent=2))
            return
        _echo_item(details.item, as_json=False)
        if details.calculation is not None:
            click.echo(f"  Calculation status: {details.calculation.status.value}")

    _run(_show)


@review_group.command("enqueue")
@click.argument("calculation_id")
@click.option(
    "--priority",
    "-p",
    default=ReviewPriority.MEDIUM.value,
    type=click.Choice([p.value for p in ReviewPriority]),
    help="Priority (default: medium)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def enqueue(calculation_id: str, priority: str, as_json: bool) -> None:
    """Queue a calculation for review."""

    async def _enqueue(queue: ReviewQueue) -> None:
        item = await queue.enqueue(_parse_id(calculation_id), priority)
        _echo_item(item, as_json)

    _run(_enqueue)


@review_group.command("assign")
@click.argument("item_id")
@click.option("--reviewer", "-r", required=True, help="Reviewer identifier")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def assign(item_id: str, reviewer: str, as_json: bool) -> None:
    """Claim a pending item for a reviewer."""

    async def _assign(queue: ReviewQueue) -> None:
        item = await queue.assign(_parse_id(item_id), reviewer)
        _echo_item(item, as_json)

    _run(_assign)


@review_group.command("approve")
@click.argument("item_id")
@click.option("--reviewer", "-r", required=True, help="Reviewer identifier")
@click.option("--notes", "-n", help="Approval notes")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def approve(item_id: str, reviewer: str, notes: str | None, as_json: bool) -> None:
    """Approve the calculation behind a review item."""

    async def _approve(queue: ReviewQueue) -> None:
        item = await queue.approve(_parse_id(item_id), reviewer, notes)
        _echo_item(item, as_json)

    _run(_approve)


@review_group.command("reject")
@click.argument("item_id")
@click.option("--reviewer", "-r", required=True, help="Reviewer identifier")
@click.option("--reason", required=True, help="Rejection reason")
@click.option("--notes", "-n", help="Additional notes")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def reject(item_id: str, reviewer: str, reason: str, notes: str | None, as_json: bool) -> None:
    """Reject the calculation behind a review item."""

    async def _reject(queue: ReviewQueue) -> None:
        item = await queue.reject(_parse_id(item_id), reviewer, reason, notes)
        _echo_item(item, as_json)

    _run(_reject)


@review_group.command("note")
@click.argument("item_id")
@click.argument("text")
@click.option("--reviewer", "-r", help="Author of the note")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def note(item_id: str, text: str, reviewer: str | None, as_json: bool) -> None:
    """Append a note to a review item."""

    async def _note(queue: ReviewQueue) -> None:
        item = await queue.annotate(_parse_id(item_id), text, reviewer)
        _echo_item(item, as_json)

    _run(_note)


@review_group.command("priority")
@click.argument("item_id")
@click.argument("priority", type=click.Choice([p.value for p in ReviewPriority]))
@click.option("--reviewer", "-r", help="Who changed the priority")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def priority(item_id: str, priority: str, reviewer: str | None, as_json: bool) -> None:
    """Change the priority of an open review item."""

    async def _priority(queue: ReviewQueue) -> None:
        item = await queue.reprioritize(_parse_id(item_id), priority, reviewer)
        _echo_item(item, as_json)

    _run(_priority)
