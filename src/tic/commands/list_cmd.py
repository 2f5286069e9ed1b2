"""tic list - list work items."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx
from tic.models import ItemFilter, Priority
from tic.utils import format_item_row


@click.command("list")
@click.option("--iteration", "-i", default=None,
              help="Iteration to list (default: current iteration)")
@click.option("--all", "all_iterations", is_flag=True, help="List every iteration")
@click.option("--status", "-s", default=None, help="Filter by status")
@click.option("--type", "item_type", default=None, help="Filter by type")
@click.option("--assignee", "-a", default=None, help="Filter by assignee")
@click.option("--label", "-l", default=None, help="Filter by label")
@click.option("--parent", default=None, help="Filter by parent item ID")
@click.option("--sort", "sort_by", default="created",
              type=click.Choice(["created", "updated", "priority", "status", "title", "id"]),
              help="Sort field")
@click.option("--reverse", "-r", is_flag=True, help="Reverse sort order")
@click.option("--long", "-L", "long_format", is_flag=True, help="Long format with extra fields")
@pass_ctx
def list_cmd(ctx: TicContext, iteration: str | None, all_iterations: bool,
             status: str | None, item_type: str | None, assignee: str | None,
             label: str | None, parent: str | None, sort_by: str, reverse: bool,
             long_format: bool) -> None:
    """List work items with filters."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    if not all_iterations and iteration is None:
        iteration = ctx.items.get_current_iteration()
    listing = ctx.items.list_items(None if all_iterations else iteration)

    f = ItemFilter(status=status, type=item_type, assignee=assignee, label=label,
                   parent=ctx.expand_item_id(parent) if parent else None)
    items = [i for i in listing if f.matches(i)]

    sort_keys = {
        "created": lambda i: i.created,
        "updated": lambda i: i.updated,
        # Highest priority first unless reversed
        "priority": lambda i: -Priority.rank(i.priority),
        "status": lambda i: i.status,
        "title": lambda i: i.title.lower(),
        "id": lambda i: i.id,
    }
    items.sort(key=sort_keys[sort_by], reverse=reverse)

    if ctx.json_output:
        ctx.output([i.to_dict() for i in items])
        return

    if not items:
        click.echo("No work items found.")
        return

    for item in items:
        click.echo(format_item_row(item, long_format=long_format))

    if not ctx.quiet:
        click.echo(f"\n{len(items)} item(s)")
