"""tic update - update a work item."""

from __future__ import annotations

from typing import Any

import click

from tic.cli import TicContext, pass_ctx
from tic.models import Priority


@click.command("update")
@click.argument("item_id")
@click.option("--title", "-t", default=None, help="New title")
@click.option("--type", "item_type", default=None, help="New type")
@click.option("--status", "-s", default=None, help="New status")
@click.option("--priority", "-p", default=None, type=click.Choice(Priority.values()),
              help="New priority")
@click.option("--assignee", "-a", default=None, help="New assignee (empty to clear)")
@click.option("--iteration", "-i", default=None, help="Move to iteration")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--parent", default=None, help="New parent item ID (empty to clear)")
@click.option("--add-label", multiple=True, help="Add label")
@click.option("--remove-label", multiple=True, help="Remove label")
@click.option("--add-dep", multiple=True, help="Add a dependency")
@click.option("--remove-dep", multiple=True, help="Remove a dependency")
@pass_ctx
def update(ctx: TicContext, item_id: str, title: str | None, item_type: str | None,
           status: str | None, priority: str | None, assignee: str | None,
           iteration: str | None, description: str | None, parent: str | None,
           add_label: tuple[str, ...], remove_label: tuple[str, ...],
           add_dep: tuple[str, ...], remove_dep: tuple[str, ...]) -> None:
    """Update an existing work item."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    full_id = ctx.resolve_item_id(item_id)
    item = ctx.items.get_item(full_id)

    updates: dict[str, Any] = {}
    if title is not None:
        updates["title"] = title
    if item_type is not None:
        updates["type"] = item_type
    if status is not None:
        updates["status"] = status
    if priority is not None:
        updates["priority"] = priority
    if assignee is not None:
        updates["assignee"] = assignee
    if iteration is not None:
        updates["iteration"] = iteration
    if description is not None:
        updates["description"] = description
    if parent is not None:
        updates["parent"] = ctx.expand_item_id(parent) if parent else None

    if add_label or remove_label:
        labels = [label for label in item.labels if label not in remove_label]
        updates["labels"] = labels + [label for label in add_label if label not in labels]

    if add_dep or remove_dep:
        removed = {ctx.expand_item_id(d) for d in remove_dep}
        deps = [d for d in item.depends_on if d not in removed]
        updates["depends_on"] = deps + [ctx.expand_item_id(d) for d in add_dep]

    if not updates:
        click.echo("Nothing to update.")
        return

    item = ctx.items.update_item(full_id, updates)

    if ctx.json_output:
        ctx.output(item.to_dict())
    elif not ctx.quiet:
        click.echo(f"Updated {item.id}: {item.title}")
