"""tic create - create a new work item."""

from __future__ import annotations

from typing import Any

import click

from tic.cli import TicContext, pass_ctx
from tic.models import Priority


@click.command("create")
@click.argument("title")
@click.option("--type", "item_type", default=None, help="Work item type")
@click.option("--status", "-s", default=None, help="Initial status")
@click.option("--priority", "-p", default=None, type=click.Choice(Priority.values()),
              help="Priority")
@click.option("--assignee", "-a", default=None, help="Assignee")
@click.option("--label", "-l", "labels", multiple=True, help="Labels (repeatable)")
@click.option("--iteration", "-i", default=None,
              help="Iteration (default: current iteration)")
@click.option("--description", "-d", default=None, help="Description")
@click.option("--parent", default=None, help="Parent item ID")
@click.option("--depends-on", "depends_on", multiple=True,
              help="Items this one depends on (repeatable)")
@click.option("--silent", is_flag=True, help="Only output the item ID")
@pass_ctx
def create(ctx: TicContext, title: str, item_type: str | None, status: str | None,
           priority: str | None, assignee: str | None, labels: tuple[str, ...],
           iteration: str | None, description: str | None, parent: str | None,
           depends_on: tuple[str, ...], silent: bool) -> None:
    """Create a new work item."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    fields: dict[str, Any] = {"title": title}
    if item_type:
        fields["type"] = item_type
    if status:
        fields["status"] = status
    if priority:
        fields["priority"] = priority
    if assignee:
        fields["assignee"] = assignee
    if labels:
        fields["labels"] = list(labels)
    if iteration:
        fields["iteration"] = iteration
    if description:
        fields["description"] = description
    if parent:
        fields["parent"] = ctx.expand_item_id(parent)
    if depends_on:
        fields["depends_on"] = [ctx.expand_item_id(d) for d in depends_on]

    item = ctx.items.create_item(fields)

    if ctx.json_output:
        ctx.output(item.to_dict())
    elif silent:
        click.echo(item.id)
    else:
        click.echo(f"Created {item.type} {item.id}: {item.title}")
