"""tic show - display work item details."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx
from tic.id_gen import is_temp_id
from tic.utils import format_time_ago


@click.command("show")
@click.argument("item_id")
@pass_ctx
def show(ctx: TicContext, item_id: str) -> None:
    """Show detailed view of a work item."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    full_id = ctx.resolve_item_id(item_id)
    item = ctx.items.get_item(full_id)
    children = ctx.items.get_children(full_id)
    dependents = ctx.items.get_dependents(full_id)

    if ctx.json_output:
        data = item.to_dict()
        data["_children"] = [c.id for c in children]
        data["_dependents"] = [d.id for d in dependents]
        ctx.output(data)
        return

    click.echo(f"{'─' * 60}")
    click.echo(f"  {item.id}")
    click.echo(f"{'─' * 60}")
    click.echo(f"  Title:     {item.title}")
    click.echo(f"  Type:      {item.type}")
    click.echo(f"  Status:    {item.status}")
    click.echo(f"  Priority:  {item.priority}")
    if item.assignee:
        click.echo(f"  Assignee:  {item.assignee}")
    if item.iteration:
        click.echo(f"  Iteration: {item.iteration}")
    if item.labels:
        click.echo(f"  Labels:    {', '.join(item.labels)}")
    if item.parent:
        click.echo(f"  Parent:    {item.parent}")
    click.echo(f"  Created:   {format_time_ago(item.created)}")
    click.echo(f"  Updated:   {format_time_ago(item.updated)}")
    if is_temp_id(item.id):
        click.echo("  Sync:      not pushed yet")

    if item.description:
        click.echo(f"\n  Description:")
        for line in item.description.split("\n"):
            click.echo(f"    {line}")

    if item.depends_on:
        click.echo(f"\n  Depends on:")
        for dep_id in item.depends_on:
            click.echo(f"    → {dep_id}")

    if dependents:
        click.echo(f"\n  Depended on by:")
        for dep in dependents:
            click.echo(f"    ← {dep.id} ({dep.status}) {dep.title}")

    if children:
        click.echo(f"\n  Children:")
        for child in children:
            click.echo(f"    {child.id} ({child.status}) {child.title}")

    if item.comments:
        click.echo(f"\n  Comments ({len(item.comments)}):")
        for c in item.comments:
            click.echo(f"    [{format_time_ago(c.date)}] {c.author}: {c.body}")

    click.echo()
