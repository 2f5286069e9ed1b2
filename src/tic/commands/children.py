"""tic children - show the items under a work item."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx
from tic.utils import format_item_row


@click.command("children")
@click.argument("item_id")
@click.option("--dependents", is_flag=True,
              help="Show items that depend on ITEM_ID instead")
@pass_ctx
def children(ctx: TicContext, item_id: str, dependents: bool) -> None:
    """List the children (or dependents) of a work item."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    full_id = ctx.resolve_item_id(item_id)
    if dependents:
        items = ctx.items.get_dependents(full_id)
    else:
        items = ctx.items.get_children(full_id)

    if ctx.json_output:
        ctx.output([i.to_dict() for i in items])
        return

    if not items:
        kind = "dependents" if dependents else "children"
        click.echo(f"{full_id} has no {kind}.")
        return

    for item in items:
        click.echo(format_item_row(item))
