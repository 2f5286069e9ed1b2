"""tic comment - add a comment to a work item."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx


@click.command("comment")
@click.argument("item_id")
@click.argument("body")
@pass_ctx
def comment(ctx: TicContext, item_id: str, body: str) -> None:
    """Add a comment to a work item."""
    ctx.ensure_initialized()
    assert ctx.items is not None

    full_id = ctx.resolve_item_id(item_id)
    added = ctx.items.add_comment(full_id, ctx.actor, body)

    if ctx.json_output:
        data = added.to_dict()
        data["item_id"] = full_id
        ctx.output(data)
    elif not ctx.quiet:
        click.echo(f"Added comment to {full_id}")
