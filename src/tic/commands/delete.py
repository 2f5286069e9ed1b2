"""tic delete - delete a work item."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx


@click.command("delete")
@click.argument("item_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_ctx
def delete(ctx: TicContext, item_id: str, yes: bool) -> None:
    """Delete a work item.

    Children lose their parent and dependents drop the dependency.
    """
    ctx.ensure_initialized()
    assert ctx.items is not None

    full_id = ctx.resolve_item_id(item_id)
    if not yes:
        click.confirm(f"Delete {full_id}?", abort=True)

    ctx.items.delete_item(full_id)

    if ctx.json_output:
        ctx.output({"id": full_id, "deleted": True})
    elif not ctx.quiet:
        click.echo(f"Deleted {full_id}")
