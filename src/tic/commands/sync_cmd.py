"""tic sync / tic queue - reconcile with the remote and inspect pending changes."""

from __future__ import annotations

import sys

import click

from tic.cli import TicContext, pass_ctx
from tic.errors import TicError
from tic.models import PushResult, format_timestamp
from tic.utils import format_time_ago


def _require_engine(ctx: TicContext) -> None:
    ctx.ensure_initialized()
    if ctx.engine is None:
        raise TicError("No remote configured (backend is 'local')")


def _report_push(push: PushResult) -> None:
    for old_id, new_id in push.id_mappings.items():
        click.echo(f"  {old_id} -> {new_id}")
    click.echo(f"Pushed {push.pushed} change(s), {push.failed} failed")
    for err in push.errors:
        target = f"{err.entry.action} {err.entry.item_id}" if err.entry else "pull"
        click.echo(f"  Failed {target}: {err.message}", err=True)


@click.command("sync")
@click.option("--push-only", is_flag=True, help="Push queued changes without pulling")
@click.option("--pull-only", is_flag=True, help="Pull without pushing queued changes")
@pass_ctx
def sync_cmd(ctx: TicContext, push_only: bool, pull_only: bool) -> None:
    """Push queued local changes to the remote, then pull its state."""
    if push_only and pull_only:
        raise click.UsageError("--push-only and --pull-only are mutually exclusive")
    _require_engine(ctx)
    assert ctx.engine is not None

    push: PushResult | None = None
    pull_count: int | None = None
    if push_only:
        push = ctx.engine.push_pending()
    elif pull_only:
        pull_count = ctx.engine.pull_only()
    else:
        result = ctx.engine.sync()
        push, pull_count = result.push, result.pull_count

    if ctx.json_output:
        data: dict = {}
        if push is not None:
            data["pushed"] = push.pushed
            data["failed"] = push.failed
            data["id_mappings"] = push.id_mappings
            data["errors"] = [e.to_dict() for e in push.errors]
        if pull_count is not None:
            data["pulled"] = pull_count
        ctx.output(data)
    elif not ctx.quiet:
        if push is not None:
            _report_push(push)
        if pull_count is not None:
            click.echo(f"Pulled {pull_count} item(s)")

    if push is not None and push.failed:
        sys.exit(1)


@click.command("queue")
@pass_ctx
def queue_cmd(ctx: TicContext) -> None:
    """Show changes waiting to be pushed."""
    _require_engine(ctx)
    assert ctx.engine is not None and ctx.queue is not None

    pending = ctx.queue.read().pending
    status = ctx.engine.get_status()

    if ctx.json_output:
        ctx.output({
            "pending": [e.to_dict() for e in pending],
            "last_sync_time": format_timestamp(status.last_sync_time),
        })
        return

    if not pending:
        click.echo("Nothing to push.")
    for entry in pending:
        click.echo(f"  {entry.action:<8} {entry.item_id:<20} ({format_time_ago(entry.timestamp)})")
    if status.last_sync_time is not None and not ctx.quiet:
        click.echo(f"\nLast sync: {format_time_ago(status.last_sync_time)}")
