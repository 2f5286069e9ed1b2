"""tic iteration - list and switch iterations."""

from __future__ import annotations

import click

from tic.cli import TicContext, pass_ctx


@click.group("iteration")
def iteration() -> None:
    """Manage iterations."""


@iteration.command("list")
@pass_ctx
def iteration_list(ctx: TicContext) -> None:
    """List known iterations; the current one is starred."""
    ctx.ensure_initialized()
    assert ctx.local is not None

    current = ctx.local.get_current_iteration()
    names = ctx.local.get_iterations()

    if ctx.json_output:
        ctx.output({"current": current, "iterations": names})
        return

    for name in names:
        marker = "*" if name == current else " "
        click.echo(f"{marker} {name}")


@iteration.command("set")
@click.argument("name")
@pass_ctx
def iteration_set(ctx: TicContext, name: str) -> None:
    """Make NAME the current iteration."""
    ctx.ensure_initialized()
    assert ctx.local is not None

    ctx.local.set_current_iteration(name)
    if not ctx.quiet:
        click.echo(f"Current iteration: {name}")
