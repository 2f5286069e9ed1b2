"""Click CLI root and global flags for tic."""

from __future__ import annotations

import json
import logging
import sys

import click

from tic import __version__
from tic.config import TicConfig, find_tic_dir, get_actor, get_db_path
from tic.errors import TicError, ValidationError
from tic.models import SyncState, SyncStatus
from tic.sources import open_remote
from tic.sources.cache import CachedSource
from tic.sources.interface import ItemSource
from tic.sources.local import LocalSource
from tic.storage.sqlite_store import SQLiteItemStore, open_store
from tic.sync.engine import SyncEngine
from tic.sync.queue import MutationQueue
from tic.utils import resolve_partial_id


class TicContext:
    """Shared context for all commands."""

    def __init__(self) -> None:
        self.tic_dir: str | None = None
        self.config: TicConfig | None = None
        self.store: SQLiteItemStore | None = None
        self.queue: MutationQueue | None = None
        self.local: LocalSource | None = None
        self.items: CachedSource | None = None
        self.remote: ItemSource | None = None
        self.engine: SyncEngine | None = None
        self.actor: str = ""
        self.json_output: bool = False
        self.verbose: bool = False
        self.quiet: bool = False

    def ensure_initialized(self) -> None:
        """Open the project's store, queue and sources."""
        if self.store is not None:
            return
        self.tic_dir = find_tic_dir()
        if self.tic_dir is None:
            click.echo("Error: not in a tic project (no .tic/ directory found)", err=True)
            click.echo("Run 'tic init' to create one", err=True)
            sys.exit(1)
        self.config = TicConfig.load(self.tic_dir)
        if not self.actor:
            self.actor = get_actor(self.config)
        if not self.json_output:
            self.json_output = self.config.json_output

        self.remote = open_remote(self.config, self.tic_dir)
        self.store = open_store(
            get_db_path(self.tic_dir, self.config),
            id_prefix=self.config.id_prefix,
            temp_ids=self.config.has_remote,
        )
        if self.remote is not None:
            self.queue = MutationQueue.for_dir(self.tic_dir)
        self.local = LocalSource(self.store, self.config, self.tic_dir, self.queue)
        self.items = CachedSource(self.local, ttl=self.config.cache_ttl)
        if self.remote is not None and self.queue is not None:
            self.engine = SyncEngine(self.local, self.remote, self.queue)
            self.engine.on_status_change(self._on_sync_status)

    def _on_sync_status(self, status: SyncStatus) -> None:
        # Pull rewrote the store underneath the cache
        if status.state != SyncState.SYNCING and self.items is not None:
            self.items.invalidate()

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
            self.store = None

    def resolve_item_id(self, partial: str) -> str:
        """Resolve a partial item ID or exit with error."""
        assert self.items is not None
        full_id = resolve_partial_id(partial, [i.id for i in self.items.list_items()])
        if full_id is None:
            click.echo(f"Error: work item not found or ambiguous: {partial}", err=True)
            sys.exit(1)
        return full_id

    def expand_item_id(self, partial: str) -> str:
        """Resolve a partial ID for use as a reference; unknown IDs pass through."""
        assert self.items is not None
        return resolve_partial_id(partial, [i.id for i in self.items.list_items()]) or partial

    def output(self, data: dict | list) -> None:
        """Output data as JSON."""
        click.echo(json.dumps(data, indent=2, default=str))


pass_ctx = click.make_pass_decorator(TicContext, ensure=True)


class TicGroup(click.Group):
    """Command group that reports tic errors as ``Error: ...`` with exit code 1."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except ValidationError as e:
            click.echo(f"Error: {e} (rule: {e.rule})", err=True)
            ctx.exit(1)
        except TicError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


@click.group(cls=TicGroup, invoke_without_command=True)
@click.option("--actor", envvar="TIC_ACTOR", help="Author name for comments")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.version_option(__version__, prog_name="tic")
@click.pass_context
def cli(ctx: click.Context, actor: str | None, json_output: bool,
        verbose: bool, quiet: bool) -> None:
    """tic - work item tracker with offline sync"""
    tctx = ctx.ensure_object(TicContext)
    tctx.verbose = verbose
    tctx.quiet = quiet
    if json_output:
        tctx.json_output = True
    if actor:
        tctx.actor = actor
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )
    ctx.call_on_close(tctx.close)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# --- Register all commands ---

from tic.commands.init_cmd import init_cmd
from tic.commands.create import create
from tic.commands.list_cmd import list_cmd
from tic.commands.show import show
from tic.commands.update import update
from tic.commands.delete import delete
from tic.commands.comments import comment
from tic.commands.children import children
from tic.commands.iteration import iteration
from tic.commands.sync_cmd import sync_cmd, queue_cmd

cli.add_command(init_cmd, "init")
cli.add_command(create, "create")
cli.add_command(create, "new")  # Alias
cli.add_command(list_cmd, "list")
cli.add_command(show, "show")
cli.add_command(update, "update")
cli.add_command(delete, "delete")
cli.add_command(comment, "comment")
cli.add_command(children, "children")
cli.add_command(iteration, "iteration")
cli.add_command(sync_cmd, "sync")
cli.add_command(queue_cmd, "queue")


def main() -> None:
    cli(auto_envvar_prefix="TIC")
