"""tic init - initialize a new .tic/ directory."""

from __future__ import annotations

import os

import click

from tic.cli import TicContext, pass_ctx
from tic.config import TIC_DIR, TicConfig, get_db_path, get_remote_path
from tic.sources import BACKENDS
from tic.sources.jsonl import JsonlSource
from tic.storage.sqlite_store import open_store


@click.command("init")
@click.option("--prefix", help="Item ID prefix (default: directory name)")
@click.option("--backend", default="local", type=click.Choice(BACKENDS),
              help="Where items are synced to")
@click.option("--remote", default="", help="Remote location (jsonl: a directory)")
@pass_ctx
def init_cmd(ctx: TicContext, prefix: str | None, backend: str, remote: str) -> None:
    """Initialize a new tic project in the current directory."""
    tic_dir = os.path.join(os.getcwd(), TIC_DIR)

    if os.path.exists(tic_dir):
        click.echo(f"tic already initialized at {tic_dir}")
        return

    if backend != "local" and not remote:
        raise click.UsageError(f"--remote is required for backend '{backend}'")

    # Determine prefix
    if not prefix:
        prefix = os.path.basename(os.getcwd()).lower()
        # Sanitize: only keep alphanumeric and hyphens
        prefix = "".join(c if c.isalnum() or c == "-" else "-" for c in prefix)
        prefix = prefix.strip("-")
        if not prefix:
            prefix = "tic"

    os.makedirs(tic_dir, exist_ok=True)

    config = TicConfig(backend=backend, remote=remote, id_prefix=prefix)
    config.save(tic_dir)

    # Create .gitignore
    gitignore_path = os.path.join(tic_dir, ".gitignore")
    with open(gitignore_path, "w") as f:
        f.write("# tic local files\n")
        f.write("*.db\n")
        f.write("*.db-wal\n")
        f.write("*.db-shm\n")
        f.write("sync-queue.json\n")

    store = open_store(get_db_path(tic_dir, config), id_prefix=prefix)
    store.close()

    if backend == "jsonl":
        JsonlSource.init(get_remote_path(tic_dir, config), id_prefix=prefix)

    click.echo(f"Initialized tic in {tic_dir}")
    click.echo(f"  ID prefix: {prefix}")
    click.echo(f"  Backend:   {backend}")
    if remote:
        click.echo(f"  Remote:    {remote}")
