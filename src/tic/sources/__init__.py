"""Item sources: the local project and the remotes it can sync with."""

from __future__ import annotations

from tic.config import TicConfig, get_remote_path
from tic.errors import TicError
from tic.sources.interface import ItemSource
from tic.sources.jsonl import JsonlSource

BACKENDS = ("local", "jsonl")


def open_remote(config: TicConfig, tic_dir: str) -> ItemSource | None:
    """Open the remote selected by ``backend`` in config.yml.

    Returns None for a purely local project.
    """
    if config.backend == "local":
        return None
    if config.backend == "jsonl":
        path = get_remote_path(tic_dir, config)
        if not path:
            raise TicError("backend 'jsonl' requires 'remote' to be set in config.yml")
        return JsonlSource(path)
    raise TicError(
        f"Unknown backend: {config.backend} (expected one of {', '.join(BACKENDS)})"
    )
