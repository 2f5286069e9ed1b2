"""Durable FIFO queue of local mutations awaiting push.

Persisted as ``.tic/sync-queue.json``::

    {"pending": [{"action": "create", "item_id": "local-a3f2dd",
                  "timestamp": "2026-01-15T10:00:00Z"}, ...]}

Every change rewrites the whole file through a temp file and ``os.replace``,
so a crash mid-write leaves either the old or the new queue, never half of
one.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field

from tic.errors import QueueError
from tic.models import QueueAction, QueueEntry

logger = logging.getLogger(__name__)

QUEUE_FILE = "sync-queue.json"


@dataclass
class QueueSnapshot:
    pending: list[QueueEntry] = field(default_factory=list)


class MutationQueue:
    """Ordered log of pending mutations; enqueue order is replay order."""

    def __init__(self, path: str):
        self._path = path

    @classmethod
    def for_dir(cls, tic_dir: str) -> MutationQueue:
        return cls(os.path.join(tic_dir, QUEUE_FILE))

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> QueueSnapshot:
        """Snapshot of the current queue. A missing file is an empty queue."""
        if not os.path.exists(self._path):
            return QueueSnapshot()
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
            pending = data.get("pending")
            if not isinstance(pending, list):
                raise ValueError("'pending' is not a list")
            return QueueSnapshot([QueueEntry.from_dict(e) for e in pending])
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise QueueError(f"Cannot read sync queue {self._path}: {e}") from e

    def _write(self, snapshot: QueueSnapshot) -> None:
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        tmp_path = self._path + ".tmp"
        data = {"pending": [e.to_dict() for e in snapshot.pending]}
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self._path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def append(self, entry: QueueEntry) -> None:
        """Add an entry at the tail.

        A queued update/delete for the same item is superseded by the new
        one: the push sends the item's full current state either way.
        """
        if not QueueAction.is_valid(entry.action):
            raise ValueError(f"invalid queue action: {entry.action}")
        queue = self.read()
        if QueueAction.collapses(entry.action):
            queue.pending = [
                e for e in queue.pending
                if not (e.item_id == entry.item_id and e.action == entry.action)
            ]
        queue.pending.append(entry)
        self._write(queue)
        logger.debug("Queued %s for %s", entry.action, entry.item_id)

    def remove(self, item_id: str, action: str) -> None:
        """Remove the first entry matching ``item_id`` and ``action``."""
        queue = self.read()
        for i, e in enumerate(queue.pending):
            if e.item_id == item_id and e.action == action:
                del queue.pending[i]
                self._write(queue)
                return

    def discard(self, entry: QueueEntry) -> None:
        """Remove one entry equal to ``entry`` (all fields), if present."""
        queue = self.read()
        try:
            queue.pending.remove(entry)
        except ValueError:
            return
        self._write(queue)

    def drop_item(self, item_id: str) -> int:
        """Remove every entry for an item. Returns how many were removed."""
        queue = self.read()
        kept = [e for e in queue.pending if e.item_id != item_id]
        removed = len(queue.pending) - len(kept)
        if removed:
            self._write(QueueSnapshot(kept))
        return removed

    def rename_item(self, old_id: str, new_id: str) -> None:
        """Point every entry for ``old_id`` at ``new_id``, keeping order."""
        queue = self.read()
        changed = False
        for e in queue.pending:
            if e.item_id == old_id:
                e.item_id = new_id
                changed = True
        if changed:
            self._write(queue)

    def clear(self) -> None:
        self._write(QueueSnapshot())

    def pending_ids(self) -> set[str]:
        return {e.item_id for e in self.read().pending}

    def has_pending(self, item_id: str, action: str | None = None) -> bool:
        return any(
            e.item_id == item_id and (action is None or e.action == action)
            for e in self.read().pending
        )

    def count(self) -> int:
        return len(self.read().pending)
