"""Local item source: the project's own store, config and mutation queue."""

from __future__ import annotations

import logging
from typing import Any

from tic.config import TicConfig
from tic.models import (
    Comment, CommentPayload, ItemFilter, QueueAction, QueueEntry, WorkItem,
)
from tic.sources.interface import ItemSource
from tic.storage.interface import ItemStore
from tic.sync.queue import MutationQueue

logger = logging.getLogger(__name__)


class LocalSource(ItemSource):
    """Item source over the local store.

    When a queue is given, every successful mutation is also appended to it
    so the sync engine can replay it against the remote later.

    Args:
        store: The local item store.
        config: Project config; supplies vocabulary and defaults.
        tic_dir: Where to persist config changes (None: keep in memory).
        queue: Mutation queue, or None for a purely local project.
    """

    def __init__(self, store: ItemStore, config: TicConfig,
                 tic_dir: str | None = None, queue: MutationQueue | None = None):
        self.store = store
        self.config = config
        self.queue = queue
        self._tic_dir = tic_dir

    def _save_config(self) -> None:
        if self._tic_dir:
            self.config.save(self._tic_dir)

    def _enqueue(self, action: str, item_id: str,
                 comment: CommentPayload | None = None) -> None:
        if self.queue is not None:
            self.queue.append(QueueEntry(action=action, item_id=item_id, comment=comment))

    def _remember_iteration(self, iteration: str) -> None:
        if self.config.add_iteration(iteration):
            self._save_config()

    # --- Items ---

    def list_items(self, iteration: str | None = None) -> list[WorkItem]:
        if iteration is None:
            return self.store.list_items()
        return self.store.list_items(ItemFilter(iteration=iteration))

    def get_item(self, item_id: str) -> WorkItem:
        return self.store.get_item(item_id)

    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        fields = dict(fields)
        fields.setdefault("iteration", self.config.current_iteration)
        if self.config.statuses:
            fields.setdefault("status", self.config.statuses[0])
        item = self.store.create_item(fields)
        self._remember_iteration(item.iteration)
        self._enqueue(QueueAction.CREATE, item.id)
        return item

    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        item = self.store.update_item(item_id, updates)
        self._remember_iteration(item.iteration)
        self._enqueue(QueueAction.UPDATE, item_id)
        return item

    def delete_item(self, item_id: str) -> None:
        existed = self.store.has_item(item_id)
        self.store.delete_item(item_id)
        if self.queue is None or not existed:
            return
        if self.queue.has_pending(item_id, QueueAction.CREATE):
            # Never reached the remote: forget it instead of pushing a delete
            dropped = self.queue.drop_item(item_id)
            logger.debug("Dropped %d queued entries for unpushed item %s",
                         dropped, item_id)
        else:
            self._enqueue(QueueAction.DELETE, item_id)

    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        comment = self.store.add_comment(item_id, author, body)
        self._enqueue(QueueAction.COMMENT, item_id, CommentPayload(author, body))
        return comment

    def get_children(self, item_id: str) -> list[WorkItem]:
        return self.store.get_children(item_id)

    def get_dependents(self, item_id: str) -> list[WorkItem]:
        return self.store.get_dependents(item_id)

    # --- Vocabulary ---

    def get_iterations(self) -> list[str]:
        return list(self.config.iterations)

    def get_current_iteration(self) -> str:
        return self.config.current_iteration

    def set_current_iteration(self, name: str) -> None:
        self.config.current_iteration = name
        self.config.add_iteration(name)
        self._save_config()

    def get_statuses(self) -> list[str]:
        return list(self.config.statuses)

    def get_work_item_types(self) -> list[str]:
        return list(self.config.types)

    def sync_config_from_remote(self, iterations: list[str], current_iteration: str,
                                statuses: list[str], types: list[str]) -> None:
        self.config.merge_remote(iterations, current_iteration, statuses, types)
        self._save_config()
