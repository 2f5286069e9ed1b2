"""Read-through listing cache for any item source.

One full listing answers many derived questions (children of X, dependents
of X, distinct assignees and labels), so the listing is memoized for a
time-to-live window and every successful write through the cache drops it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from tic.models import Comment, WorkItem
from tic.sources.interface import ItemSource

logger = logging.getLogger(__name__)

_ALL = object()  # cache key for the unfiltered listing


class ListingCache:
    """Memoized listings keyed by iteration.

    The capture time is taken when the first listing is stored; all keys
    expire together once ``ttl`` seconds have passed. ``ttl <= 0`` disables
    time-based expiry (entries live until ``invalidate``).
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._listings: dict[object, list[WorkItem]] = {}
        self._captured_at: float | None = None

    def get(self, iteration: str | None = None) -> list[WorkItem] | None:
        if (self._ttl > 0 and self._captured_at is not None
                and self._clock() - self._captured_at > self._ttl):
            self.invalidate()
            return None
        return self._listings.get(_ALL if iteration is None else iteration)

    def set(self, items: list[WorkItem], iteration: str | None = None) -> None:
        self._listings[_ALL if iteration is None else iteration] = items
        if self._captured_at is None:
            self._captured_at = self._clock()

    def invalidate(self) -> None:
        self._listings.clear()
        self._captured_at = None


class CachedSource(ItemSource):
    """ItemSource wrapper that caches listings and derives views from them.

    The returned listing is the cached list object itself; callers must
    treat it as read-only.
    """

    def __init__(self, source: ItemSource, ttl: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.source = source
        self._cache = ListingCache(ttl, clock)

    def invalidate(self) -> None:
        """Drop cached listings and let the source drop its own caches."""
        self._cache.invalidate()
        self.source.on_cache_invalidate()

    # --- Reads ---

    def list_items(self, iteration: str | None = None) -> list[WorkItem]:
        cached = self._cache.get(iteration)
        if cached is not None:
            return cached
        items = self.source.list_items(iteration)
        self._cache.set(items, iteration)
        logger.debug("Cached %d items (iteration=%s)", len(items), iteration)
        return items

    def get_item(self, item_id: str) -> WorkItem:
        return self.source.get_item(item_id)

    def get_children(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if i.parent == item_id]

    def get_dependents(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if item_id in i.depends_on]

    def get_assignees(self) -> list[str]:
        return sorted({i.assignee for i in self.list_items() if i.assignee})

    def get_labels(self) -> list[str]:
        return sorted({label for i in self.list_items() for label in i.labels})

    # --- Writes: invalidate only after the underlying write succeeded ---

    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        item = self.source.create_item(fields)
        self.invalidate()
        return item

    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        item = self.source.update_item(item_id, updates)
        self.invalidate()
        return item

    def delete_item(self, item_id: str) -> None:
        self.source.delete_item(item_id)
        self.invalidate()

    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        comment = self.source.add_comment(item_id, author, body)
        self.invalidate()
        return comment

    # --- Vocabulary ---

    def get_iterations(self) -> list[str]:
        return self.source.get_iterations()

    def get_current_iteration(self) -> str:
        return self.source.get_current_iteration()

    def get_statuses(self) -> list[str]:
        return self.source.get_statuses()

    def get_work_item_types(self) -> list[str]:
        return self.source.get_work_item_types()
