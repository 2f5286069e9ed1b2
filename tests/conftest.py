"""Shared fixtures: an in-memory item source standing in for a remote."""

from typing import Any

import pytest

from tic.errors import NotFoundError, RemoteError
from tic.models import Comment, WorkItem, now_utc
from tic.sources.interface import ItemSource


class InMemorySource(ItemSource):
    """Remote double that assigns ``R-<n>`` ids and records every call.

    ``fail`` holds ``(action, key)`` pairs that raise RemoteError; the key is
    the item id, or the title for creates. ``fail_listing`` makes
    ``list_items`` raise.
    """

    def __init__(self) -> None:
        self.items: dict[str, WorkItem] = {}
        self.next_id = 1
        self.calls: list[tuple[str, str]] = []
        self.list_calls = 0
        self.invalidations = 0
        self.fail: set[tuple[str, str]] = set()
        self.fail_listing = False
        self.iterations = ["default", "sprint-2"]
        self.current_iteration = "sprint-2"
        self.statuses = ["todo", "doing", "done"]
        self.types = ["bug", "task"]

    def _check(self, action: str, key: str) -> None:
        self.calls.append((action, key))
        if (action, key) in self.fail:
            raise RemoteError(f"{action} {key} rejected")

    def seed(self, item: WorkItem) -> None:
        self.items[item.id] = item

    def list_items(self, iteration: str | None = None) -> list[WorkItem]:
        self.list_calls += 1
        if self.fail_listing:
            raise RemoteError("listing unavailable")
        items = list(self.items.values())
        if iteration is not None:
            items = [i for i in items if i.iteration == iteration]
        return items

    def get_item(self, item_id: str) -> WorkItem:
        if item_id not in self.items:
            raise NotFoundError(item_id, "remote")
        return self.items[item_id]

    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        self._check("create", fields.get("title", ""))
        item = WorkItem(id=f"R-{self.next_id}", **fields)
        self.next_id += 1
        self.items[item.id] = item
        return item

    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        self._check("update", item_id)
        item = self.get_item(item_id)
        for key, value in updates.items():
            setattr(item, key, value)
        item.updated = now_utc()
        return item

    def delete_item(self, item_id: str) -> None:
        self._check("delete", item_id)
        self.items.pop(item_id, None)

    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        self._check("comment", item_id)
        comment = Comment(author=author, body=body)
        self.get_item(item_id).comments.append(comment)
        return comment

    def get_iterations(self) -> list[str]:
        return list(self.iterations)

    def get_current_iteration(self) -> str:
        return self.current_iteration

    def get_statuses(self) -> list[str]:
        return list(self.statuses)

    def get_work_item_types(self) -> list[str]:
        return list(self.types)

    def on_cache_invalidate(self) -> None:
        self.invalidations += 1


@pytest.fixture
def remote() -> InMemorySource:
    return InMemorySource()
