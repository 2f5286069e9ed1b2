"""Item source interface: the contract the sync engine needs from a backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tic.models import Comment, WorkItem


class ItemSource(ABC):
    """CRUD + vocabulary contract shared by local and remote backends.

    ``create_item`` returns the item under the identifier the source chose,
    which may differ from any identifier the caller knows it by.
    """

    # --- Items ---

    @abstractmethod
    def list_items(self, iteration: str | None = None) -> list[WorkItem]:
        """List items, optionally restricted to one iteration."""

    @abstractmethod
    def get_item(self, item_id: str) -> WorkItem:
        """Get an item. Raises NotFoundError if absent."""

    @abstractmethod
    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        """Create an item from user-visible fields."""

    @abstractmethod
    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        """Apply partial field updates."""

    @abstractmethod
    def delete_item(self, item_id: str) -> None:
        """Delete an item."""

    @abstractmethod
    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        """Append a comment to an item."""

    # --- Vocabulary ---

    @abstractmethod
    def get_iterations(self) -> list[str]:
        """All known iteration names."""

    @abstractmethod
    def get_current_iteration(self) -> str:
        """The iteration new work goes into by default."""

    @abstractmethod
    def get_statuses(self) -> list[str]:
        """Status vocabulary."""

    @abstractmethod
    def get_work_item_types(self) -> list[str]:
        """Type vocabulary."""

    # --- Derived views ---

    def get_children(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if i.parent == item_id]

    def get_dependents(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if item_id in i.depends_on]

    def get_assignees(self) -> list[str]:
        return sorted({i.assignee for i in self.list_items() if i.assignee})

    def get_labels(self) -> list[str]:
        return sorted({label for i in self.list_items() for label in i.labels})

    def on_cache_invalidate(self) -> None:
        """Hook called by CachedSource after a write; drop source-side caches."""
