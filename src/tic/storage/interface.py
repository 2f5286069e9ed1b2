"""Storage interface (abstract base) for the local item store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from tic.models import Comment, ItemFilter, WorkItem


class ItemStore(ABC):
    """Abstract base class defining all local store operations.

    Create and update validate the relationship graph before writing and
    never partially commit. ``write_item`` and ``rename_item`` are the raw
    operations used by the sync engine and skip those checks.
    """

    @abstractmethod
    def path(self) -> str:
        """Return the database file path."""

    @abstractmethod
    def close(self) -> None:
        """Close the storage connection."""

    # --- Item CRUD ---

    @abstractmethod
    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        """Create an item with a freshly generated ID and return it."""

    @abstractmethod
    def get_item(self, item_id: str) -> WorkItem:
        """Get an item by ID. Raises NotFoundError if absent."""

    @abstractmethod
    def has_item(self, item_id: str) -> bool:
        """True if an item with this ID exists."""

    @abstractmethod
    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        """Apply partial field updates and return the updated item."""

    @abstractmethod
    def delete_item(self, item_id: str) -> None:
        """Delete an item and repair references to it. No-op if absent."""

    @abstractmethod
    def list_items(self, filter: ItemFilter | None = None) -> list[WorkItem]:
        """List items, oldest first."""

    @abstractmethod
    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        """Append a comment to an item."""

    # --- Raw writes (sync) ---

    @abstractmethod
    def write_item(self, item: WorkItem) -> None:
        """Insert or fully overwrite an item record without validation."""

    @abstractmethod
    def rename_item(self, old_id: str, new_id: str) -> None:
        """Change an item's ID and rewrite every reference to it."""

    # --- Metadata ---

    @abstractmethod
    def get_metadata(self, key: str) -> str | None:
        """Get a metadata value."""

    @abstractmethod
    def set_metadata(self, key: str, value: str) -> None:
        """Set a metadata value."""

    # --- Derived relationship views ---

    def get_children(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if i.parent == item_id]

    def get_dependents(self, item_id: str) -> list[WorkItem]:
        return [i for i in self.list_items() if item_id in i.depends_on]
