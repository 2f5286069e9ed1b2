"""SQLite storage implementation for the local item store."""

from __future__ import annotations

import dataclasses
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tic.errors import NotFoundError, TicError
from tic.id_gen import (
    MAX_HASH_LENGTH, MIN_HASH_LENGTH, TEMP_PREFIX, generate_hash_id, make_item_id,
)
from tic.models import (
    Comment, ItemFilter, WorkItem, format_timestamp, now_utc,
    parse_timestamp,
)
from tic.storage.fields import apply_fields, check_fields
from tic.storage.graph import check_relationships
from tic.storage.interface import ItemStore
from tic.storage.schema import SCHEMA

logger = logging.getLogger(__name__)

# Salts tried when every hash length collides
_MAX_ID_ATTEMPTS = 10


class SQLiteItemStore(ItemStore):
    """SQLite-based item store.

    Args:
        db_path: Database file path (``":memory:"`` works for tests).
        id_prefix: Prefix for generated IDs.
        temp_ids: Generate ``local-`` IDs, for projects whose items are
            renamed once a remote assigns its own identifiers.
    """

    def __init__(self, db_path: str, id_prefix: str = "tic", temp_ids: bool = False):
        self._db_path = db_path
        self._id_prefix = TEMP_PREFIX if temp_ids else id_prefix
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    @property
    def id_prefix(self) -> str:
        return self._id_prefix

    # --- Helpers ---

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> WorkItem:
        return WorkItem(
            id=row["id"],
            title=row["title"],
            type=row["type"],
            status=row["status"],
            priority=row["priority"],
            assignee=row["assignee"] or "",
            iteration=row["iteration"] or "",
            description=row["description"] or "",
            parent=row["parent_id"],
            created=parse_timestamp(row["created_at"]) or now_utc(),
            updated=parse_timestamp(row["updated_at"]) or now_utc(),
        )

    def _build_filter_sql(self, f: ItemFilter) -> tuple[str, list[Any]]:
        """Build WHERE clause from ItemFilter."""
        clauses = ["1=1"]
        params: list[Any] = []

        if f.iteration is not None:
            clauses.append("i.iteration = ?")
            params.append(f.iteration)

        if f.status is not None:
            clauses.append("i.status = ?")
            params.append(f.status)

        if f.type is not None:
            clauses.append("i.type = ?")
            params.append(f.type)

        if f.assignee is not None:
            clauses.append("i.assignee = ?")
            params.append(f.assignee)

        if f.parent is not None:
            clauses.append("i.parent_id = ?")
            params.append(f.parent)

        if f.label is not None:
            clauses.append(
                "EXISTS (SELECT 1 FROM labels l WHERE l.item_id = i.id AND l.label = ?)"
            )
            params.append(f.label)

        return " AND ".join(clauses), params

    def _fetch(self, where: str, params: list[Any]) -> list[WorkItem]:
        """Load matching items with their labels, dependencies and comments."""
        rows = self._conn.execute(
            f"SELECT * FROM items i WHERE {where} ORDER BY i.created_at ASC, i.id ASC",
            params,
        ).fetchall()
        items = {row["id"]: self._row_to_item(row) for row in rows}
        if not items:
            return []

        subquery = f"SELECT i.id FROM items i WHERE {where}"
        for row in self._conn.execute(
            f"SELECT item_id, label FROM labels WHERE item_id IN ({subquery}) "
            "ORDER BY item_id, position",
            params,
        ):
            items[row["item_id"]].labels.append(row["label"])

        for row in self._conn.execute(
            f"SELECT item_id, depends_on_id FROM dependencies WHERE item_id IN ({subquery}) "
            "ORDER BY item_id, position",
            params,
        ):
            items[row["item_id"]].depends_on.append(row["depends_on_id"])

        for row in self._conn.execute(
            f"SELECT * FROM comments WHERE item_id IN ({subquery}) ORDER BY id ASC",
            params,
        ):
            items[row["item_id"]].comments.append(Comment(
                author=row["author"],
                body=row["body"],
                date=parse_timestamp(row["created_at"]) or now_utc(),
            ))

        return list(items.values())

    def _graph(self) -> dict[str, WorkItem]:
        return {item.id: item for item in self._fetch("1=1", [])}

    def _generate_id(self, item: WorkItem) -> str:
        # Progressive collision handling: lengthen the hash, then re-salt
        for attempt in range(_MAX_ID_ATTEMPTS):
            salt = self._id_prefix if attempt == 0 else f"{self._id_prefix}:{attempt}"
            full_hash = generate_hash_id(item.title, item.description, item.created, salt)
            for length in range(MIN_HASH_LENGTH, MAX_HASH_LENGTH + 1):
                candidate = make_item_id(self._id_prefix, full_hash, length)
                if not self.has_item(candidate):
                    return candidate
        raise TicError(f"Could not generate a unique ID for {item.title!r}")

    def _insert_row(self, item: WorkItem) -> None:
        self._conn.execute(
            """INSERT INTO items (
                id, title, type, status, priority, assignee, iteration,
                description, parent_id, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                title = excluded.title, type = excluded.type,
                status = excluded.status, priority = excluded.priority,
                assignee = excluded.assignee, iteration = excluded.iteration,
                description = excluded.description, parent_id = excluded.parent_id,
                created_at = excluded.created_at, updated_at = excluded.updated_at""",
            (
                item.id, item.title, item.type, item.status, item.priority,
                item.assignee, item.iteration, item.description, item.parent,
                format_timestamp(item.created), format_timestamp(item.updated),
            )
        )

    def _write_edges(self, item: WorkItem) -> None:
        """Replace an item's labels and dependencies."""
        self._conn.execute("DELETE FROM labels WHERE item_id = ?", (item.id,))
        for position, label in enumerate(item.labels):
            self._conn.execute(
                "INSERT OR IGNORE INTO labels (item_id, label, position) VALUES (?, ?, ?)",
                (item.id, label, position)
            )
        self._conn.execute("DELETE FROM dependencies WHERE item_id = ?", (item.id,))
        for position, dep_id in enumerate(item.depends_on):
            self._conn.execute(
                "INSERT OR IGNORE INTO dependencies (item_id, depends_on_id, position) "
                "VALUES (?, ?, ?)",
                (item.id, dep_id, position)
            )

    def _write_comments(self, item: WorkItem) -> None:
        self._conn.execute("DELETE FROM comments WHERE item_id = ?", (item.id,))
        for comment in item.comments:
            self._conn.execute(
                "INSERT INTO comments (item_id, author, body, created_at) VALUES (?, ?, ?, ?)",
                (item.id, comment.author, comment.body, format_timestamp(comment.date))
            )

    # --- Item CRUD ---

    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        now = now_utc()
        item = WorkItem(created=now, updated=now)
        apply_fields(item, fields, creating=True)
        check_fields(item)
        item.id = self._generate_id(item)

        # Validate against the graph as if the new item already existed
        check_relationships(self._graph(), item.id, item.parent, item.depends_on)

        with self._transaction():
            self._insert_row(item)
            self._write_edges(item)
        logger.debug("Created work item %s", item.id)
        return item

    def get_item(self, item_id: str) -> WorkItem:
        items = self._fetch("i.id = ?", [item_id])
        if not items:
            raise NotFoundError(item_id, "local")
        return items[0]

    def has_item(self, item_id: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM items WHERE id = ?", (item_id,)
        ).fetchone()
        return row is not None

    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        current = self.get_item(item_id)
        proposed = dataclasses.replace(
            current, labels=list(current.labels),
            depends_on=list(current.depends_on), comments=list(current.comments),
        )
        apply_fields(proposed, updates, creating=False)
        check_fields(proposed)

        # Edges are checked in their final state, not merged incrementally
        if "parent" in updates or "depends_on" in updates:
            check_relationships(self._graph(), item_id, proposed.parent,
                                proposed.depends_on, previous=current)

        proposed.updated = now_utc()
        with self._transaction():
            self._insert_row(proposed)
            self._write_edges(proposed)
        logger.debug("Updated work item %s (%s)", item_id, ", ".join(sorted(updates)))
        return proposed

    def delete_item(self, item_id: str) -> None:
        now = format_timestamp(now_utc())
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
            deleted = cur.rowcount > 0

            # Cascade repair: orphan children, drop dependency edges
            conn.execute(
                "UPDATE items SET parent_id = NULL, updated_at = ? WHERE parent_id = ?",
                (now, item_id)
            )
            dependents = [
                row["item_id"] for row in conn.execute(
                    "SELECT item_id FROM dependencies WHERE depends_on_id = ?", (item_id,)
                )
            ]
            conn.execute("DELETE FROM dependencies WHERE depends_on_id = ?", (item_id,))
            for dependent_id in dependents:
                conn.execute(
                    "UPDATE items SET updated_at = ? WHERE id = ?", (now, dependent_id)
                )
        if deleted:
            logger.debug("Deleted work item %s", item_id)

    def list_items(self, filter: ItemFilter | None = None) -> list[WorkItem]:
        if filter is None:
            return self._fetch("1=1", [])
        where, params = self._build_filter_sql(filter)
        return self._fetch(where, params)

    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        if not self.has_item(item_id):
            raise NotFoundError(item_id, "local")
        comment = Comment(author=author, body=body, date=now_utc())
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO comments (item_id, author, body, created_at) VALUES (?, ?, ?, ?)",
                (item_id, author, body, format_timestamp(comment.date))
            )
            conn.execute(
                "UPDATE items SET updated_at = ? WHERE id = ?",
                (format_timestamp(comment.date), item_id)
            )
        return comment

    # --- Raw writes (sync) ---

    def write_item(self, item: WorkItem) -> None:
        with self._transaction():
            self._insert_row(item)
            self._write_edges(item)
            self._write_comments(item)

    def rename_item(self, old_id: str, new_id: str) -> None:
        if old_id == new_id:
            return
        if not self.has_item(old_id):
            raise NotFoundError(old_id, "local")
        with self._transaction() as conn:
            # The remote says new_id is this item; a stale copy is superseded
            conn.execute("DELETE FROM items WHERE id = ?", (new_id,))
            # Labels, dependencies and comments follow via ON UPDATE CASCADE
            conn.execute("UPDATE items SET id = ? WHERE id = ?", (new_id, old_id))
            conn.execute(
                "UPDATE items SET parent_id = ? WHERE parent_id = ?", (new_id, old_id)
            )
            conn.execute(
                "UPDATE OR IGNORE dependencies SET depends_on_id = ? WHERE depends_on_id = ?",
                (new_id, old_id)
            )
            # Rows left behind already had an edge to new_id
            conn.execute("DELETE FROM dependencies WHERE depends_on_id = ?", (old_id,))
        logger.info("Renamed work item %s -> %s", old_id, new_id)

    # --- Metadata ---

    def get_metadata(self, key: str) -> str | None:
        row = self._conn.execute(
            "SELECT value FROM metadata WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_metadata(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO metadata (key, value) VALUES (?, ?) "
            "ON CONFLICT (key) DO UPDATE SET value = excluded.value",
            (key, value)
        )
        self._conn.commit()


def open_store(db_path: str, id_prefix: str = "tic", temp_ids: bool = False) -> SQLiteItemStore:
    """Open or create a SQLite item store at the given path."""
    return SQLiteItemStore(db_path, id_prefix=id_prefix, temp_ids=temp_ids)
