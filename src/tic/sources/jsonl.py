"""JSONL remote source: a shared directory acting as the source of record.

Layout of the remote directory::

    items.jsonl   one JSON object per line, one line per item
    config.yml    id-prefix, next-id and the project vocabulary

Items get sequential identifiers ``<prefix>-<n>`` assigned here, so an item
created locally under a temporary ``local-`` id is renamed on first push.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any

import yaml

from tic.config import DEFAULT_ITERATION, DEFAULT_STATUSES, DEFAULT_TYPES
from tic.errors import NotFoundError, RemoteError
from tic.models import Comment, WorkItem, now_utc
from tic.sources.interface import ItemSource
from tic.storage.fields import apply_fields, check_fields
from tic.storage.graph import check_relationships

logger = logging.getLogger(__name__)

ITEMS_FILE = "items.jsonl"
REMOTE_CONFIG = "config.yml"


@dataclass
class RemoteConfig:
    """Contents of the remote's config.yml."""
    id_prefix: str = "tic"
    next_id: int = 1
    types: list[str] = field(default_factory=lambda: list(DEFAULT_TYPES))
    statuses: list[str] = field(default_factory=lambda: list(DEFAULT_STATUSES))
    iterations: list[str] = field(default_factory=lambda: [DEFAULT_ITERATION])
    current_iteration: str = DEFAULT_ITERATION

    @classmethod
    def from_dict(cls, data: dict) -> RemoteConfig:
        cfg = cls()
        cfg.id_prefix = str(data.get("id-prefix", cfg.id_prefix))
        cfg.next_id = int(data.get("next-id", 1))
        cfg.types = list(data.get("types") or DEFAULT_TYPES)
        cfg.statuses = list(data.get("statuses") or DEFAULT_STATUSES)
        cfg.iterations = list(data.get("iterations") or [DEFAULT_ITERATION])
        cfg.current_iteration = data.get("current-iteration", cfg.iterations[0])
        return cfg

    def to_dict(self) -> dict:
        return {
            "id-prefix": self.id_prefix,
            "next-id": self.next_id,
            "types": self.types,
            "statuses": self.statuses,
            "iterations": self.iterations,
            "current-iteration": self.current_iteration,
        }


class JsonlSource(ItemSource):
    """Remote source over a directory holding ``items.jsonl``.

    Every call re-reads the items file; the remote config is read once and
    kept until ``on_cache_invalidate``.
    """

    def __init__(self, path: str):
        self.path = path
        self._config: RemoteConfig | None = None

    @classmethod
    def init(cls, path: str, id_prefix: str = "tic") -> JsonlSource:
        """Create an empty remote at ``path`` (keeps existing items)."""
        os.makedirs(path, exist_ok=True)
        source = cls(path)
        if not os.path.exists(source._config_path):
            source._save_config(RemoteConfig(id_prefix=id_prefix))
        if not os.path.exists(source._items_path):
            source._save_items([])
        return source

    @property
    def _items_path(self) -> str:
        return os.path.join(self.path, ITEMS_FILE)

    @property
    def _config_path(self) -> str:
        return os.path.join(self.path, REMOTE_CONFIG)

    # --- File I/O ---

    def _check_dir(self) -> None:
        if not os.path.isdir(self.path):
            raise RemoteError(f"Remote not found: {self.path}")

    def _load_config(self) -> RemoteConfig:
        if self._config is not None:
            return self._config
        self._check_dir()
        if not os.path.exists(self._config_path):
            self._config = RemoteConfig()
            return self._config
        try:
            with open(self._config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            self._config = RemoteConfig.from_dict(data)
        except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
            raise RemoteError(f"Cannot read remote config {self._config_path}: {e}") from e
        return self._config

    def _save_config(self, cfg: RemoteConfig) -> None:
        try:
            with open(self._config_path, "w", encoding="utf-8") as f:
                yaml.dump(cfg.to_dict(), f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise RemoteError(f"Cannot write remote config {self._config_path}: {e}") from e
        self._config = cfg

    def _load_items(self) -> dict[str, WorkItem]:
        self._check_dir()
        items: dict[str, WorkItem] = {}
        if not os.path.exists(self._items_path):
            return items
        try:
            with open(self._items_path, encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        item = WorkItem.from_dict(json.loads(line))
                    except (ValueError, TypeError, AttributeError) as e:
                        raise RemoteError(
                            f"Malformed record at {self._items_path}:{line_num}: {e}"
                        ) from e
                    items[item.id] = item
        except OSError as e:
            raise RemoteError(f"Cannot read {self._items_path}: {e}") from e
        return items

    def _save_items(self, items: list[WorkItem]) -> None:
        tmp_path = self._items_path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                for item in items:
                    line = json.dumps(item.to_dict(), ensure_ascii=False, separators=(",", ":"))
                    f.write(line + "\n")
            os.replace(tmp_path, self._items_path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise RemoteError(f"Cannot write {self._items_path}: {e}") from e

    def _get(self, items: dict[str, WorkItem], item_id: str) -> WorkItem:
        item = items.get(item_id)
        if item is None:
            raise NotFoundError(item_id, "remote")
        return item

    # --- Items ---

    def list_items(self, iteration: str | None = None) -> list[WorkItem]:
        items = list(self._load_items().values())
        if iteration is None:
            return items
        return [i for i in items if i.iteration == iteration]

    def get_item(self, item_id: str) -> WorkItem:
        return self._get(self._load_items(), item_id)

    def create_item(self, fields: dict[str, Any]) -> WorkItem:
        cfg = self._load_config()
        items = self._load_items()

        fields = dict(fields)
        if not fields.get("iteration"):
            fields["iteration"] = cfg.current_iteration
        if not fields.get("status") and cfg.statuses:
            fields["status"] = cfg.statuses[0]

        now = now_utc()
        item = WorkItem(id=f"{cfg.id_prefix}-{cfg.next_id}", created=now, updated=now)
        apply_fields(item, fields, creating=True)
        check_fields(item)
        check_relationships(items, item.id, item.parent, item.depends_on)

        items[item.id] = item
        self._save_items(list(items.values()))
        cfg.next_id += 1
        if item.iteration not in cfg.iterations:
            cfg.iterations.append(item.iteration)
        self._save_config(cfg)
        logger.debug("Remote created %s", item.id)
        return item

    def update_item(self, item_id: str, updates: dict[str, Any]) -> WorkItem:
        items = self._load_items()
        item = self._get(items, item_id)
        previous = replace(item, depends_on=list(item.depends_on))
        apply_fields(item, updates, creating=False)
        check_fields(item)
        if "parent" in updates or "depends_on" in updates:
            check_relationships(items, item_id, item.parent, item.depends_on,
                                previous=previous)
        item.updated = now_utc()
        self._save_items(list(items.values()))

        cfg = self._load_config()
        if item.iteration and item.iteration not in cfg.iterations:
            cfg.iterations.append(item.iteration)
            self._save_config(cfg)
        return item

    def delete_item(self, item_id: str) -> None:
        items = self._load_items()
        if items.pop(item_id, None) is None:
            return
        now = now_utc()
        for other in items.values():
            if other.parent == item_id:
                other.parent = None
                other.updated = now
            if item_id in other.depends_on:
                other.depends_on = [d for d in other.depends_on if d != item_id]
                other.updated = now
        self._save_items(list(items.values()))
        logger.debug("Remote deleted %s", item_id)

    def add_comment(self, item_id: str, author: str, body: str) -> Comment:
        items = self._load_items()
        item = self._get(items, item_id)
        comment = Comment(author=author, body=body, date=now_utc())
        item.comments.append(comment)
        item.updated = comment.date
        self._save_items(list(items.values()))
        return comment

    # --- Vocabulary ---

    def get_iterations(self) -> list[str]:
        return list(self._load_config().iterations)

    def get_current_iteration(self) -> str:
        return self._load_config().current_iteration

    def get_statuses(self) -> list[str]:
        return list(self._load_config().statuses)

    def get_work_item_types(self) -> list[str]:
        return list(self._load_config().types)

    def on_cache_invalidate(self) -> None:
        self._config = None
