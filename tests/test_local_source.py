"""Tests for the local source and its queueing of mutations."""

import os
import tempfile

import pytest

from tic.config import TicConfig
from tic.errors import ValidationError
from tic.models import QueueAction, WorkItem
from tic.sources.local import LocalSource
from tic.storage.sqlite_store import SQLiteItemStore
from tic.sync.queue import MutationQueue


@pytest.fixture
def tic_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def local(tic_dir: str):
    store = SQLiteItemStore(os.path.join(tic_dir, "tic.db"), temp_ids=True)
    config = TicConfig(backend="jsonl")
    source = LocalSource(store, config, tic_dir, MutationQueue.for_dir(tic_dir))
    yield source
    store.close()


def _pending(source: LocalSource) -> list[tuple[str, str]]:
    return [(e.action, e.item_id) for e in source.queue.read().pending]


class TestQueueing:
    def test_create_applies_defaults_and_queues(self, local: LocalSource):
        item = local.create_item({"title": "New"})
        assert item.id.startswith("local-")
        assert item.iteration == "default"
        assert item.status == "backlog"
        assert _pending(local) == [("create", item.id)]

    def test_update_queues(self, local: LocalSource):
        local.store.write_item(WorkItem(id="R-1", title="Pushed"))
        local.update_item("R-1", {"status": "done"})
        local.update_item("R-1", {"assignee": "bob"})
        assert _pending(local) == [("update", "R-1")]

    def test_delete_queues_for_pushed_item(self, local: LocalSource):
        local.store.write_item(WorkItem(id="R-1", title="Pushed"))
        local.delete_item("R-1")
        assert _pending(local) == [("delete", "R-1")]

    def test_delete_unpushed_item_forgets_it(self, local: LocalSource):
        item = local.create_item({"title": "Draft"})
        local.update_item(item.id, {"title": "Draft 2"})
        local.delete_item(item.id)
        assert _pending(local) == []
        assert not local.store.has_item(item.id)

    def test_delete_missing_queues_nothing(self, local: LocalSource):
        local.delete_item("R-404")
        assert _pending(local) == []

    def test_comment_queues_payload(self, local: LocalSource):
        local.store.write_item(WorkItem(id="R-1", title="Pushed"))
        local.add_comment("R-1", "alice", "looks good")
        entries = local.queue.read().pending
        assert entries[0].action == QueueAction.COMMENT
        assert entries[0].comment.author == "alice"
        assert entries[0].comment.body == "looks good"

    def test_failed_create_queues_nothing(self, local: LocalSource):
        with pytest.raises(ValidationError):
            local.create_item({"title": "Orphan", "parent": "R-404"})
        assert _pending(local) == []

    def test_no_queue_for_local_projects(self, tic_dir: str):
        store = SQLiteItemStore(":memory:")
        source = LocalSource(store, TicConfig())
        item = source.create_item({"title": "Solo"})
        assert item.id.startswith("tic-")
        assert not os.path.exists(os.path.join(tic_dir, "sync-queue.json"))
        store.close()


class TestVocabulary:
    def test_new_iteration_is_remembered(self, local: LocalSource, tic_dir: str):
        local.create_item({"title": "Later", "iteration": "sprint-9"})
        assert "sprint-9" in local.get_iterations()
        reloaded = TicConfig.load(tic_dir)
        assert "sprint-9" in reloaded.iterations

    def test_set_current_iteration(self, local: LocalSource, tic_dir: str):
        local.set_current_iteration("sprint-2")
        assert local.get_current_iteration() == "sprint-2"
        assert local.create_item({"title": "X"}).iteration == "sprint-2"
        assert TicConfig.load(tic_dir).current_iteration == "sprint-2"

    def test_config_statuses_drive_default(self, tic_dir: str):
        store = SQLiteItemStore(":memory:")
        config = TicConfig(statuses=["open", "closed"])
        source = LocalSource(store, config)
        assert source.create_item({"title": "X"}).status == "open"
        assert source.get_statuses() == ["open", "closed"]
        store.close()
