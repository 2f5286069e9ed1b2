"""Tests for push/pull reconciliation."""

import os
import tempfile

import pytest

from tic.config import TicConfig
from tic.errors import NotFoundError, QueueError, RemoteError
from tic.models import QueueAction, QueueEntry, SyncState, WorkItem
from tic.sources.local import LocalSource
from tic.storage.sqlite_store import SQLiteItemStore
from tic.sync.engine import LAST_SYNC_KEY, SyncEngine
from tic.sync.queue import MutationQueue


@pytest.fixture
def tic_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def local(tic_dir: str):
    store = SQLiteItemStore(os.path.join(tic_dir, "tic.db"), temp_ids=True)
    source = LocalSource(store, TicConfig(backend="jsonl"), tic_dir,
                         MutationQueue.for_dir(tic_dir))
    yield source
    store.close()


@pytest.fixture
def engine(local: LocalSource, remote) -> SyncEngine:
    return SyncEngine(local, remote, local.queue)


@pytest.fixture
def states(engine: SyncEngine) -> list[str]:
    seen: list[str] = []
    engine.on_status_change(lambda status: seen.append(status.state))
    return seen


def _both(local: LocalSource, remote, item: WorkItem) -> None:
    """Put an already-synced item on both sides."""
    local.store.write_item(item)
    remote.seed(WorkItem.from_dict(item.to_dict()))


class TestPush:
    def test_empty_queue(self, engine: SyncEngine, states: list[str]):
        result = engine.push_pending()
        assert (result.pushed, result.failed) == (0, 0)
        assert engine.get_status().state == SyncState.IDLE
        assert states == ["syncing", "idle"]

    def test_create_remaps_id(self, engine: SyncEngine, local: LocalSource, remote):
        item = local.create_item({"title": "Offline"})
        result = engine.push_pending()

        assert result.pushed == 1
        assert result.id_mappings == {item.id: "R-1"}
        assert local.store.get_item("R-1").title == "Offline"
        with pytest.raises(NotFoundError):
            local.store.get_item(item.id)
        assert local.queue.read().pending == []
        assert remote.items["R-1"].title == "Offline"

    def test_later_entries_follow_remap(self, engine: SyncEngine, local: LocalSource, remote):
        item = local.create_item({"title": "Draft"})
        local.update_item(item.id, {"title": "Final"})
        local.add_comment(item.id, "alice", "ready")

        result = engine.push_pending()

        assert (result.pushed, result.failed) == (3, 0)
        # The create already carries the edited title
        assert remote.calls == [("create", "Final"), ("update", "R-1"), ("comment", "R-1")]
        assert remote.items["R-1"].title == "Final"
        assert [c.body for c in remote.items["R-1"].comments] == ["ready"]
        assert local.queue.read().pending == []

    def test_references_rewritten_before_dependent_create(
            self, engine: SyncEngine, local: LocalSource, remote):
        parent = local.create_item({"title": "Epic"})
        blocker = local.create_item({"title": "Blocker"})
        child = local.create_item({"title": "Task", "parent": parent.id,
                                   "depends_on": [blocker.id]})

        result = engine.push_pending()

        assert result.id_mappings == {parent.id: "R-1", blocker.id: "R-2", child.id: "R-3"}
        assert remote.items["R-3"].parent == "R-1"
        assert remote.items["R-3"].depends_on == ["R-2"]
        assert local.store.get_item("R-3").parent == "R-1"

    def test_failure_isolated_to_one_entry(
            self, engine: SyncEngine, local: LocalSource, remote, states: list[str]):
        for n in (1, 2, 3):
            _both(local, remote, WorkItem(id=f"R-{n}", title=f"Item {n}"))
            local.update_item(f"R-{n}", {"status": "done"})
        remote.fail.add(("update", "R-2"))

        result = engine.push_pending()

        assert (result.pushed, result.failed) == (2, 1)
        assert [(e.action, e.item_id) for e in local.queue.read().pending] == [("update", "R-2")]
        assert remote.items["R-1"].status == "done"
        assert remote.items["R-3"].status == "done"
        assert result.errors[0].entry.item_id == "R-2"
        assert "rejected" in result.errors[0].message
        status = engine.get_status()
        assert status.state == SyncState.ERROR
        assert status.pending_count == 1
        assert len(status.errors) == 1
        assert states == ["syncing", "error"]

        remote.fail.clear()
        retry = engine.push_pending()
        assert (retry.pushed, retry.failed) == (1, 0)
        assert engine.get_status().state == SyncState.IDLE
        assert engine.get_status().errors == []

    def test_failed_entry_keeps_position(self, engine: SyncEngine, local: LocalSource, remote):
        for n in (1, 2):
            _both(local, remote, WorkItem(id=f"R-{n}", title=f"Item {n}"))
        local.update_item("R-1", {"status": "done"})
        local.update_item("R-2", {"status": "done"})
        remote.fail.add(("update", "R-1"))
        engine.push_pending()
        local.add_comment("R-2", "alice", "later")
        assert [(e.action, e.item_id) for e in local.queue.read().pending] == [
            ("update", "R-1"), ("comment", "R-2"),
        ]

    def test_failed_create_keeps_temp_id(self, engine: SyncEngine, local: LocalSource, remote):
        item = local.create_item({"title": "Bad"})
        remote.fail.add(("create", "Bad"))
        result = engine.push_pending()
        assert result.failed == 1
        assert result.id_mappings == {}
        assert local.store.has_item(item.id)
        assert local.queue.has_pending(item.id, QueueAction.CREATE)

    def test_locally_deleted_target_is_dropped(self, engine: SyncEngine, local: LocalSource):
        local.queue.append(QueueEntry(action=QueueAction.UPDATE, item_id="R-gone"))
        local.queue.append(QueueEntry(action=QueueAction.CREATE, item_id="local-gone"))
        result = engine.push_pending()
        assert (result.pushed, result.failed) == (0, 0)
        assert local.queue.read().pending == []
        assert engine.get_status().state == SyncState.IDLE

    def test_delete_needs_no_local_copy(self, engine: SyncEngine, local: LocalSource, remote):
        _both(local, remote, WorkItem(id="R-1", title="Doomed"))
        local.delete_item("R-1")
        result = engine.push_pending()
        assert result.pushed == 1
        assert "R-1" not in remote.items

    def test_remote_missing_item_is_a_failure(self, engine: SyncEngine, local: LocalSource):
        local.store.write_item(WorkItem(id="R-9", title="Only here"))
        local.update_item("R-9", {"status": "done"})
        result = engine.push_pending()
        assert result.failed == 1
        assert local.queue.count() == 1

    def test_unsubscribe(self, engine: SyncEngine):
        seen = []
        unsubscribe = engine.on_status_change(lambda s: seen.append(s.state))
        unsubscribe()
        engine.push_pending()
        assert seen == []


class TestPull:
    def test_overwrites_local_fields(self, engine: SyncEngine, local: LocalSource, remote):
        local.store.write_item(WorkItem(id="R-1", title="Old", status="todo",
                                        priority="low", assignee="me", labels=["x"],
                                        description="old text"))
        remote.seed(WorkItem(id="R-1", title="New", status="done", priority="critical",
                             assignee="", labels=["y", "z"], description="new text"))

        assert engine.pull() == 1

        got = local.store.get_item("R-1")
        assert got.to_fields() == remote.items["R-1"].to_fields()

    def test_deletes_items_missing_remotely(self, engine: SyncEngine, local: LocalSource, remote):
        local.store.write_item(WorkItem(id="R-1", title="Deleted elsewhere"))
        local.store.write_item(WorkItem(id="R-2", title="Child", parent="R-1"))
        remote.seed(WorkItem(id="R-2", title="Child", parent="R-1"))
        engine.pull()
        assert not local.store.has_item("R-1")
        assert local.store.has_item("R-2")

    def test_pending_items_survive(self, engine: SyncEngine, local: LocalSource):
        item = local.create_item({"title": "Not pushed yet"})
        assert engine.pull() == 0
        assert local.store.has_item(item.id)

    def test_pending_delete_not_resurrected(self, engine: SyncEngine, local: LocalSource, remote):
        _both(local, remote, WorkItem(id="R-1", title="Deleted offline"))
        local.delete_item("R-1")
        engine.pull()
        assert not local.store.has_item("R-1")
        assert local.queue.has_pending("R-1", QueueAction.DELETE)

    def test_merges_vocabulary(self, engine: SyncEngine, local: LocalSource, tic_dir: str):
        engine.pull()
        assert local.get_current_iteration() == "sprint-2"
        assert local.get_iterations() == ["default", "sprint-2"]
        assert local.get_statuses() == ["todo", "doing", "done"]
        assert local.get_work_item_types() == ["bug", "task"]
        assert TicConfig.load(tic_dir).current_iteration == "sprint-2"

    def test_pull_brings_comments(self, engine: SyncEngine, local: LocalSource, remote):
        remote.seed(WorkItem(id="R-1", title="Discussed"))
        remote.add_comment("R-1", "bob", "from the web")
        engine.pull()
        assert [c.body for c in local.store.get_item("R-1").comments] == ["from the web"]


class TestSync:
    def test_end_to_end_remap(self, engine: SyncEngine, local: LocalSource, remote):
        item = local.create_item({
            "title": "Ship it", "priority": "high", "labels": ["release"],
            "assignee": "alice", "description": "Cut the release branch",
        })
        fields = item.to_fields()

        result = engine.sync()

        items = local.store.list_items()
        assert len(items) == 1
        assert items[0].id == "R-1"
        assert items[0].to_fields() == fields
        assert local.queue.read().pending == []
        assert result.push.id_mappings == {item.id: "R-1"}
        assert result.pull_count == 1

    def test_status_and_last_sync_time(self, engine: SyncEngine, local: LocalSource,
                                       states: list[str]):
        assert engine.get_status().last_sync_time is None
        engine.sync()
        status = engine.get_status()
        assert status.state == SyncState.IDLE
        assert status.last_sync_time is not None
        assert local.store.get_metadata(LAST_SYNC_KEY) is not None
        assert states == ["syncing", "idle"]

    def test_last_sync_time_restored(self, engine: SyncEngine, local: LocalSource, remote):
        engine.sync()
        again = SyncEngine(local, remote, local.queue)
        assert again.get_status().last_sync_time == engine.get_status().last_sync_time

    def test_push_failure_still_pulls(self, engine: SyncEngine, local: LocalSource, remote):
        local.create_item({"title": "Stuck"})
        remote.fail.add(("create", "Stuck"))
        remote.seed(WorkItem(id="R-5", title="From remote"))
        result = engine.sync()
        assert result.push.failed == 1
        assert result.pull_count == 1
        assert local.store.has_item("R-5")
        assert engine.get_status().state == SyncState.ERROR

    def test_pull_failure_propagates(self, engine: SyncEngine, remote, states: list[str]):
        remote.fail_listing = True
        with pytest.raises(RemoteError):
            engine.sync()
        status = engine.get_status()
        assert status.state == SyncState.ERROR
        assert status.errors[-1].entry is None
        assert "pull failed" in status.errors[-1].message
        assert states == ["syncing", "error"]

    def test_unreadable_queue_ends_in_error(self, engine: SyncEngine, local: LocalSource,
                                            states: list[str]):
        with open(local.queue.path, "w") as f:
            f.write("{not json")
        with pytest.raises(QueueError):
            engine.push_pending()
        assert engine.get_status().state == SyncState.ERROR
        assert "push failed" in engine.get_status().errors[-1].message
        assert states == ["syncing", "error"]

        with pytest.raises(QueueError):
            engine.sync()
        assert engine.get_status().state == SyncState.ERROR
        assert states == ["syncing", "error", "syncing", "error"]

    def test_remap_failure_ends_in_error(self, engine: SyncEngine, local: LocalSource,
                                         monkeypatch, states: list[str]):
        local.create_item({"title": "Offline"})

        def broken_rename(old_id: str, new_id: str) -> None:
            raise RuntimeError("disk full")

        monkeypatch.setattr(local.store, "rename_item", broken_rename)
        with pytest.raises(RuntimeError):
            engine.sync()
        assert engine.get_status().state == SyncState.ERROR
        assert states == ["syncing", "error"]


class TestPullOnly:
    def test_records_status_and_sync_time(self, engine: SyncEngine, local: LocalSource,
                                          remote, states: list[str]):
        remote.seed(WorkItem(id="R-1", title="Remote"))
        assert engine.pull_only() == 1
        assert local.store.has_item("R-1")
        assert states == ["syncing", "idle"]
        assert engine.get_status().last_sync_time is not None
        assert local.store.get_metadata(LAST_SYNC_KEY) is not None

    def test_does_not_push(self, engine: SyncEngine, local: LocalSource, remote):
        local.create_item({"title": "Queued"})
        engine.pull_only()
        assert remote.calls == []
        assert local.queue.count() == 1

    def test_keeps_retained_push_failures(self, engine: SyncEngine, local: LocalSource,
                                          remote, states: list[str]):
        local.create_item({"title": "Stuck"})
        remote.fail.add(("create", "Stuck"))
        engine.push_pending()
        engine.pull_only()
        assert states[-2:] == ["syncing", "error"]
        assert len(engine.get_status().errors) == 1

    def test_failure_propagates(self, engine: SyncEngine, remote, states: list[str]):
        remote.fail_listing = True
        with pytest.raises(RemoteError):
            engine.pull_only()
        assert engine.get_status().last_sync_time is None
        assert states == ["syncing", "error"]

    def test_recovers_after_failed_pull(self, engine: SyncEngine, remote):
        remote.fail_listing = True
        with pytest.raises(RemoteError):
            engine.pull_only()
        remote.fail_listing = False
        engine.pull_only()
        assert engine.get_status().state == SyncState.IDLE
        assert engine.get_status().errors == []


class TestDanglingReferences:
    def test_edit_after_pull_skips_deleted_dependency(
            self, engine: SyncEngine, local: LocalSource, remote):
        _both(local, remote, WorkItem(id="R-1", title="Blocker"))
        _both(local, remote, WorkItem(id="R-2", title="Blocked", depends_on=["R-1"]))
        _both(local, remote, WorkItem(id="R-3", title="Epic"))
        local.delete_item("R-1")

        # The queued delete keeps R-1 out, but R-2 comes back still pointing at it
        engine.pull_only()
        assert local.store.get_item("R-2").depends_on == ["R-1"]

        moved = local.update_item("R-2", {"parent": "R-3"})
        assert moved.parent == "R-3"
