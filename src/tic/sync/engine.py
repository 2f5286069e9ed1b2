"""Push/pull reconciliation between the local project and a remote source.

Push replays the mutation queue against the remote in enqueue order,
renaming items whose temporary id the remote replaced. Pull then makes the
local store match the remote listing, keeping anything still queued.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable

from tic.errors import NotFoundError, RemoteError
from tic.models import (
    PushResult, QueueAction, QueueEntry, SyncError, SyncResult, SyncState, SyncStatus,
    format_timestamp, now_utc, parse_timestamp,
)
from tic.sources.interface import ItemSource
from tic.sources.local import LocalSource
from tic.sync.queue import MutationQueue

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "last_sync_time"

StatusListener = Callable[[SyncStatus], None]


class SyncEngine:
    """Drains the mutation queue to a remote and pulls the remote back.

    Args:
        local: The local source; its store receives pulled records.
        remote: Source of record.
        queue: Pending local mutations.
    """

    def __init__(self, local: LocalSource, remote: ItemSource, queue: MutationQueue):
        self.local = local
        self.remote = remote
        self.queue = queue
        self._listeners: list[StatusListener] = []
        last = local.store.get_metadata(LAST_SYNC_KEY)
        self._status = SyncStatus(
            pending_count=queue.count(),
            last_sync_time=parse_timestamp(last),
        )

    # --- Status ---

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_status(self) -> SyncStatus:
        return dataclasses.replace(self._status, errors=list(self._status.errors))

    def _set_state(self, state: str) -> None:
        self._status.state = state
        snapshot = self.get_status()
        for listener in list(self._listeners):
            listener(snapshot)

    # --- Push ---

    def push_pending(self) -> PushResult:
        """Replay every queued mutation against the remote."""
        self._set_state(SyncState.SYNCING)
        result = self._guarded_push()
        self._set_state(SyncState.ERROR if result.failed else SyncState.IDLE)
        return result

    def _guarded_push(self) -> PushResult:
        # A push that dies midway still has to end in a terminal state
        try:
            return self._push()
        except Exception as e:
            self._status.errors.append(SyncError(entry=None, message=f"push failed: {e}"))
            self._set_state(SyncState.ERROR)
            raise

    def _push(self) -> PushResult:
        result = PushResult()
        snapshot = self.queue.read()
        if snapshot.pending:
            logger.debug("Pushing %d queued entries", len(snapshot.pending))

        for entry in snapshot.pending:
            # An earlier create in this batch may have renamed the target
            item_id = result.id_mappings.get(entry.item_id, entry.item_id)
            current = dataclasses.replace(entry, item_id=item_id)
            try:
                new_id = self._push_entry(current)
            except NotFoundError as e:
                if e.where == "local":
                    logger.debug("Dropping %s for %s: no longer exists locally",
                                 entry.action, item_id)
                    self.queue.discard(current)
                    continue
                self._record_failure(result, current, str(e))
                continue
            except Exception as e:
                self._record_failure(result, current, str(e))
                continue

            if new_id != item_id:
                self.local.store.rename_item(item_id, new_id)
                self.queue.rename_item(item_id, new_id)
                result.id_mappings[item_id] = new_id
                logger.info("Remote assigned %s to %s", new_id, item_id)
                current = dataclasses.replace(current, item_id=new_id)
            self.queue.discard(current)
            result.pushed += 1

        self._status.errors = list(result.errors)
        self._status.pending_count = self.queue.count()
        return result

    def _push_entry(self, entry: QueueEntry) -> str:
        """Send one entry to the remote; returns the item's id on the remote."""
        if entry.action == QueueAction.CREATE:
            item = self.local.store.get_item(entry.item_id)
            return self.remote.create_item(item.to_fields()).id
        if entry.action == QueueAction.UPDATE:
            item = self.local.store.get_item(entry.item_id)
            self.remote.update_item(entry.item_id, item.to_fields())
        elif entry.action == QueueAction.DELETE:
            self.remote.delete_item(entry.item_id)
        elif entry.action == QueueAction.COMMENT:
            if entry.comment is None:
                raise ValueError("comment entry has no payload")
            self.remote.add_comment(entry.item_id, entry.comment.author, entry.comment.body)
        else:
            raise ValueError(f"unknown queue action: {entry.action}")
        return entry.item_id

    @staticmethod
    def _record_failure(result: PushResult, entry: QueueEntry, message: str) -> None:
        logger.warning("Push of %s for %s failed: %s", entry.action, entry.item_id, message)
        result.failed += 1
        result.errors.append(SyncError(entry=entry, message=message))

    # --- Pull ---

    def pull(self) -> int:
        """Overwrite local state with the remote's. Returns the remote item count."""
        self.local.sync_config_from_remote(
            iterations=self.remote.get_iterations(),
            current_iteration=self.remote.get_current_iteration(),
            statuses=self.remote.get_statuses(),
            types=self.remote.get_work_item_types(),
        )
        remote_items = self.remote.list_items()
        queue = self.queue.read()
        pending = {e.item_id for e in queue.pending}
        pending_deletes = {
            e.item_id for e in queue.pending if e.action == QueueAction.DELETE
        }

        store = self.local.store
        remote_ids = set()
        for item in remote_items:
            remote_ids.add(item.id)
            if item.id in pending_deletes:
                continue
            store.write_item(item)

        removed = 0
        for item in store.list_items():
            if item.id not in remote_ids and item.id not in pending:
                store.delete_item(item.id)
                removed += 1

        logger.info("Pulled %d items (%d removed locally)", len(remote_items), removed)
        return len(remote_items)

    # --- Sync ---

    def _guarded_pull(self) -> int:
        try:
            return self.pull()
        except Exception as e:
            self._status.errors.append(SyncError(entry=None, message=f"pull failed: {e}"))
            self._set_state(SyncState.ERROR)
            if isinstance(e, RemoteError):
                raise
            raise RemoteError(f"pull failed: {e}") from e

    def _record_sync_time(self) -> None:
        now = now_utc()
        self._status.last_sync_time = now
        self._status.pending_count = self.queue.count()
        self.local.store.set_metadata(LAST_SYNC_KEY, format_timestamp(now))

    def sync(self) -> SyncResult:
        """Push then pull. A failed pull leaves the status in error and re-raises."""
        self._set_state(SyncState.SYNCING)
        push = self._guarded_push()
        pull_count = self._guarded_pull()
        self._record_sync_time()
        self._set_state(SyncState.ERROR if push.failed else SyncState.IDLE)
        return SyncResult(push=push, pull_count=pull_count)

    def pull_only(self) -> int:
        """Pull without pushing, with the same status events and sync time as sync().

        Failures from an earlier push stay recorded (their entries are still
        queued), so the status only returns to idle when none are left.
        """
        self._set_state(SyncState.SYNCING)
        pull_count = self._guarded_pull()
        self._record_sync_time()
        self._status.errors = [e for e in self._status.errors if e.entry is not None]
        self._set_state(SyncState.ERROR if self._status.errors else SyncState.IDLE)
        return pull_count
