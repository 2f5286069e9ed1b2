"""Core data models for work items, queue entries and sync status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


# --- Priority constants ---

class Priority:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    # Ordinal order, lowest first
    _ORDER = (LOW, MEDIUM, HIGH, CRITICAL)

    @classmethod
    def is_valid(cls, p: str) -> bool:
        return p in cls._ORDER

    @classmethod
    def rank(cls, p: str) -> int:
        """Ordinal of a priority (low=0 ... critical=3); unknown sorts lowest."""
        try:
            return cls._ORDER.index(p)
        except ValueError:
            return -1

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return cls._ORDER


# --- QueueAction constants ---

class QueueAction:
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    COMMENT = "comment"

    _VALID = {CREATE, UPDATE, DELETE, COMMENT}

    # Actions where a newer entry supersedes an older one for the same item
    _COLLAPSIBLE = {UPDATE, DELETE}

    @classmethod
    def is_valid(cls, a: str) -> bool:
        return a in cls._VALID

    @classmethod
    def collapses(cls, a: str) -> bool:
        return a in cls._COLLAPSIBLE


# --- SyncState constants ---

class SyncState:
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


# Fields a caller may set on create/update; also what is sent to a remote.
USER_FIELDS = (
    "title", "type", "status", "priority", "assignee", "labels",
    "iteration", "description", "parent", "depends_on",
)

MAX_TITLE_LENGTH = 500


# --- Helper: RFC3339 timestamp handling ---

def parse_timestamp(s: str | None) -> datetime | None:
    """Parse RFC3339 timestamp string to datetime."""
    if not s:
        return None
    s = s.strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Cannot parse timestamp: {s}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime | None) -> str | None:
    """Format datetime to RFC3339 string."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    s = dt.isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


def now_utc() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


# --- Dataclasses ---

@dataclass
class Comment:
    author: str = ""
    body: str = ""
    date: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict:
        return {
            "author": self.author,
            "date": format_timestamp(self.date),
            "body": self.body,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Comment:
        return cls(
            author=d.get("author", ""),
            body=d.get("body", ""),
            date=parse_timestamp(d.get("date")) or now_utc(),
        )


@dataclass
class WorkItem:
    """A tracked unit of work.

    Relationships are plain identifier fields (``parent``, ``depends_on``);
    nothing holds a reference to another WorkItem object.
    """

    id: str = ""
    title: str = ""
    type: str = "task"
    status: str = "backlog"
    priority: str = Priority.MEDIUM
    assignee: str = ""
    labels: list[str] = field(default_factory=list)
    iteration: str = ""
    description: str = ""
    comments: list[Comment] = field(default_factory=list)
    parent: str | None = None
    depends_on: list[str] = field(default_factory=list)
    created: datetime = field(default_factory=now_utc)
    updated: datetime = field(default_factory=now_utc)

    def validate(self) -> str | None:
        """Validate scalar fields. Returns error message or None if valid."""
        if not self.title:
            return "title is required"
        if len(self.title) > MAX_TITLE_LENGTH:
            return (f"title must be {MAX_TITLE_LENGTH} characters or less "
                    f"(got {len(self.title)})")
        if not Priority.is_valid(self.priority):
            return (f"invalid priority: {self.priority} "
                    f"(expected one of {', '.join(Priority.values())})")
        return None

    def to_fields(self) -> dict[str, Any]:
        """User-visible fields only: no id, timestamps or comments."""
        return {
            "title": self.title,
            "type": self.type,
            "status": self.status,
            "priority": self.priority,
            "assignee": self.assignee,
            "labels": list(self.labels),
            "iteration": self.iteration,
            "description": self.description,
            "parent": self.parent,
            "depends_on": list(self.depends_on),
        }

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"id": self.id}
        d.update(self.to_fields())
        d["created"] = format_timestamp(self.created)
        d["updated"] = format_timestamp(self.updated)
        d["comments"] = [c.to_dict() for c in self.comments]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> WorkItem:
        """Deserialize; absent optional fields come back as their empty values."""
        parent = d.get("parent")
        return cls(
            id=str(d.get("id", "")),
            title=d.get("title", ""),
            type=d.get("type") or "task",
            status=d.get("status") or "backlog",
            priority=d.get("priority") or Priority.MEDIUM,
            assignee=d.get("assignee") or "",
            labels=list(d.get("labels") or []),
            iteration=d.get("iteration") or "",
            description=d.get("description") or "",
            comments=[Comment.from_dict(c) for c in (d.get("comments") or [])],
            parent=str(parent) if parent is not None else None,
            depends_on=[str(x) for x in (d.get("depends_on") or [])],
            created=parse_timestamp(d.get("created")) or now_utc(),
            updated=parse_timestamp(d.get("updated")) or now_utc(),
        )


@dataclass
class ItemFilter:
    """Filter for item listings. ``None`` fields do not constrain."""
    iteration: str | None = None
    status: str | None = None
    type: str | None = None
    assignee: str | None = None
    label: str | None = None
    parent: str | None = None

    def matches(self, item: WorkItem) -> bool:
        if self.iteration is not None and item.iteration != self.iteration:
            return False
        if self.status is not None and item.status != self.status:
            return False
        if self.type is not None and item.type != self.type:
            return False
        if self.assignee is not None and item.assignee != self.assignee:
            return False
        if self.label is not None and self.label not in item.labels:
            return False
        if self.parent is not None and item.parent != self.parent:
            return False
        return True


@dataclass
class CommentPayload:
    author: str = ""
    body: str = ""


@dataclass
class QueueEntry:
    """A pending local mutation awaiting confirmation against the remote."""
    action: str
    item_id: str
    timestamp: datetime = field(default_factory=now_utc)
    comment: CommentPayload | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "action": self.action,
            "item_id": self.item_id,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.comment is not None:
            d["comment"] = {"author": self.comment.author, "body": self.comment.body}
        return d

    @classmethod
    def from_dict(cls, d: dict) -> QueueEntry:
        c = d.get("comment")
        return cls(
            action=d["action"],
            item_id=str(d["item_id"]),
            timestamp=parse_timestamp(d.get("timestamp")) or now_utc(),
            comment=CommentPayload(c.get("author", ""), c.get("body", "")) if c else None,
        )


@dataclass
class SyncError:
    entry: QueueEntry | None
    message: str
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict:
        return {
            "entry": self.entry.to_dict() if self.entry else None,
            "message": self.message,
            "timestamp": format_timestamp(self.timestamp),
        }


@dataclass
class SyncStatus:
    state: str = SyncState.IDLE
    pending_count: int = 0
    last_sync_time: datetime | None = None
    errors: list[SyncError] = field(default_factory=list)


@dataclass
class PushResult:
    pushed: int = 0
    failed: int = 0
    errors: list[SyncError] = field(default_factory=list)
    id_mappings: dict[str, str] = field(default_factory=dict)


@dataclass
class SyncResult:
    push: PushResult
    pull_count: int = 0
