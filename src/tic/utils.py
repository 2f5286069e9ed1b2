"""Utility functions for the tic CLI."""

from __future__ import annotations

from datetime import datetime, timezone

from tic.models import Priority, WorkItem


def resolve_partial_id(partial: str, all_ids: list[str]) -> str | None:
    """Resolve a partial ID to a full ID.

    An exact match wins; otherwise the partial must be a prefix of exactly
    one ID.
    """
    if partial in all_ids:
        return partial
    matches = [i for i in all_ids if i.startswith(partial)]
    if len(matches) == 1:
        return matches[0]
    return None


def priority_symbol(priority: str) -> str:
    """Return a one-character marker for list display."""
    symbols = {
        Priority.LOW: ".",
        Priority.MEDIUM: "-",
        Priority.HIGH: "!",
        Priority.CRITICAL: "*",
    }
    return symbols.get(priority, "?")


def format_time_ago(dt: datetime) -> str:
    """Format a datetime as a relative time string."""
    now = datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = now - dt
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 30:
        return f"{days}d ago"
    months = days // 30
    if months < 12:
        return f"{months}mo ago"
    years = days // 365
    return f"{years}y ago"


def truncate(s: str, max_len: int = 60) -> str:
    """Truncate a string with ellipsis."""
    if len(s) <= max_len:
        return s
    return s[:max_len - 3] + "..."


def format_item_row(item: WorkItem, long_format: bool = False) -> str:
    """Format an item as a single-line row for list display."""
    sym = priority_symbol(item.priority)
    title = truncate(item.title, 50)
    if long_format:
        assignee = item.assignee or "-"
        age = format_time_ago(item.updated)
        return (f"[{sym}] {item.id:<16} {item.status:<12} {item.type:<8} "
                f"{assignee:<15} {title}  ({age})")
    return f"[{sym}] {item.id:<16} {item.status:<12} {title}"
