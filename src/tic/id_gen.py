"""Work item ID generation.

IDs are ``<prefix>-<hex>`` where the hex part is a prefix of a SHA256 over the
item's title, description, creation time and a workspace salt. Callers start
with 6 hex chars and lengthen on collision.

Items created while a remote is configured get the ``local`` prefix: they
are temporary until the remote assigns its own identifier on push.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

TEMP_PREFIX = "local"
MIN_HASH_LENGTH = 6
MAX_HASH_LENGTH = 12


def generate_hash_id(title: str, description: str, created: datetime,
                     workspace_id: str) -> str:
    """Return the full 64-char SHA256 hex digest used to derive item IDs."""
    h = hashlib.sha256()
    h.update(title.encode("utf-8"))
    h.update(description.encode("utf-8"))
    ts = created.isoformat()
    if ts.endswith("+00:00"):
        ts = ts[:-6] + "Z"
    h.update(ts.encode("utf-8"))
    h.update(workspace_id.encode("utf-8"))
    return h.hexdigest()


def make_item_id(prefix: str, full_hash: str, length: int = MIN_HASH_LENGTH) -> str:
    """Create an item ID from prefix and hash.

    Example: tic-a3f2dd (6 chars), tic-a3f2dda (7 chars)
    """
    return f"{prefix}-{full_hash[:length]}"


def is_temp_id(item_id: str) -> bool:
    """True if the ID was generated locally pending remote assignment."""
    return item_id.startswith(TEMP_PREFIX + "-")
