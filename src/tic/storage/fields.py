"""Field normalization and validation shared by every item store."""

from __future__ import annotations

from typing import Any

from tic.errors import ValidationError
from tic.models import USER_FIELDS, WorkItem


def apply_fields(item: WorkItem, fields: dict[str, Any], *, creating: bool) -> None:
    """Copy caller-supplied fields onto an item, normalizing empty values.

    ``parent`` of ``""`` means no parent; ``labels`` and ``depends_on`` are
    de-duplicated keeping first occurrence. Raises ValidationError for
    fields a caller may not set.
    """
    for key, value in fields.items():
        if key not in USER_FIELDS:
            rule = "invalid-field" if creating else "immutable-field"
            raise ValidationError(rule, f"Unknown or read-only field: {key}")
        if key == "parent":
            value = str(value) if value not in (None, "") else None
        elif key == "depends_on":
            value = list(dict.fromkeys(str(v) for v in (value or [])))
        elif key == "labels":
            value = list(dict.fromkeys(value or []))
        elif value is None:
            value = ""
        setattr(item, key, value)


def check_fields(item: WorkItem) -> None:
    err = item.validate()
    if err is None:
        return
    rule = "title-required" if not item.title else "invalid-field"
    raise ValidationError(rule, err)
