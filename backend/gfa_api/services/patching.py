"""
Partial-update application shared by event and profile updates.

A patch is the dict of fields the client actually sent
(``model_dump(exclude_unset=True)``). Absent fields are never touched.
An explicit ``None`` clears a nullable column and is ignored for a
required one.
"""

from typing import Any, Iterable


def apply_patch(target: Any, patch: dict[str, Any], required: Iterable[str] = ()) -> list[str]:
    """Apply ``patch`` to ``target`` in place and return the names that changed."""
    required = set(required)
    changed = []
    for field, value in patch.items():
        if value is None and field in required:
            continue
        if getattr(target, field) != value:
            setattr(target, field, value)
            changed.append(field)
    return changed
