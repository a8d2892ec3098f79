"""Tag normalization shared by every route that writes a post."""

from __future__ import annotations

from typing import Any

DEFAULT_TAG = "uncategorised"


def normalize_tags(value: Any, default: str = DEFAULT_TAG) -> list[str]:
    """Coerce an arbitrary front matter ``tags`` value into a tag list.

    Scalars become a one-item list. Falsy items (``0``, ``False``, blanks)
    are skipped, the rest are stringified and trimmed, and duplicates are
    dropped (first occurrence wins). The result is never empty:
    ``[default]`` is returned when nothing survives.
    """
    if not value:
        return [default]
    items = value if isinstance(value, (list, tuple, set)) else [value]

    cleaned: list[str] = []
    for item in items:
        if not item:
            continue
        tag = str(item).strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned or [default]
