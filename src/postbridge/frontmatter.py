"""YAML front matter parsing and rendering for markdown notes."""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime
from pathlib import PurePath
from typing import Any

import yaml

from postbridge.slugs import slug_from_title, slugify

logger = logging.getLogger(__name__)

# ---\nmeta\n---\nbody
_FENCED = re.compile(r"\A(-{3,})[ \t]*\r?\n(?:(.*?)\r?\n)?\1[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL)
# meta\n---\nbody (no opening fence)
_UNFENCED = re.compile(r"\A(.+?)\r?\n-{3,}[ \t]*(?:\r?\n(.*))?\Z", re.DOTALL)


def normalize_date(value: Any) -> datetime:
    """Coerce a front matter date into an aware UTC datetime.

    Missing or unparseable values fall back to the current time. Naive
    values are taken to be UTC; numbers are epoch milliseconds.
    """
    now = datetime.now(tz=UTC)
    if value is None or value == "":
        return now
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            logger.warning("Out of range date %r, using now", value)
            return now
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            logger.warning("Unparseable date %r, using now", value)
            return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def format_date(value: datetime) -> str:
    """ISO-8601 instant with millisecond precision, e.g. ``2024-03-01T09:30:00.000Z``."""
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def split_front_matter(raw: str) -> tuple[dict[str, Any], str]:
    """Split raw note text into its front matter mapping and body.

    Text without recognizable front matter is returned whole as the body.
    """
    match = _FENCED.match(raw)
    if match:
        meta = _load_yaml(match.group(2) or "")
        if meta is not None:
            return meta, match.group(3) or ""
        return {}, raw

    match = _UNFENCED.match(raw)
    if match:
        meta = _load_yaml(match.group(1))
        if meta:
            return meta, match.group(2) or ""
    return {}, raw


def _load_yaml(text: str) -> dict[str, Any] | None:
    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError:
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return {str(k): v for k, v in data.items()}


def parse_document(raw: str, filename: str) -> tuple[dict[str, Any], str]:
    """Parse an uploaded note and fill in title, date and slug.

    Args:
        raw: Full file content, front matter included.
        filename: Upload filename; its stem is the fallback title.

    Returns:
        ``(meta, body)`` where ``meta["date"]`` is a normalized ISO
        string and ``meta["slug"]`` is always set.
    """
    meta, body = split_front_matter(raw)

    title = meta.get("title")
    if title is None or str(title).strip() == "":
        title = PurePath(filename).stem
    meta["title"] = str(title)

    meta["date"] = format_date(normalize_date(meta.get("date")))

    explicit_slug = slugify(str(meta["slug"])) if meta.get("slug") else ""
    meta["slug"] = explicit_slug or slug_from_title(meta["title"])
    return meta, body


def render_document(meta: dict[str, Any], body: str) -> str:
    """Serialize front matter and body into a fenced markdown document."""
    dumped = yaml.safe_dump(
        meta,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    return f"---\n{dumped}---\n{body}"
