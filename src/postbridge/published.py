"""Read-only snapshot of the permanent post store.

Folders follow the ``YYYY-MM-DD-slug`` convention. The snapshot is taken
once per operation because posts can be published through other routes
between two calls.
"""

from __future__ import annotations

import logging
from pathlib import Path

from postbridge.slugs import permalink_from_folder, slug_from_folder

logger = logging.getLogger(__name__)


class PublishedPostCache:
    """Index from slug to published folder name."""

    def __init__(self, folders: dict[str, str] | None = None) -> None:
        self._folders: dict[str, str] = dict(folders or {})

    @classmethod
    def build(cls, posts_dir: Path) -> PublishedPostCache:
        """List ``posts_dir`` once and index every post folder by slug.

        A missing store is an empty cache; any other OS error propagates.
        Hidden entries (staging areas) and plain files are ignored.
        """
        folders: dict[str, str] = {}
        try:
            entries = sorted(posts_dir.iterdir(), key=lambda p: p.name)
        except FileNotFoundError:
            return cls()
        for entry in entries:
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            slug = slug_from_folder(entry.name)
            if slug is None:
                continue
            folders[slug] = entry.name
        logger.debug("Indexed %d published posts under %s", len(folders), posts_dir)
        return cls(folders)

    def find(self, slug: str) -> str | None:
        """Return the folder name published under ``slug``, or None."""
        return self._folders.get(slug)

    def permalink(self, slug: str) -> str | None:
        folder = self.find(slug)
        return permalink_from_folder(folder) if folder else None

    def __contains__(self, slug: object) -> bool:
        return slug in self._folders

    def __len__(self) -> int:
        return len(self._folders)
