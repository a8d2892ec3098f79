"""JSON-backed session store.

Each session owns a working directory::

    <sessions_dir>/<id>/session.json
    <sessions_dir>/<id>/notes/<slug>.md
    <sessions_dir>/<id>/archives/<archiveId>-<filename>

``session.json`` is rewritten whole on every save. Serializing writers
for one session is the caller's job (see ``ImportService``).
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from postbridge.errors import PostbridgeError, SessionNotFoundError
from postbridge.imports.models import Session
from postbridge.slugs import random_id

logger = logging.getLogger(__name__)

SESSION_FILENAME = "session.json"
NOTES_DIRNAME = "notes"
ARCHIVES_DIRNAME = "archives"

_VALID_ID = re.compile(r"[A-Za-z0-9_-]+")


class SessionStore:
    """Create, load, save and delete import sessions on disk."""

    def __init__(self, sessions_dir: Path) -> None:
        self._root = sessions_dir

    @property
    def root(self) -> Path:
        return self._root

    # ── Paths ────────────────────────────────────────────────────

    def session_dir(self, session_id: str) -> Path:
        if not _VALID_ID.fullmatch(session_id or ""):
            raise SessionNotFoundError(session_id)
        return self._root / session_id

    def session_file(self, session_id: str) -> Path:
        return self.session_dir(session_id) / SESSION_FILENAME

    def note_path(self, session_id: str, slug: str) -> Path:
        return self.session_dir(session_id) / NOTES_DIRNAME / f"{slug}.md"

    def archive_path(self, session_id: str, archive_id: str, filename: str) -> Path:
        return self.session_dir(session_id) / ARCHIVES_DIRNAME / f"{archive_id}-{filename}"

    # ── Session records ──────────────────────────────────────────

    def create(self) -> Session:
        """Allocate a fresh session id and persist an empty session."""
        session_id = random_id()
        while self.session_dir(session_id).exists():
            session_id = random_id()
        session = Session(id=session_id)
        self.save(session)
        logger.info("Created import session %s", session_id)
        return session

    def exists(self, session_id: str) -> bool:
        try:
            return self.session_file(session_id).exists()
        except SessionNotFoundError:
            return False

    def load(self, session_id: str) -> Session:
        """Read a session's persisted state.

        Raises:
            SessionNotFoundError: No state exists for ``session_id``.
            PostbridgeError: The state file exists but cannot be parsed.
        """
        path = self.session_file(session_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise SessionNotFoundError(session_id) from exc
        try:
            return Session.model_validate_json(raw)
        except ValueError as exc:
            raise PostbridgeError(f"Corrupt session state at {path}") from exc

    def save(self, session: Session) -> None:
        """Overwrite the session's state file with ``session``."""
        path = self.session_file(session.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(
            session.model_dump_json(indent=2, by_alias=True),
            encoding="utf-8",
        )
        os.replace(tmp_path, path)

    def delete(self, session_id: str) -> None:
        """Remove a session's whole working directory."""
        shutil.rmtree(self.session_dir(session_id), ignore_errors=False)
        logger.info("Deleted working storage for session %s", session_id)

    def list_ids(self) -> list[str]:
        """Ids of every persisted session, sorted."""
        if not self._root.exists():
            return []
        return sorted(
            p.name
            for p in self._root.iterdir()
            if p.is_dir() and (p / SESSION_FILENAME).exists()
        )

    # ── Working files ────────────────────────────────────────────

    def write_note(self, session_id: str, slug: str, content: str) -> Path:
        """Save the raw upload; returns its absolute path."""
        path = self.note_path(session_id, slug)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path.resolve()

    def write_archive(self, session_id: str, archive_id: str, filename: str, data: bytes) -> Path:
        path = self.archive_path(session_id, archive_id, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path.resolve()
