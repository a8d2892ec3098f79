"""Import session operations exposed to callers.

Every public method loads the session from disk, mutates it and writes it
back while holding that session's lock. Operations on different sessions
do not block each other.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import logging
import re
import threading
from collections.abc import Iterator
from pathlib import PurePath

from postbridge.config import PostbridgeConfig
from postbridge.errors import SessionNotFoundError, SessionValidationError
from postbridge.frontmatter import parse_document
from postbridge.imports.commit import CommitEngine
from postbridge.imports.models import CommitResult, Note, StatusSummary
from postbridge.imports.store import SessionStore
from postbridge.imports.summary import summarize_session
from postbridge.imports.tracker import (
    drop_published_pending,
    forget_note_references,
    update_note_dependencies,
)
from postbridge.links import extract_external_links, extract_wiki_links
from postbridge.published import PublishedPostCache
from postbridge.slugs import archive_id_from_url
from postbridge.tags import normalize_tags

logger = logging.getLogger(__name__)

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*,")


class SessionLocks:
    """One mutex per session id, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextlib.contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        """Hold the session's lock; forget it if the session does not exist."""
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        try:
            with lock:
                yield
        except SessionNotFoundError:
            self.discard(session_id)
            raise

    def discard(self, session_id: str) -> None:
        with self._guard:
            self._locks.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)


# Shared by every ImportService in the process.
_SESSION_LOCKS = SessionLocks()


def decode_archive_payload(data: str | bytes) -> bytes:
    """Decode an uploaded archive.

    Strings are base64, optionally behind a ``data:<type>;base64,`` prefix.
    Bytes are taken as the already-decoded file content.
    """
    if isinstance(data, bytes):
        return data
    encoded = _DATA_URI_PREFIX.sub("", data.strip(), count=1)
    try:
        return base64.b64decode(encoded)
    except (binascii.Error, ValueError) as exc:
        raise SessionValidationError("Archive data is not valid base64") from exc


class ImportService:
    """Create sessions, accept notes and archives, and commit them."""

    def __init__(
        self,
        config: PostbridgeConfig | None = None,
        *,
        locks: SessionLocks | None = None,
    ) -> None:
        self._config = config or PostbridgeConfig()
        self._store = SessionStore(self._config.storage.sessions_path)
        self._engine = CommitEngine(self._config)
        self._locks = locks or _SESSION_LOCKS

    @property
    def store(self) -> SessionStore:
        return self._store

    def _published(self) -> PublishedPostCache:
        return PublishedPostCache.build(self._config.storage.posts_path)

    # ── Operations ───────────────────────────────────────────────

    def create_session(self) -> str:
        """Start an empty session and return its id."""
        return self._store.create().id

    def add_note(
        self,
        session_id: str,
        filename: str,
        content: str,
        is_main: bool = False,
    ) -> StatusSummary:
        """Register a markdown note, replacing any note with the same slug.

        Raises:
            SessionValidationError: ``filename`` or ``content`` is empty.
            SessionNotFoundError: Unknown session.
        """
        if not filename or not filename.strip() or not content or not content.strip():
            raise SessionValidationError("Filename and content required")

        with self._locks.hold(session_id):
            session = self._store.load(session_id)
            published = self._published()

            meta, body = parse_document(content, filename)
            slug = meta["slug"]
            meta["tags"] = normalize_tags(meta.get("tags"), self._config.publish.default_tag)
            raw_path = self._store.write_note(session_id, slug, content)

            if slug in session.notes:
                forget_note_references(session, slug)
                logger.info("Note %s replaced in session %s", slug, session_id)

            is_main = bool(is_main) or session.main_slug == slug
            if is_main:
                for other in session.notes.values():
                    other.is_main = False
                session.main_slug = slug

            note = Note(
                slug=slug,
                title=meta["title"],
                date=meta["date"],
                meta=meta,
                body=body,
                file=str(raw_path),
                is_main=is_main,
            )
            session.notes[slug] = note
            session.pending_notes.pop(slug, None)

            update_note_dependencies(
                session,
                note,
                extract_wiki_links(body),
                extract_external_links(body),
                published,
            )
            drop_published_pending(session, published)
            self._store.save(session)
            logger.info("Added note %s to session %s", slug, session_id)
            return summarize_session(session, published)

    def add_archive(
        self,
        session_id: str,
        source_url: str,
        filename: str,
        data: str | bytes,
    ) -> StatusSummary:
        """Store the offline copy of a page some note links to.

        Raises:
            SessionValidationError: A field is missing, the payload is not
                base64, or no note in the session links to ``source_url``.
            SessionNotFoundError: Unknown session.
        """
        safe_name = PurePath(filename).name if filename else ""
        if not source_url or not safe_name or not data:
            raise SessionValidationError("Archive upload requires url, filename and data")

        with self._locks.hold(session_id):
            session = self._store.load(session_id)
            archive_id = archive_id_from_url(source_url)
            archive = session.archives.get(archive_id)
            if archive is None:
                raise SessionValidationError(f"Archive was not requested: {source_url}")

            payload = decode_archive_payload(data)
            path = self._store.write_archive(session_id, archive_id, safe_name, payload)
            archive.resolved = True
            archive.filename = safe_name
            archive.file_path = str(path)

            published = self._published()
            drop_published_pending(session, published)
            self._store.save(session)
            logger.info("Stored archive %s (%d bytes) in session %s", archive_id, len(payload), session_id)
            return summarize_session(session, published)

    def get_session(self, session_id: str) -> StatusSummary:
        """Current status of a session."""
        with self._locks.hold(session_id):
            session = self._store.load(session_id)
            published = self._published()
            if drop_published_pending(session, published):
                self._store.save(session)
            return summarize_session(session, published)

    def commit(self, session_id: str) -> CommitResult:
        """Publish all notes of a ready session and drop its working storage.

        Raises:
            CommitPreconditionError: Notes or archives are missing, or no
                main note was designated.
            SessionNotFoundError: Unknown session.
        """
        with self._locks.hold(session_id):
            session = self._store.load(session_id)
            published = self._published()
            drop_published_pending(session, published)
            folders = self._engine.commit(session, published)
            self._store.delete(session_id)
        self._locks.discard(session_id)
        return CommitResult(success=True, folders=folders)

    def delete_session(self, session_id: str) -> None:
        """Abandon a session and remove its working storage."""
        with self._locks.hold(session_id):
            if not self._store.exists(session_id):
                raise SessionNotFoundError(session_id)
            self._store.delete(session_id)
        self._locks.discard(session_id)

    def list_sessions(self) -> list[StatusSummary]:
        """Status of every session in working storage."""
        summaries: list[StatusSummary] = []
        for session_id in self._store.list_ids():
            try:
                summaries.append(self.get_session(session_id))
            except SessionNotFoundError:
                # Deleted between listing and loading.
                continue
        return summaries
