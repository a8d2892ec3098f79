"""Pure data models for import sessions.

All Pydantic models live here. No I/O, no business logic. Field names are
snake_case in Python and camelCase on the wire, both in ``session.json``
and in the status summaries handed to clients.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, JSON-compatible values."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class NoteLinkInfo(_WireModel):
    """How a note refers to another note."""

    alias: str
    target_title: str


class NoteDependencies(_WireModel):
    """Outgoing references of one note.

    Kept after the targets resolve: commit needs the alias and link text
    to rewrite each link.
    """

    notes: dict[str, NoteLinkInfo] = Field(default_factory=dict)
    archives: dict[str, str] = Field(default_factory=dict)


class Note(_WireModel):
    """One imported markdown document."""

    slug: str
    title: str
    date: str
    meta: dict[str, Any] = Field(default_factory=dict)
    body: str = ""
    file: str = ""
    is_main: bool = False
    dependencies: NoteDependencies = Field(default_factory=NoteDependencies)


class Archive(_WireModel):
    """A snapshot of an external page, keyed by a hash of its URL."""

    id: str
    url: str
    resolved: bool = False
    filename: str | None = None
    file_path: str | None = None
    referenced_by: list[str] = Field(default_factory=list)


class PendingNoteInfo(_WireModel):
    """A note that has been linked to but not uploaded yet."""

    target_title: str
    referenced_by: list[str] = Field(default_factory=list)


class Session(_WireModel):
    """Full state of one import session."""

    id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    main_slug: str | None = None
    notes: dict[str, Note] = Field(default_factory=dict)
    archives: dict[str, Archive] = Field(default_factory=dict)
    pending_notes: dict[str, PendingNoteInfo] = Field(default_factory=dict)

    def unresolved_archives(self) -> list[Archive]:
        return [a for a in self.archives.values() if not a.resolved]

    def unmet_conditions(self) -> list[str]:
        """Human-readable reasons the session cannot be committed yet."""
        reasons: list[str] = []
        if self.pending_notes:
            reasons.append("missing linked notes: " + ", ".join(sorted(self.pending_notes)))
        unresolved = self.unresolved_archives()
        if unresolved:
            reasons.append("missing archive uploads: " + ", ".join(a.url for a in unresolved))
        if not self.main_slug:
            reasons.append("no main note uploaded")
        return reasons

    def is_ready(self) -> bool:
        """No pending notes, every archive resolved, and a main note set."""
        return not self.unmet_conditions()


# ---------------------------------------------------------------------------
# Client-facing summaries
# ---------------------------------------------------------------------------


class MissingNote(_WireModel):
    slug: str
    alias: str


class MissingArchive(_WireModel):
    id: str
    text: str


class NoteStatus(_WireModel):
    slug: str
    title: str
    is_main: bool
    missing_notes: list[MissingNote] = Field(default_factory=list)
    missing_archives: list[MissingArchive] = Field(default_factory=list)


class PendingNoteStatus(_WireModel):
    slug: str
    target_title: str
    referenced_by: list[str] = Field(default_factory=list)


class PendingArchiveStatus(_WireModel):
    id: str
    url: str
    referenced_by: list[str] = Field(default_factory=list)


class StatusSummary(_WireModel):
    """Read-only snapshot of what a session still needs."""

    session_id: str
    main_slug: str | None = None
    notes: list[NoteStatus] = Field(default_factory=list)
    pending_notes: list[PendingNoteStatus] = Field(default_factory=list)
    pending_archives: list[PendingArchiveStatus] = Field(default_factory=list)
    ready: bool = False


class CommitResult(_WireModel):
    success: bool = True
    folders: list[str] = Field(default_factory=list)
