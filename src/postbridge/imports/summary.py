"""Client-facing status of an import session."""

from __future__ import annotations

from postbridge.imports.models import (
    MissingArchive,
    MissingNote,
    NoteStatus,
    PendingArchiveStatus,
    PendingNoteStatus,
    Session,
    StatusSummary,
)
from postbridge.published import PublishedPostCache


def summarize_session(session: Session, published: PublishedPostCache) -> StatusSummary:
    """Report what each note is missing and whether the session can commit.

    Pure: reads ``session`` and the published snapshot, mutates nothing.
    """
    notes: list[NoteStatus] = []
    for note in session.notes.values():
        missing_notes = [
            MissingNote(slug=slug, alias=info.alias)
            for slug, info in note.dependencies.notes.items()
            if slug not in session.notes and slug not in published
        ]
        missing_archives = [
            MissingArchive(id=archive_id, text=text)
            for archive_id, text in note.dependencies.archives.items()
            if archive_id not in session.archives or not session.archives[archive_id].resolved
        ]
        notes.append(
            NoteStatus(
                slug=note.slug,
                title=note.title,
                is_main=note.is_main,
                missing_notes=missing_notes,
                missing_archives=missing_archives,
            )
        )

    pending_notes = [
        PendingNoteStatus(
            slug=slug, target_title=info.target_title, referenced_by=list(info.referenced_by)
        )
        for slug, info in session.pending_notes.items()
    ]
    pending_archives = [
        PendingArchiveStatus(id=a.id, url=a.url, referenced_by=list(a.referenced_by))
        for a in session.unresolved_archives()
    ]

    return StatusSummary(
        session_id=session.id,
        main_slug=session.main_slug,
        notes=notes,
        pending_notes=pending_notes,
        pending_archives=pending_archives,
        ready=session.is_ready(),
    )
