"""Import sessions: collect interlinked notes and archives, then publish.

A session accepts notes and archive snapshots in any order, tracks which
links are still unsatisfied, and once everything resolves converts the
whole batch into permanent posts with rewritten links.
"""

from postbridge.imports.commit import CommitEngine
from postbridge.imports.models import (
    Archive,
    CommitResult,
    Note,
    NoteDependencies,
    NoteLinkInfo,
    PendingNoteInfo,
    Session,
    StatusSummary,
)
from postbridge.imports.service import ImportService, SessionLocks
from postbridge.imports.store import SessionStore
from postbridge.imports.summary import summarize_session
from postbridge.imports.tracker import update_note_dependencies

__all__ = [
    "Archive",
    "CommitEngine",
    "CommitResult",
    "ImportService",
    "Note",
    "NoteDependencies",
    "NoteLinkInfo",
    "PendingNoteInfo",
    "Session",
    "SessionLocks",
    "SessionStore",
    "StatusSummary",
    "summarize_session",
    "update_note_dependencies",
]
