"""Dependency bookkeeping for notes entering a session."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from postbridge.imports.models import Archive, Note, NoteLinkInfo, PendingNoteInfo, Session
from postbridge.links import ExternalLink, WikiLink
from postbridge.published import PublishedPostCache
from postbridge.slugs import archive_id_from_url

logger = logging.getLogger(__name__)


def update_note_dependencies(
    session: Session,
    note: Note,
    wiki_links: Iterable[WikiLink],
    external_links: Iterable[ExternalLink],
    published: PublishedPostCache,
) -> None:
    """Record ``note``'s outgoing links and update the session registries.

    Wiki-link targets that are neither in the session nor already published
    become pending notes. Every external URL gets an archive entry keyed by
    its hash, shared across all notes that cite it. Within one note the last
    link to a given target wins. Mutates ``session`` and ``note`` in place;
    the caller persists.
    """
    for link in wiki_links:
        note.dependencies.notes[link.target_slug] = NoteLinkInfo(
            alias=link.alias, target_title=link.target_title
        )
        if link.target_slug in session.notes or link.target_slug in published:
            continue
        pending = session.pending_notes.setdefault(
            link.target_slug, PendingNoteInfo(target_title=link.target_title)
        )
        if note.slug not in pending.referenced_by:
            pending.referenced_by.append(note.slug)
        logger.debug("Note %s waits for %s", note.slug, link.target_slug)

    for link in external_links:
        archive_id = archive_id_from_url(link.url)
        archive = session.archives.get(archive_id)
        if archive is None:
            archive = Archive(id=archive_id, url=link.url)
            session.archives[archive_id] = archive
            logger.debug("Requested archive %s for %s", archive_id, link.url)
        if note.slug not in archive.referenced_by:
            archive.referenced_by.append(note.slug)
        note.dependencies.archives[archive_id] = link.text


def forget_note_references(session: Session, slug: str) -> None:
    """Withdraw every reference ``slug`` made, ahead of replacing that note.

    Pending notes left without referrers are dropped, and so are archives
    that were never uploaded. Uploaded archives are kept for reuse.
    """
    for target, pending in list(session.pending_notes.items()):
        if slug in pending.referenced_by:
            pending.referenced_by.remove(slug)
        if not pending.referenced_by:
            del session.pending_notes[target]
            logger.debug("Dropped pending note %s", target)

    for archive_id, archive in list(session.archives.items()):
        if slug in archive.referenced_by:
            archive.referenced_by.remove(slug)
        if not archive.referenced_by and not archive.resolved:
            del session.archives[archive_id]
            logger.debug("Dropped archive request %s", archive_id)


def drop_published_pending(session: Session, published: PublishedPostCache) -> list[str]:
    """Forget pending notes that have been published since they were linked."""
    dropped = [slug for slug in session.pending_notes if slug in published]
    for slug in dropped:
        del session.pending_notes[slug]
    if dropped:
        logger.info("Pending notes now published: %s", ", ".join(dropped))
    return dropped
