"""Convert a ready session into permanent, link-resolved posts.

Every post is first rendered into ``<posts_dir>/.staging-<session id>``.
Only after all of them rendered are the folders moved into the permanent
store, so a failure while rendering leaves both the store and the session
untouched. Moving the staged folders is not a single atomic step: a failure
there can leave some folders published while the session still exists.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from urllib.parse import quote

from postbridge.config import PostbridgeConfig
from postbridge.errors import CommitPreconditionError
from postbridge.frontmatter import render_document
from postbridge.imports.models import Note, Session
from postbridge.links import ExternalLinkToken, WikiLinkToken, rewrite_links
from postbridge.published import PublishedPostCache
from postbridge.slugs import archive_id_from_url, folder_from_date_slug, permalink_from_date_slug
from postbridge.tags import normalize_tags

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"
ARCHIVES_DIRNAME = "archives"

# Characters JavaScript's encodeURI leaves alone.
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"


def encode_uri(path: str) -> str:
    return quote(path, safe=_URI_SAFE)


class CommitEngine:
    """Render session notes into post folders and move them into place."""

    def __init__(self, config: PostbridgeConfig) -> None:
        self._config = config
        self._posts_dir = config.storage.posts_path

    def commit(self, session: Session, published: PublishedPostCache) -> list[str]:
        """Publish every note of ``session``.

        Args:
            session: A session whose dependencies are all satisfied.
            published: Snapshot of the permanent store taken for this commit.

        Returns:
            Destination folder names, one per note.

        Raises:
            CommitPreconditionError: The session is not ready.
        """
        reasons = session.unmet_conditions()
        if reasons:
            raise CommitPreconditionError(reasons)

        folders = {
            slug: folder_from_date_slug(note.date, note.slug)
            for slug, note in session.notes.items()
        }

        self._posts_dir.mkdir(parents=True, exist_ok=True)
        staging = self._posts_dir / f"{STAGING_PREFIX}{session.id}"
        if staging.exists():
            shutil.rmtree(staging)

        try:
            for slug, note in session.notes.items():
                self._stage_note(session, note, folders[slug], staging / folders[slug], published)
        except Exception:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        for folder in folders.values():
            self._move_into_place(staging / folder, self._posts_dir / folder)
        shutil.rmtree(staging, ignore_errors=True)

        logger.info("Committed session %s: %d posts", session.id, len(folders))
        return list(folders.values())

    def _stage_note(
        self,
        session: Session,
        note: Note,
        folder: str,
        stage_dir: Path,
        published: PublishedPostCache,
    ) -> None:
        stage_dir.mkdir(parents=True, exist_ok=True)
        archive_urls = self._copy_archives(session, note, folder, stage_dir)

        def wiki(token: WikiLinkToken) -> str:
            url = self._resolve_note_url(session, token.target_slug, published)
            if url is None:
                logger.warning("Unresolved link to %s in %s", token.target_slug, note.slug)
                return token.alias
            return f"[{token.alias}]({url})"

        def external(token: ExternalLinkToken) -> str | None:
            new_url = archive_urls.get(archive_id_from_url(token.url))
            if new_url is None:
                return None
            return f"[{token.text}]({new_url})"

        body = rewrite_links(note.body, wiki=wiki, external=external)
        if not body.endswith("\n"):
            body += "\n"

        meta = {**note.meta, "slug": note.slug, "date": note.date}
        meta["tags"] = normalize_tags(meta.get("tags"), self._config.publish.default_tag)

        index_file = stage_dir / self._config.publish.index_filename
        index_file.write_text(render_document(meta, body), encoding="utf-8")

    def _copy_archives(
        self, session: Session, note: Note, folder: str, stage_dir: Path
    ) -> dict[str, str]:
        """Copy the note's archives next to it; map archive id to served URL."""
        urls: dict[str, str] = {}
        for archive_id in note.dependencies.archives:
            archive = session.archives.get(archive_id)
            if archive is None or not archive.resolved or not archive.file_path:
                continue
            archives_dir = stage_dir / ARCHIVES_DIRNAME
            archives_dir.mkdir(parents=True, exist_ok=True)
            name = f"{archive_id}-{archive.filename or f'{archive_id}.html'}"
            shutil.copyfile(archive.file_path, archives_dir / name)
            prefix = self._config.publish.posts_url_prefix.rstrip("/")
            urls[archive_id] = encode_uri(f"{prefix}/{folder}/{ARCHIVES_DIRNAME}/{name}")
        return urls

    @staticmethod
    def _resolve_note_url(
        session: Session, target_slug: str, published: PublishedPostCache
    ) -> str | None:
        target = session.notes.get(target_slug)
        if target is not None:
            return permalink_from_date_slug(target.date, target_slug)
        return published.permalink(target_slug)

    @staticmethod
    def _move_into_place(staged: Path, dest: Path) -> None:
        if dest.exists():
            shutil.copytree(staged, dest, dirs_exist_ok=True)
            shutil.rmtree(staged)
        else:
            staged.rename(dest)
