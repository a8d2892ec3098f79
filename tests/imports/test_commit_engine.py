"""Tests for CommitEngine: staging, link rewriting, and archive relocation."""

from pathlib import Path

import pytest
from postbridge.config import PostbridgeConfig, PublishConfig, StorageConfig
from postbridge.errors import CommitPreconditionError
from postbridge.frontmatter import split_front_matter
from postbridge.imports.commit import CommitEngine, encode_uri
from postbridge.imports.models import (
    Archive,
    Note,
    NoteDependencies,
    NoteLinkInfo,
    PendingNoteInfo,
    Session,
)
from postbridge.published import PublishedPostCache
from postbridge.slugs import archive_id_from_url

PAGE_URL = "https://example.com/page"
ARCHIVE_ID = archive_id_from_url(PAGE_URL)


def _make_config(tmp_path: Path, **publish: str) -> PostbridgeConfig:
    return PostbridgeConfig(
        storage=StorageConfig(posts_dir=str(tmp_path / "posts")),
        publish=PublishConfig(**publish),
    )


def _make_archive(tmp_path: Path, archive_id: str, url: str, filename: str) -> Archive:
    path = tmp_path / "work" / f"{archive_id}-{filename}"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"<html>{url}</html>", encoding="utf-8")
    return Archive(
        id=archive_id,
        url=url,
        resolved=True,
        filename=filename,
        file_path=str(path),
        referenced_by=["a"],
    )


def _make_session(tmp_path: Path) -> Session:
    archive = _make_archive(tmp_path, ARCHIVE_ID, PAGE_URL, "my page.html")
    session = Session(id="sess01", main_slug="a")
    session.archives[archive.id] = archive
    session.notes["a"] = Note(
        slug="a",
        title="A",
        date="2024-03-01T08:00:00.000Z",
        meta={"title": "A", "author": "sam", "tags": "travel"},
        body="Read [[B|the sequel]], [the page](https://example.com/page), "
        "[live](https://elsewhere.test) and [[Ghost]].",
        is_main=True,
        dependencies=NoteDependencies(
            notes={
                "b": NoteLinkInfo(alias="the sequel", target_title="B"),
                "ghost": NoteLinkInfo(alias="Ghost", target_title="Ghost"),
            },
            archives={ARCHIVE_ID: "the page"},
        ),
    )
    session.notes["b"] = Note(
        slug="b",
        title="B",
        date="2024-03-05T23:59:00.000Z",
        meta={"title": "B"},
        body="No links here.\n",
    )
    return session


class TestCommit:
    def test_writes_posts_and_rewrites_links(self, tmp_path: Path):
        engine = CommitEngine(_make_config(tmp_path))
        session = _make_session(tmp_path)

        folders = engine.commit(session, PublishedPostCache())

        assert folders == ["2024-03-01-a", "2024-03-05-b"]
        meta, body = split_front_matter(
            (tmp_path / "posts" / "2024-03-01-a" / "index.md").read_text(encoding="utf-8")
        )
        assert body == (
            "Read [the sequel](/2024/03/05/b/), "
            f"[the page](/posts/2024-03-01-a/archives/{ARCHIVE_ID}-my%20page.html), "
            "[live](https://elsewhere.test) and Ghost.\n"
        )
        assert meta == {
            "title": "A",
            "author": "sam",
            "tags": ["travel"],
            "slug": "a",
            "date": "2024-03-01T08:00:00.000Z",
        }
        copied = tmp_path / "posts" / "2024-03-01-a" / "archives" / f"{ARCHIVE_ID}-my page.html"
        assert copied.read_text(encoding="utf-8") == "<html>https://example.com/page</html>"

    def test_notes_without_archives_get_no_archive_dir(self, tmp_path: Path):
        CommitEngine(_make_config(tmp_path)).commit(_make_session(tmp_path), PublishedPostCache())
        assert not (tmp_path / "posts" / "2024-03-05-b" / "archives").exists()

    def test_removes_staging(self, tmp_path: Path):
        CommitEngine(_make_config(tmp_path)).commit(_make_session(tmp_path), PublishedPostCache())
        assert sorted(p.name for p in (tmp_path / "posts").iterdir()) == [
            "2024-03-01-a",
            "2024-03-05-b",
        ]

    def test_published_target_uses_folder_permalink(self, tmp_path: Path):
        session = _make_session(tmp_path)
        published = PublishedPostCache({"ghost": "2020-10-31-ghost"})

        CommitEngine(_make_config(tmp_path)).commit(session, published)

        text = (tmp_path / "posts" / "2024-03-01-a" / "index.md").read_text(encoding="utf-8")
        assert "[Ghost](/2020/10/31/ghost/)" in text

    def test_custom_prefix_and_index_name(self, tmp_path: Path):
        config = _make_config(tmp_path, posts_url_prefix="/blog/", index_filename="post.md")

        CommitEngine(config).commit(_make_session(tmp_path), PublishedPostCache())

        text = (tmp_path / "posts" / "2024-03-01-a" / "post.md").read_text(encoding="utf-8")
        assert f"(/blog/2024-03-01-a/archives/{ARCHIVE_ID}-my%20page.html)" in text

    def test_existing_folder_is_overwritten_in_place(self, tmp_path: Path):
        existing = tmp_path / "posts" / "2024-03-05-b"
        existing.mkdir(parents=True)
        (existing / "index.md").write_text("old", encoding="utf-8")
        (existing / "cover.jpg").write_bytes(b"jpg")

        CommitEngine(_make_config(tmp_path)).commit(_make_session(tmp_path), PublishedPostCache())

        assert "No links here." in (existing / "index.md").read_text(encoding="utf-8")
        assert (existing / "cover.jpg").read_bytes() == b"jpg"


class TestCommitFailures:
    def test_not_ready(self, tmp_path: Path):
        session = _make_session(tmp_path)
        session.pending_notes["c"] = PendingNoteInfo(target_title="C", referenced_by=["a"])

        with pytest.raises(CommitPreconditionError) as excinfo:
            CommitEngine(_make_config(tmp_path)).commit(session, PublishedPostCache())
        assert excinfo.value.reasons == ["missing linked notes: c"]
        assert not (tmp_path / "posts").exists()

    def test_failure_while_staging_publishes_nothing(self, tmp_path: Path):
        session = _make_session(tmp_path)
        Path(session.archives[ARCHIVE_ID].file_path).unlink()

        with pytest.raises(FileNotFoundError):
            CommitEngine(_make_config(tmp_path)).commit(session, PublishedPostCache())

        assert list((tmp_path / "posts").iterdir()) == []


class TestEncodeUri:
    def test_matches_encode_uri(self):
        assert encode_uri("/posts/a b/é.html?x=1#y") == "/posts/a%20b/%C3%A9.html?x=1#y"
