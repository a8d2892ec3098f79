"""Slug, folder and permalink derivation.

Published posts live in folders named ``YYYY-MM-DD-slug`` and are served at
``/YYYY/MM/DD/slug/``. Every function here is pure apart from
:func:`random_id`.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import unicodedata

from pymdownx.slugs import slugify as _md_slugify

# Pre-configured slugifier; lowercases and drops characters that are not
# word characters, dashes or spaces.
_slugify_lower = _md_slugify(case="lower")

_SEPARATORS = re.compile(r"[\s~`!@#$%^&*()\-_+=\[\]{}|\\;:\"'<>,.?/]+")
_DASHES = re.compile(r"-{2,}")

ARCHIVE_ID_LENGTH = 10


def random_id() -> str:
    """Return 16 hex characters of randomness."""
    return secrets.token_hex(8)


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(text: str | None) -> str:
    """Convert a title to a lowercase, dash-separated identifier.

    Examples:
        >>> slugify("Hello World!")
        'hello-world'
        >>> slugify("Café à Paris")
        'cafe-a-paris'
        >>> slugify("  ")
        ''
    """
    if not text:
        return ""
    spaced = _SEPARATORS.sub(" ", _strip_diacritics(str(text)))
    slug = _slugify_lower(spaced, "-")
    return _DASHES.sub("-", slug).strip("-")


def slug_from_title(title: str | None) -> str:
    """Slugify a title.

    Titles with no sluggable characters (``"???"``) map to a hex digest of
    the title so repeated references still agree; an empty title gets a
    random identifier.
    """
    slug = slugify(title)
    if slug:
        return slug
    if title and title.strip():
        return hashlib.md5(title.strip().encode("utf-8")).hexdigest()[:16]
    return random_id()


def archive_id_from_url(url: str) -> str:
    """Content address of an external page: truncated MD5 of its URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:ARCHIVE_ID_LENGTH]


def folder_from_date_slug(date_iso: str, slug: str) -> str:
    return f"{date_iso[:10]}-{slug}"


def permalink_from_date_slug(date_iso: str, slug: str) -> str:
    year, month, day = date_iso[0:4], date_iso[5:7], date_iso[8:10]
    return f"/{year}/{month}/{day}/{slug}/"


def permalink_from_folder(folder: str) -> str:
    """Permalink of an already published folder.

    The first 10 characters are the date, everything after the 11th is the
    slug. Folders that do not follow the convention are served as-is under
    ``/posts/``.
    """
    date_part = folder[:10]
    slug = folder[11:]
    if not date_part or not slug:
        return f"/posts/{folder}/"
    return permalink_from_date_slug(date_part, slug)


def slug_from_folder(folder: str) -> str | None:
    """Recover the slug from a ``YYYY-MM-DD-slug`` folder name.

    Names with fewer dash-separated parts degrade to whatever follows the
    first one, two or three parts. Names without any dash yield ``None``.
    """
    parts = folder.split("-")
    if len(parts) < 2:
        return None
    for skip in (3, 2, 1):
        slug = "-".join(parts[skip:])
        if slug:
            return slug
    return folder
