"""Scanner for the two link grammars found in note bodies.

Wiki-links::

    [[Target]]          [[Target|Alias]]

Target is non-empty and contains none of ``[``, ``]`` or ``|``; the alias
is non-empty and contains no ``]``.

External links::

    [text](https://example.com/page)

Text is non-empty without ``]``; the URL starts with ``http://`` or
``https://`` and contains neither ``)`` nor whitespace.

Scanning is leftmost-first and non-overlapping. At each ``[`` a wiki-link is
tried before an external link; a ``[`` that starts neither is plain text and
scanning resumes one character later, so ``[[[A]]`` is the text ``[``
followed by a link to ``A``. A ``[`` preceded by an odd number of
backslashes is escaped and never opens a link.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from postbridge.slugs import slug_from_title

_WIKI = re.compile(r"\[\[([^\[\]|]+)(?:\|([^\]]+))?\]\]")
_EXTERNAL = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")


@dataclass(frozen=True)
class TextToken:
    text: str

    @property
    def source(self) -> str:
        return self.text


@dataclass(frozen=True)
class WikiLinkToken:
    source: str
    target_title: str
    alias: str

    @property
    def target_slug(self) -> str:
        return slug_from_title(self.target_title)


@dataclass(frozen=True)
class ExternalLinkToken:
    source: str
    text: str
    url: str


Token = TextToken | WikiLinkToken | ExternalLinkToken


@dataclass(frozen=True)
class WikiLink:
    """A cross-reference to another note, resolved by title."""

    target_title: str
    alias: str
    target_slug: str


@dataclass(frozen=True)
class ExternalLink:
    """A markdown hyperlink to an absolute http(s) URL."""

    text: str
    url: str


class LinkScanner:
    """Tokenize markdown text into plain text and link tokens."""

    def __init__(self, text: str) -> None:
        self._text = text

    def __iter__(self) -> Iterator[Token]:
        return self.tokens()

    def tokens(self) -> Iterator[Token]:
        text = self._text
        pos = 0
        plain_start = 0
        while True:
            pos = text.find("[", pos)
            if pos == -1:
                break
            if _is_escaped(text, pos):
                pos += 1
                continue
            token = self._match_at(pos)
            if token is None:
                pos += 1
                continue
            if plain_start < pos:
                yield TextToken(text[plain_start:pos])
            yield token
            pos += len(token.source)
            plain_start = pos
        if plain_start < len(text):
            yield TextToken(text[plain_start:])

    def _match_at(self, pos: int) -> WikiLinkToken | ExternalLinkToken | None:
        match = _WIKI.match(self._text, pos)
        if match:
            target = match.group(1).strip()
            if target:
                alias = (match.group(2) or match.group(1)).strip() or target
                return WikiLinkToken(source=match.group(0), target_title=target, alias=alias)
        match = _EXTERNAL.match(self._text, pos)
        if match:
            return ExternalLinkToken(source=match.group(0), text=match.group(1), url=match.group(2))
        return None


def _is_escaped(text: str, pos: int) -> bool:
    backslashes = 0
    i = pos - 1
    while i >= 0 and text[i] == "\\":
        backslashes += 1
        i -= 1
    return backslashes % 2 == 1


def extract_wiki_links(body: str) -> list[WikiLink]:
    """All wiki-links in ``body`` in order of appearance."""
    return [
        WikiLink(target_title=t.target_title, alias=t.alias, target_slug=t.target_slug)
        for t in LinkScanner(body)
        if isinstance(t, WikiLinkToken)
    ]


def extract_external_links(body: str) -> list[ExternalLink]:
    """All http(s) markdown links in ``body`` in order of appearance.

    Repeated URLs are reported every time they occur.
    """
    return [
        ExternalLink(text=t.text, url=t.url)
        for t in LinkScanner(body)
        if isinstance(t, ExternalLinkToken)
    ]


def rewrite_links(
    body: str,
    *,
    wiki: Callable[[WikiLinkToken], str | None] | None = None,
    external: Callable[[ExternalLinkToken], str | None] | None = None,
) -> str:
    """Re-render ``body`` with link tokens passed through callbacks.

    A callback returns the replacement text for a token, or ``None`` to keep
    the token's original source. Text outside links is preserved exactly.
    """
    parts: list[str] = []
    for token in LinkScanner(body):
        replacement: str | None = None
        if isinstance(token, WikiLinkToken) and wiki is not None:
            replacement = wiki(token)
        elif isinstance(token, ExternalLinkToken) and external is not None:
            replacement = external(token)
        parts.append(token.source if replacement is None else replacement)
    return "".join(parts)
