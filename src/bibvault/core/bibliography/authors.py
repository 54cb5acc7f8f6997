"""Author list splitting and identity resolution."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import re


AUTHOR_SEPARATOR = " and "

_LINE_BREAK = re.compile(r"[ \t]*[\r\n]+[ \t]*")


@dataclass(slots=True, frozen=True)
class Author:
    """A person credited on one or more references, identified by name."""

    name: str


def split_authors(raw: str) -> list[str]:
    """Split an author field on the literal `" and "` separator.

    Line breaks from multi-line values count as spaces. The order of the
    names is preserved and empty pieces are dropped.
    """
    text = _LINE_BREAK.sub(" ", raw)
    names = (" ".join(piece.split()) for piece in text.split(AUTHOR_SEPARATOR))
    return [name for name in names if name]


def resolve_authors(author_fields: Iterable[str]) -> list[Author]:
    """Return the distinct authors named across `author_fields`.

    Names are compared exactly; the first appearance fixes the position.
    """
    seen: set[str] = set()
    authors: list[Author] = []
    for raw in author_fields:
        for name in split_authors(raw):
            if name in seen:
                continue
            seen.add(name)
            authors.append(Author(name))
    return authors


__all__ = ["AUTHOR_SEPARATOR", "Author", "resolve_authors", "split_authors"]
