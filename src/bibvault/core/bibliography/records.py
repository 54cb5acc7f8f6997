"""Reference value objects built from normalized field maps."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re

from .authors import split_authors


OPTIONAL_FIELDS: tuple[str, ...] = (
    "editor",
    "publisher",
    "journal",
    "volume",
    "number",
    "pages",
    "booktitle",
    "address",
    "month",
    "note",
    "doi",
    "url",
    "isbn",
    "issn",
    "abstract",
    "eprint",
)

_NON_WORD = re.compile(r"\W")
_YEAR = re.compile(r"[+-]?\d+")


@dataclass(slots=True, frozen=True)
class Reference:
    """A bibliographic record with a title and at least one author."""

    cite_key: str
    title: str
    author: str
    year: int = 0
    entry_type: str = "misc"
    editor: str | None = None
    publisher: str | None = None
    journal: str | None = None
    volume: str | None = None
    number: str | None = None
    pages: str | None = None
    booktitle: str | None = None
    address: str | None = None
    month: str | None = None
    note: str | None = None
    doi: str | None = None
    url: str | None = None
    isbn: str | None = None
    issn: str | None = None
    abstract: str | None = None
    eprint: str | None = None

    @property
    def authors(self) -> list[str]:
        """Return the author names in credited order."""
        return split_authors(self.author)

    def optional_fields(self) -> dict[str, str]:
        """Return the optional fields that are present, in canonical order."""
        payload: dict[str, str] = {}
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value:
                payload[name] = value
        return payload


def sanitize_cite_key(raw: str) -> str:
    """Replace every non-word character of a citation key with `_`."""
    return _NON_WORD.sub("_", raw.strip())


def parse_year(value: str | None) -> int:
    """Parse a year field, returning 0 when it is missing or malformed."""
    if not value:
        return 0
    text = value.strip()
    if not _YEAR.fullmatch(text):
        return 0
    return int(text)


def build_reference(
    cite_key: str,
    fields: Mapping[str, str],
    *,
    entry_type: str = "misc",
) -> Reference | None:
    """Return a :class:`Reference`, or `None` when title or author is empty."""
    title = (fields.get("title") or "").strip()
    author = (fields.get("author") or "").strip()
    if not title or not author:
        return None

    optional: dict[str, str] = {}
    for name in OPTIONAL_FIELDS:
        value = (fields.get(name) or "").strip()
        if value:
            optional[name] = value

    return Reference(
        cite_key=sanitize_cite_key(cite_key),
        title=title,
        author=author,
        year=parse_year(fields.get("year")),
        entry_type=entry_type,
        **optional,
    )


__all__ = [
    "OPTIONAL_FIELDS",
    "Reference",
    "build_reference",
    "parse_year",
    "sanitize_cite_key",
]
