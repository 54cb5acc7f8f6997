"""Rendering and patching of reference and author documents.

Reference documents open with a `---` delimited header followed by the title
heading and, when available, the abstract. Author documents list the titles
of their references as `[[Title]]` link tokens under a fixed heading; when
such a document already exists, new links are merged below that heading
without repeating links the document already carries.
"""

from __future__ import annotations

from collections.abc import Iterable
import re

from .bibliography import Reference
from .config import VaultConfig


HEADER_DELIMITER = "---"

_INVALID_NAME_CHARS = re.compile(r'[\\/:*?"<>|]')
_LINK_PATTERN = re.compile(r"\[\[(.+?)\]\](?!\])")


def single_line(value: str) -> str:
    """Collapse whitespace runs, line breaks included, into single spaces."""
    return " ".join(value.split())


def link_token(text: str) -> str:
    return f"[[{single_line(text)}]]"


def document_name(text: str) -> str:
    """Return a file-name-safe stem for a title or an author name."""
    name = _INVALID_NAME_CHARS.sub("_", single_line(text)).strip(" .")
    return name or "untitled"


def reference_path(reference: Reference, config: VaultConfig) -> str:
    """Return the store path of a reference document, derived from its title."""
    return f"{config.references_folder}/{document_name(reference.title)}{config.document_suffix}"


def author_path(name: str, config: VaultConfig) -> str:
    """Return the store path of an author document."""
    return f"{config.authors_folder}/{document_name(name)}{config.document_suffix}"


def render_reference_header(reference: Reference) -> str:
    lines = [
        HEADER_DELIMITER,
        f"citeKey: {reference.cite_key}",
        f"title: {single_line(reference.title)}",
        "author:",
    ]
    lines.extend(f'- "{link_token(name)}"' for name in reference.authors)

    optional = reference.optional_fields()
    optional.pop("abstract", None)
    if "editor" in optional:
        lines.append(f"editor: {single_line(optional.pop('editor'))}")
    if reference.year:
        lines.append(f"year: {reference.year}")
    lines.extend(f"{key}: {single_line(value)}" for key, value in optional.items())
    lines.append(HEADER_DELIMITER)
    return "\n".join(lines)


def render_reference_document(reference: Reference) -> str:
    """Render the full text of a new reference document."""
    lines = [render_reference_header(reference), f"# {single_line(reference.title)}"]
    if reference.abstract:
        lines.extend(["## Abstract", reference.abstract.strip()])
    return "\n".join(lines) + "\n"


def unique_titles(references: Iterable[Reference]) -> list[str]:
    """Return display titles in order, each title once."""
    titles: list[str] = []
    for reference in references:
        title = single_line(reference.title)
        if title not in titles:
            titles.append(title)
    return titles


def render_author_document(
    name: str,
    titles: Iterable[str],
    *,
    heading: str = "### References",
) -> str:
    """Render the full text of a new author document."""
    display = single_line(name)
    text = f"{HEADER_DELIMITER}\ntitle: {display}\n{HEADER_DELIMITER}\n\n# {display}"
    links = [link_token(title) for title in dict.fromkeys(single_line(t) for t in titles)]
    if links:
        text += f"\n\n{heading}\n" + "\n".join(links)
    return text + "\n"


def existing_links(content: str) -> set[str]:
    """Return the link targets present in `content`, aliases and anchors removed."""
    targets: set[str] = set()
    for match in _LINK_PATTERN.finditer(content):
        target = re.split(r"[|#]", match.group(1), maxsplit=1)[0]
        targets.add(single_line(target))
    return targets


def has_link(content: str, title: str, present: set[str] | None = None) -> bool:
    """Return whether `content` already links to `title`.

    The exact link token is looked up first, since titles may themselves
    contain brackets, `|` or `#`.
    """
    if link_token(title) in content:
        return True
    if present is None:
        present = existing_links(content)
    return single_line(title) in present


def find_heading(content: str, heading: str) -> int:
    """Return the offset just past `heading` on a line of its own, or -1."""
    pattern = re.compile(rf"^{re.escape(heading)}[ \t]*$", re.MULTILINE)
    match = pattern.search(content)
    return -1 if match is None else match.end()


def merge_links(
    content: str,
    titles: Iterable[str],
    *,
    heading: str = "### References",
) -> tuple[str, list[str]]:
    """Insert links to `titles` missing from `content`.

    Links go right after the last line of the section under `heading`, that
    is before the first blank line following it, or at the end of the
    document. A missing heading is appended together with the links. Returns
    the new content and the titles that were added.
    """
    present = existing_links(content)
    pending: list[str] = []
    for title in titles:
        title = single_line(title)
        if title and title not in pending and not has_link(content, title, present):
            pending.append(title)
    if not pending:
        return content, []

    block = "\n".join(link_token(title) for title in pending)
    marker = find_heading(content, heading)
    if marker == -1:
        base = content.rstrip("\n")
        separator = "\n\n" if base else ""
        return f"{base}{separator}{heading}\n{block}\n", pending

    boundary = content.find("\n\n", marker)
    if boundary == -1:
        base = content.rstrip("\n")
        return f"{base}\n{block}\n", pending
    return f"{content[:boundary]}\n{block}{content[boundary:]}", pending


__all__ = [
    "HEADER_DELIMITER",
    "author_path",
    "document_name",
    "existing_links",
    "find_heading",
    "has_link",
    "link_token",
    "merge_links",
    "reference_path",
    "render_author_document",
    "render_reference_document",
    "render_reference_header",
    "single_line",
    "unique_titles",
]
