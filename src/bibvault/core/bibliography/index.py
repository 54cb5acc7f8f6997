"""Author to reference cross-reference index."""

from __future__ import annotations

from collections.abc import Iterable

from .records import Reference


CrossReferenceIndex = dict[str, list[Reference]]


def build_index(references: Iterable[Reference]) -> CrossReferenceIndex:
    """Map each author name to the references crediting it, in input order.

    A reference appears once per credit, so a name repeated in one author
    field lists the reference twice. Deduplication happens when links are
    written out.
    """
    index: CrossReferenceIndex = {}
    for reference in references:
        for name in reference.authors:
            index.setdefault(name, []).append(reference)
    return index


__all__ = ["CrossReferenceIndex", "build_index"]
