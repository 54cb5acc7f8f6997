"""Shared data structures for bibliography processing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class BibliographyIssue:
    """Represents a problem encountered while loading bibliography entries."""

    message: str
    key: str | None = None
    line: int | None = None
    code: str | None = None


__all__ = ["BibliographyIssue"]
