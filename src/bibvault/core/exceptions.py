"""Custom exception hierarchy for the bibliography pipeline."""

from __future__ import annotations


class BibvaultError(RuntimeError):
    """Base exception for bibvault failures."""


class BibliographyParseError(BibvaultError):
    """Raised when the raw bibliography cannot be tokenized as a whole."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.line = line


class StorageError(BibvaultError):
    """Raised when a document store cannot read, write or create a document."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigError(BibvaultError):
    """Raised when the vault configuration cannot be loaded or validated."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "BibliographyParseError",
    "BibvaultError",
    "ConfigError",
    "StorageError",
    "exception_hint",
    "exception_messages",
]
