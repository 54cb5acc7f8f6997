"""Document stores consumed by the synchronizer.

Paths are POSIX-style strings relative to the store root. Every store raises
:class:`StorageError` on failure so callers handle a single exception type.
"""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path, PurePosixPath
import tempfile
from typing import Protocol, runtime_checkable

from .exceptions import StorageError


@runtime_checkable
class DocumentStore(Protocol):
    """Minimal storage capability used to persist generated documents."""

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, text: str) -> None: ...

    def create(self, path: str, text: str) -> None: ...


def normalize_store_path(path: str) -> str:
    """Return a clean relative POSIX path, rejecting escapes from the root."""
    pure = PurePosixPath(path.replace("\\", "/"))
    if pure.is_absolute() or ".." in pure.parts:
        raise StorageError(f"Path escapes the store root: {path}", path=path)
    normalized = str(pure)
    if normalized in {"", "."}:
        raise StorageError("Empty document path.", path=path)
    return normalized


class FileSystemStore:
    """Store documents below a directory, replacing files atomically."""

    def __init__(self, root: Path | str, *, encoding: str = "utf-8") -> None:
        self.root = Path(root)
        self.encoding = encoding

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*PurePosixPath(normalize_store_path(path)).parts)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        target = self._resolve(path)
        try:
            return target.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Unable to read '{path}': {exc}", path=path) from exc

    def write(self, path: str, text: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Cannot update missing document '{path}'.", path=path)
        self._replace(target, text, path)

    def create(self, path: str, text: str) -> None:
        target = self._resolve(path)
        if target.exists():
            raise StorageError(f"Document '{path}' already exists.", path=path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to create folder for '{path}': {exc}", path=path) from exc
        self._replace(target, text, path)

    def _replace(self, target: Path, text: str, path: str) -> None:
        temp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=self.encoding,
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, target)
        except OSError as exc:
            if temp_name is not None:
                Path(temp_name).unlink(missing_ok=True)
            raise StorageError(f"Unable to write '{path}': {exc}", path=path) from exc


class MemoryStore:
    """Dictionary-backed store used for dry runs and tests."""

    def __init__(self, documents: Mapping[str, str] | None = None) -> None:
        self._documents: dict[str, str] = {}
        for path, text in (documents or {}).items():
            self._documents[normalize_store_path(path)] = text

    @property
    def documents(self) -> dict[str, str]:
        """Return a snapshot of the stored documents."""
        return dict(self._documents)

    def exists(self, path: str) -> bool:
        return normalize_store_path(path) in self._documents

    def read(self, path: str) -> str:
        key = normalize_store_path(path)
        try:
            return self._documents[key]
        except KeyError as exc:
            raise StorageError(f"Document '{path}' does not exist.", path=path) from exc

    def write(self, path: str, text: str) -> None:
        key = normalize_store_path(path)
        if key not in self._documents:
            raise StorageError(f"Cannot update missing document '{path}'.", path=path)
        self._documents[key] = text

    def create(self, path: str, text: str) -> None:
        key = normalize_store_path(path)
        if key in self._documents:
            raise StorageError(f"Document '{path}' already exists.", path=path)
        self._documents[key] = text


class OverlayStore(MemoryStore):
    """Read through to a base store while keeping every change in memory."""

    def __init__(self, base: DocumentStore) -> None:
        super().__init__()
        self.base = base

    def exists(self, path: str) -> bool:
        return super().exists(path) or self.base.exists(path)

    def read(self, path: str) -> str:
        if super().exists(path):
            return super().read(path)
        return self.base.read(path)

    def write(self, path: str, text: str) -> None:
        if not self.exists(path):
            raise StorageError(f"Cannot update missing document '{path}'.", path=path)
        self._documents[normalize_store_path(path)] = text

    def create(self, path: str, text: str) -> None:
        if self.exists(path):
            raise StorageError(f"Document '{path}' already exists.", path=path)
        self._documents[normalize_store_path(path)] = text


__all__ = [
    "DocumentStore",
    "FileSystemStore",
    "MemoryStore",
    "OverlayStore",
    "normalize_store_path",
]
