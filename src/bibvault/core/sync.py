"""Reconcile parsed references and authors with a document store.

Documents are visited one at a time: every reference first, then every
author. A storage failure, whether a `StorageError` or an `OSError` raised
by a foreign store, only skips the document being processed.
Re-running over an already synchronized store changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
import threading

from .bibliography import Author, ParsedBibliography, Reference, build_index
from .config import VaultConfig
from .diagnostics import DiagnosticEmitter, NullEmitter
from .documents import (
    author_path,
    merge_links,
    reference_path,
    render_author_document,
    render_reference_document,
    unique_titles,
)
from .exceptions import StorageError
from .storage import DocumentStore


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncReport:
    """Paths touched by a synchronization pass, grouped by outcome."""

    created: list[str] = field(default_factory=list)
    patched: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    added_links: int = 0
    cancelled: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.created or self.patched)


class DocumentSynchronizer:
    """Create missing documents and merge new links into author documents."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        config: VaultConfig | None = None,
        emitter: DiagnosticEmitter | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.store = store
        self.config = config or VaultConfig()
        self.emitter = emitter or NullEmitter()
        self.cancel_event = cancel_event
        self._lock = threading.Lock()

    def run(
        self,
        references: Sequence[Reference],
        authors: Iterable[Author],
        index: Mapping[str, Sequence[Reference]] | None = None,
    ) -> SyncReport:
        """Synchronize every reference then every author document."""
        if index is None:
            index = build_index(references)
        report = SyncReport()

        with self._lock:
            for reference in references:
                if self._cancelled(report):
                    return report
                self._sync_reference(reference, report)
            for author in authors:
                if self._cancelled(report):
                    return report
                self._sync_author(author.name, index.get(author.name, ()), report)

        logger.debug(
            "Synchronization finished: %d created, %d patched, %d unchanged, %d failed",
            len(report.created),
            len(report.patched),
            len(report.unchanged),
            len(report.failed),
        )
        return report

    def _cancelled(self, report: SyncReport) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            report.cancelled = True
            logger.info("Synchronization cancelled between documents.")
            return True
        return False

    def _sync_reference(self, reference: Reference, report: SyncReport) -> None:
        path = reference_path(reference, self.config)
        try:
            if self.store.exists(path):
                self._unchanged(path, report)
                return
            self.store.create(path, render_reference_document(reference))
        except (StorageError, OSError) as exc:
            self._failed(path, exc, report)
            return
        report.created.append(path)
        self.emitter.event("document_created", {"path": path, "kind": "reference"})

    def _sync_author(
        self,
        name: str,
        references: Sequence[Reference],
        report: SyncReport,
    ) -> None:
        path = author_path(name, self.config)
        titles = unique_titles(references)
        heading = self.config.references_heading
        try:
            if not self.store.exists(path):
                self.store.create(path, render_author_document(name, titles, heading=heading))
                report.created.append(path)
                report.added_links += len(titles)
                self.emitter.event("document_created", {"path": path, "kind": "author"})
                return

            content = self.store.read(path)
            merged, added = merge_links(content, titles, heading=heading)
            if not added:
                self._unchanged(path, report)
                return
            self.store.write(path, merged)
        except (StorageError, OSError) as exc:
            self._failed(path, exc, report)
            return

        report.patched.append(path)
        report.added_links += len(added)
        self.emitter.event("document_patched", {"path": path, "added": len(added)})

    def _unchanged(self, path: str, report: SyncReport) -> None:
        report.unchanged.append(path)
        self.emitter.event("document_unchanged", {"path": path})

    def _failed(self, path: str, exc: StorageError | OSError, report: SyncReport) -> None:
        logger.warning("Skipping document %s: %s", path, exc)
        report.failed.append(path)
        self.emitter.event("document_failed", {"path": path, "reason": str(exc)})


def synchronize(
    bibliography: ParsedBibliography,
    store: DocumentStore,
    *,
    config: VaultConfig | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> SyncReport:
    """Synchronize a parsed bibliography into `store`."""
    synchronizer = DocumentSynchronizer(store, config=config, emitter=emitter)
    return synchronizer.run(bibliography.references, bibliography.authors, bibliography.index)


__all__ = ["DocumentSynchronizer", "SyncReport", "synchronize"]
