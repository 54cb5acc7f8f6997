"""Primary public API for bibvault."""

from __future__ import annotations

from bibvault.core.bibliography import (
    Author,
    BibliographyIssue,
    ParsedBibliography,
    Reference,
    build_index,
    parse_bibliography,
    split_authors,
)
from bibvault.core.config import FieldRule, VaultConfig, load_config
from bibvault.core.exceptions import (
    BibliographyParseError,
    BibvaultError,
    ConfigError,
    StorageError,
)
from bibvault.core.storage import DocumentStore, FileSystemStore, MemoryStore, OverlayStore
from bibvault.core.sync import DocumentSynchronizer, SyncReport, synchronize
from bibvault.version import get_version


__version__ = get_version()

__all__ = [
    "Author",
    "BibliographyIssue",
    "BibliographyParseError",
    "BibvaultError",
    "ConfigError",
    "DocumentStore",
    "DocumentSynchronizer",
    "FieldRule",
    "FileSystemStore",
    "MemoryStore",
    "OverlayStore",
    "ParsedBibliography",
    "Reference",
    "StorageError",
    "SyncReport",
    "VaultConfig",
    "__version__",
    "build_index",
    "get_version",
    "load_config",
    "parse_bibliography",
    "split_authors",
    "synchronize",
]
