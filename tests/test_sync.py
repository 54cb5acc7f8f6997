from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import threading
from typing import Any

from bibvault.core.bibliography import parse_bibliography
from bibvault.core.config import VaultConfig
from bibvault.core.exceptions import StorageError
from bibvault.core.storage import FileSystemStore, MemoryStore
from bibvault.core.sync import DocumentSynchronizer, synchronize


BIBLIOGRAPHY = """\
@article{a2001,
title={Paper A},
author={Doe, Jane and Roe, Richard},
year={2001},
journal={Journal of Tests}
}

@article{b2002,
title={Paper B},
author={Roe, Richard},
abstract={About B.}
}

@misc{untitled,
author={Poe, Edgar}
}
"""

REFS = "Sources/References"
AUTHORS = "Sources/Authors"


class EventLog:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


class FailingStore(MemoryStore):
    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    def create(self, path: str, text: str) -> None:
        if path in self.failing:
            raise StorageError("permission denied", path=path)
        super().create(path, text)


def test_first_run_creates_every_document() -> None:
    store = MemoryStore()

    report = synchronize(parse_bibliography(BIBLIOGRAPHY), store)

    assert report.created == [
        f"{REFS}/Paper A.md",
        f"{REFS}/Paper B.md",
        f"{AUTHORS}/Doe, Jane.md",
        f"{AUTHORS}/Roe, Richard.md",
        f"{AUTHORS}/Poe, Edgar.md",
    ]
    assert report.added_links == 3
    documents = store.documents
    assert documents[f"{AUTHORS}/Roe, Richard.md"] == (
        "---\ntitle: Roe, Richard\n---\n\n# Roe, Richard\n\n"
        "### References\n[[Paper A]]\n[[Paper B]]\n"
    )
    assert documents[f"{AUTHORS}/Poe, Edgar.md"] == "---\ntitle: Poe, Edgar\n---\n\n# Poe, Edgar\n"
    assert documents[f"{REFS}/Paper B.md"].endswith("# Paper B\n## Abstract\nAbout B.\n")


def test_second_run_changes_nothing() -> None:
    store = MemoryStore()
    parsed = parse_bibliography(BIBLIOGRAPHY)
    synchronize(parsed, store)
    snapshot = store.documents

    report = synchronize(parsed, store)

    assert store.documents == snapshot
    assert not report.changed
    assert report.added_links == 0
    assert len(report.unchanged) == 5


def test_existing_links_are_not_added_again() -> None:
    path = f"{AUTHORS}/Roe, Richard.md"
    existing = "---\ntitle: Roe, Richard\n---\n\n# Roe, Richard\n\n### References\n[[Paper A]]\n"
    store = MemoryStore({path: existing})

    report = synchronize(parse_bibliography(BIBLIOGRAPHY), store)

    assert report.patched == [path]
    assert store.read(path).count("[[Paper A]]") == 1
    assert store.read(path).endswith("[[Paper A]]\n[[Paper B]]\n")


def test_user_content_around_references_is_preserved() -> None:
    path = f"{AUTHORS}/Doe, Jane.md"
    existing = "# Doe, Jane\n\nBiography.\n\n### References\n[[Older work]]\n\n## Notes\nKeep me.\n"
    store = MemoryStore({path: existing})

    synchronize(parse_bibliography(BIBLIOGRAPHY), store)

    assert store.read(path) == (
        "# Doe, Jane\n\nBiography.\n\n### References\n[[Older work]]\n[[Paper A]]\n\n"
        "## Notes\nKeep me.\n"
    )


def test_existing_reference_documents_are_left_untouched() -> None:
    path = f"{REFS}/Paper A.md"
    store = MemoryStore({path: "hand written"})

    report = synchronize(parse_bibliography(BIBLIOGRAPHY), store)

    assert store.read(path) == "hand written"
    assert path in report.unchanged


def test_storage_failures_skip_only_the_failing_document() -> None:
    failing = f"{REFS}/Paper A.md"
    store = FailingStore({failing})
    events = EventLog()

    report = synchronize(parse_bibliography(BIBLIOGRAPHY), store, emitter=events)

    assert report.failed == [failing]
    assert f"{REFS}/Paper B.md" in report.created
    assert f"{AUTHORS}/Doe, Jane.md" in report.created
    assert ("document_failed", {"path": failing, "reason": "permission denied"}) in events.events


def test_duplicate_titles_share_one_reference_document() -> None:
    text = "@book{one,\ntitle={Shared},\nauthor={A}\n}\n\n@book{two,\ntitle={Shared},\nauthor={B}\n}\n"
    store = MemoryStore()

    report = synchronize(parse_bibliography(text), store)

    assert report.created.count(f"{REFS}/Shared.md") == 1
    assert f"{REFS}/Shared.md" in report.unchanged
    assert "citeKey: one" in store.read(f"{REFS}/Shared.md")


def test_repeated_credit_produces_a_single_link() -> None:
    store = MemoryStore()

    synchronize(parse_bibliography("@book{k,\ntitle={Solo},\nauthor={A and A}\n}\n"), store)

    assert store.read(f"{AUTHORS}/A.md").count("[[Solo]]") == 1


def test_cancellation_stops_between_documents() -> None:
    event = threading.Event()
    event.set()
    parsed = parse_bibliography(BIBLIOGRAPHY)
    store = MemoryStore()

    report = DocumentSynchronizer(store, cancel_event=event).run(parsed.references, parsed.authors)

    assert report.cancelled
    assert store.documents == {}


def test_custom_layout(tmp_path: Path) -> None:
    config = VaultConfig(
        references_folder="Library/Refs",
        authors_folder="Library/People",
        references_heading="## Works",
    )
    store = FileSystemStore(tmp_path)

    synchronize(parse_bibliography(BIBLIOGRAPHY), store, config=config)

    author = tmp_path / "Library" / "People" / "Doe, Jane.md"
    assert author.read_text(encoding="utf-8").endswith("## Works\n[[Paper A]]\n")
    assert (tmp_path / "Library" / "Refs" / "Paper A.md").is_file()


def test_filesystem_round_trip_is_idempotent(tmp_path: Path, vincent_bib: str) -> None:
    store = FileSystemStore(tmp_path)
    parsed = parse_bibliography(vincent_bib)

    first = synchronize(parsed, store)
    second = synchronize(parsed, store)

    assert first.created == [
        "Sources/References/Word studies in the New Testament.md",
        "Sources/Authors/Vincent, Marvin Richardson.md",
    ]
    assert not second.changed
    author = tmp_path / "Sources" / "Authors" / "Vincent, Marvin Richardson.md"
    assert author.read_text(encoding="utf-8").count("[[Word studies in the New Testament]]") == 1


class OSErrorStore(MemoryStore):
    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    def create(self, path: str, text: str) -> None:
        if path in self.failing:
            raise PermissionError(13, "Permission denied", path)
        super().create(path, text)


def test_os_errors_from_foreign_stores_skip_only_that_document() -> None:
    text = (
        "@book{one,\ntitle={First},\nauthor={A}\n}\n\n"
        "@book{two,\ntitle={Second},\nauthor={A}\n}\n"
    )
    failing = f"{REFS}/First.md"
    store = OSErrorStore({failing})
    events = EventLog()

    report = synchronize(parse_bibliography(text), store, emitter=events)

    assert report.failed == [failing]
    assert store.exists(f"{REFS}/Second.md")
    assert store.read(f"{AUTHORS}/A.md").endswith("[[First]]\n[[Second]]\n")
    assert [name for name, _ in events.events].count("document_failed") == 1


def test_titles_with_link_syntax_are_synchronized_once() -> None:
    text = (
        "@book{a,\ntitle={On [x] things},\nauthor={Doe, Jane}\n}\n\n"
        "@book{b,\ntitle={C# in depth},\nauthor={Doe, Jane}\n}\n\n"
        "@book{c,\ntitle={Pipes | filters},\nauthor={Doe, Jane}\n}\n"
    )
    parsed = parse_bibliography(text)
    store = MemoryStore()
    synchronize(parsed, store)
    snapshot = store.documents

    report = synchronize(parsed, store)

    assert not report.changed
    assert store.documents == snapshot
    document = store.read(f"{AUTHORS}/Doe, Jane.md")
    for title in ("On [x] things", "C# in depth", "Pipes | filters"):
        assert document.count(f"[[{title}]]") == 1
