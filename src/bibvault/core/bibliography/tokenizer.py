"""Split raw bibliography text into entry blocks.

Entries are separated by blank lines or by a new `@type{` marker. Both
boundaries are only honoured while no brace is open, so a value holding a
multi-paragraph abstract stays attached to its entry.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from ..exceptions import BibliographyParseError


HEADER_PATTERN = re.compile(r"@(\w+)\s*\{\s*([^,}\n]+)")

# Record types carrying no key/value payload. They are reported and skipped.
UNSUPPORTED_TYPES = frozenset({"comment", "preamble", "string"})


@dataclass(slots=True, frozen=True)
class RawEntry:
    """One tokenized entry: its header and the text of its field list."""

    entry_type: str
    cite_key: str
    body: str
    line: int


@dataclass(slots=True, frozen=True)
class DroppedBlock:
    """A block of input that could not be read as an entry."""

    line: int
    excerpt: str
    reason: str


def _is_escaped(text: str, index: int) -> bool:
    backslashes = 0
    index -= 1
    while index >= 0 and text[index] == "\\":
        backslashes += 1
        index -= 1
    return backslashes % 2 == 1


def matching_brace(text: str, start: int) -> int:
    """Return the index of the brace closing the one at `start`, or -1."""
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char not in "{}" or _is_escaped(text, index):
            continue
        if char == "{":
            depth += 1
        else:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _next_line_is_blank(text: str, newline: int) -> bool:
    index = newline + 1
    while index < len(text) and text[index] in " \t\r":
        index += 1
    return index < len(text) and text[index] == "\n"


def split_blocks(text: str) -> list[tuple[int, str]]:
    """Split `text` into `(line, block)` pairs at top-level boundaries.

    Raises :class:`BibliographyParseError` when braces do not balance, since
    no boundary after the fault can be trusted.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    blocks: list[tuple[int, str]] = []
    depth = 0
    line = 1
    opened_at = 1
    start = 0
    start_line = 1

    for index, char in enumerate(text):
        if char == "\n":
            if depth == 0 and _next_line_is_blank(text, index):
                blocks.append((start_line, text[start:index]))
                start = index + 1
                start_line = line + 1
            line += 1
            continue
        if char == "@" and depth == 0 and index > start:
            blocks.append((start_line, text[start:index]))
            start = index
            start_line = line
            continue
        if char not in "{}" or _is_escaped(text, index):
            continue
        if char == "{":
            if depth == 0:
                opened_at = line
            depth += 1
        else:
            depth -= 1
            if depth < 0:
                raise BibliographyParseError("Unmatched closing brace", line=line)

    if depth > 0:
        raise BibliographyParseError("Brace opened here is never closed", line=opened_at)

    blocks.append((start_line, text[start:]))
    return [(number, block) for number, block in blocks if block.strip()]


def _excerpt(block: str, limit: int = 60) -> str:
    first_line = block.strip().splitlines()[0] if block.strip() else ""
    if len(first_line) > limit:
        return first_line[: limit - 1] + "…"
    return first_line


def tokenize(text: str, *, dropped: list[DroppedBlock] | None = None) -> list[RawEntry]:
    """Return the entries found in `text`, in input order.

    Blocks without an `@type{key,` header are skipped. When `dropped` is
    given, one :class:`DroppedBlock` is appended to it for every skipped block.
    """
    entries: list[RawEntry] = []
    for start_line, block in split_blocks(text):
        stripped = block.lstrip()
        line = start_line + block[: len(block) - len(stripped)].count("\n")
        match = HEADER_PATTERN.match(stripped)
        cite_key = match.group(2).strip() if match else ""
        if match is None or not cite_key:
            if dropped is not None:
                dropped.append(DroppedBlock(line, _excerpt(stripped), "missing entry header"))
            continue

        entry_type = match.group(1).lower()
        if entry_type in UNSUPPORTED_TYPES:
            if dropped is not None:
                dropped.append(
                    DroppedBlock(line, _excerpt(stripped), f"unsupported @{entry_type} record")
                )
            continue

        opening = stripped.index("{", match.start())
        closing = matching_brace(stripped, opening)
        if closing == -1:
            closing = len(stripped)
        if match.end() < len(stripped) and stripped[match.end()] == ",":
            body = stripped[match.end() + 1 : closing]
        else:
            body = ""
        entries.append(RawEntry(entry_type=entry_type, cite_key=cite_key, body=body, line=line))
    return entries


__all__ = [
    "HEADER_PATTERN",
    "DroppedBlock",
    "RawEntry",
    "matching_brace",
    "split_blocks",
    "tokenize",
]
