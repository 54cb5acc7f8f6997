"""Field extraction for tokenized entries.

The scanner works on logical fields rather than physical lines: a braced or
quoted value keeps going across line breaks until its delimiters balance.
"""

from __future__ import annotations

import re

from ..config import VaultConfig
from .tokenizer import _is_escaped, matching_brace


FieldMap = dict[str, str]

_KEY_PATTERN = re.compile(r"[^\s{}\"=,#]+")


def _find_unescaped(text: str, char: str, start: int, stop: int) -> int:
    index = text.find(char, start, stop)
    while index != -1 and _is_escaped(text, index):
        index = text.find(char, index + 1, stop)
    return index


def _closing_quote(text: str, start: int) -> int:
    depth = 0
    for index in range(start + 1, len(text)):
        char = text[index]
        if _is_escaped(text, index):
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth = max(0, depth - 1)
        elif char == '"' and depth == 0:
            return index
    return -1


def _line_end(text: str, start: int) -> int:
    index = text.find("\n", start)
    return len(text) if index == -1 else index


def unwrap_value(raw: str) -> str:
    """Strip one delimiter layer and a trailing comma from a raw value.

    Only a brace pair enclosing the whole value is removed, so
    `{Word {studies} in the {New} Testament}` keeps its inner groups while
    `{A} and {B}` is left alone.
    """
    value = raw.strip()
    if value.endswith(","):
        value = value[:-1].rstrip()
    if value.startswith("{") and matching_brace(value, 0) == len(value) - 1:
        return value[1:-1].strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1].strip()
    return value


def _read_value(body: str, start: int) -> tuple[str, int]:
    """Return the raw value beginning at `start` and the index following it."""
    char = body[start]
    if char == "{":
        end = matching_brace(body, start)
        if end == -1:
            return body[start:], len(body)
        return body[start : end + 1], end + 1
    if char == '"':
        end = _closing_quote(body, start)
        if end == -1:
            stop = _line_end(body, start)
            return body[start:stop], stop
        return body[start : end + 1], end + 1

    stop = _line_end(body, start)
    comma = body.find(",", start, stop)
    if comma != -1:
        stop = comma
    return body[start:stop], stop


def _value_tail(body: str, start: int) -> int:
    """Return the end of the text trailing a value, up to a comma or line break."""
    position = start
    length = len(body)
    while position < length and body[position] not in ",\n":
        if body[position] in '{"':
            _, position = _read_value(body, position)
        else:
            position += 1
    return position


def normalize_fields(
    body: str,
    *,
    config: VaultConfig | None = None,
    concatenated: list[tuple[str, int]] | None = None,
) -> FieldMap:
    """Convert the field list of one entry into a name/value mapping.

    Keys are lower-cased; the last occurrence of a key wins. Candidates
    without an `=` on their first line are skipped. Field rules of `config`
    are applied to the unwrapped values.

    Text following a braced or quoted value, such as a `#` concatenation, is
    not supported: only the first part is kept and, when `concatenated` is
    given, a `(key, line offset)` pair is appended to it.
    """
    fields: FieldMap = {}
    position = 0
    length = len(body)

    while position < length:
        while position < length and (body[position].isspace() or body[position] == ","):
            position += 1
        if position >= length:
            break

        line_end = _line_end(body, position)
        equals = _find_unescaped(body, "=", position, line_end)
        if equals == -1:
            position = line_end + 1
            continue

        key = body[position:equals].replace("{", "").replace("}", "").strip().lower()
        value_start = equals + 1
        truncated = False
        while value_start < length and body[value_start].isspace():
            value_start += 1

        if value_start >= length:
            raw = ""
            position = length
        elif "\n" in body[equals:value_start] and body[value_start] not in '{"':
            # Empty value: the next line already starts another field.
            raw = ""
            position = value_start
        else:
            raw, position = _read_value(body, value_start)
            if body[value_start] in '{"':
                tail_end = _value_tail(body, position)
                if body[position:tail_end].strip():
                    truncated = True
                    position = tail_end

        if not _KEY_PATTERN.fullmatch(key):
            continue
        if truncated and concatenated is not None:
            concatenated.append((key, body.count("\n", 0, value_start)))
        value = unwrap_value(raw)
        if config is not None:
            for rule in config.rules_for(key):
                value = rule.apply(value)
        fields[key] = value

    return fields


__all__ = ["FieldMap", "normalize_fields", "unwrap_value"]
