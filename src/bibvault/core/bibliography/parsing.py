"""Pipeline turning raw bibliography text into references and authors."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from ..config import VaultConfig
from ..diagnostics import DiagnosticEmitter, NullEmitter
from ..exceptions import BibliographyParseError
from .authors import Author, resolve_authors
from .fields import normalize_fields
from .index import CrossReferenceIndex, build_index
from .issues import BibliographyIssue
from .records import Reference, build_reference, sanitize_cite_key
from .tokenizer import DroppedBlock, tokenize


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ParsedBibliography:
    """Immutable outcome of one parse invocation."""

    references: tuple[Reference, ...] = ()
    authors: tuple[Author, ...] = ()
    issues: tuple[BibliographyIssue, ...] = ()
    dropped_entries: int = 0
    entry_count: int = 0
    _index: CrossReferenceIndex | None = field(default=None, repr=False, compare=False)

    @property
    def index(self) -> CrossReferenceIndex:
        """Return the author to references index, computed once."""
        if self._index is None:
            object.__setattr__(self, "_index", build_index(self.references))
        return self._index  # type: ignore[return-value]


def _collision_issues(references: tuple[Reference, ...]) -> list[BibliographyIssue]:
    issues: list[BibliographyIssue] = []
    titles_by_key: dict[str, str] = {}
    keys_by_title: dict[str, str] = {}
    for reference in references:
        known_title = titles_by_key.setdefault(reference.cite_key, reference.title)
        if known_title != reference.title:
            issues.append(
                BibliographyIssue(
                    message=(
                        f"Citation key is shared with '{known_title}'; "
                        "documents are keyed by title and both are kept."
                    ),
                    key=reference.cite_key,
                    code="citekey-collision",
                )
            )
        known_key = keys_by_title.setdefault(reference.title, reference.cite_key)
        if known_key != reference.cite_key:
            issues.append(
                BibliographyIssue(
                    message=(
                        f"Title is shared with entry '{known_key}'; "
                        "only one reference document is generated."
                    ),
                    key=reference.cite_key,
                    code="title-collision",
                )
            )
    return issues


def _scan(text: str, config: VaultConfig) -> ParsedBibliography:
    dropped: list[DroppedBlock] = []
    entries = tokenize(text, dropped=dropped)

    issues = [
        BibliographyIssue(
            message=f"Dropped block ({block.reason}): {block.excerpt}",
            line=block.line,
            code="dropped-entry",
        )
        for block in dropped
    ]
    references: list[Reference] = []
    author_fields: list[str] = []

    for entry in entries:
        concatenated: list[tuple[str, int]] = []
        fields = normalize_fields(entry.body, config=config, concatenated=concatenated)
        issues.extend(
            BibliographyIssue(
                message=(
                    f"Field '{name}' has text after its delimited value, such as a "
                    "'#' concatenation; only the first part was kept."
                ),
                key=sanitize_cite_key(entry.cite_key),
                line=entry.line + offset,
                code="unsupported-value",
            )
            for name, offset in concatenated
        )
        author = fields.get("author", "").strip()
        if author:
            author_fields.append(author)

        reference = build_reference(entry.cite_key, fields, entry_type=entry.entry_type)
        if reference is None:
            missing = [name for name in ("title", "author") if not fields.get(name, "").strip()]
            issues.append(
                BibliographyIssue(
                    message=f"Entry is missing {' and '.join(missing)}; no reference generated.",
                    key=sanitize_cite_key(entry.cite_key),
                    line=entry.line,
                    code="incomplete-entry",
                )
            )
            continue
        references.append(reference)

    frozen = tuple(references)
    issues.extend(_collision_issues(frozen))
    return ParsedBibliography(
        references=frozen,
        authors=tuple(resolve_authors(author_fields)),
        issues=tuple(issues),
        dropped_entries=len(dropped),
        entry_count=len(entries),
    )


def parse_bibliography(
    text: str,
    *,
    config: VaultConfig | None = None,
    emitter: DiagnosticEmitter | None = None,
) -> ParsedBibliography:
    """Parse raw bibliography text.

    Per-entry problems are reported as issues on the result. Any failure of
    the scan itself rejects the whole input with
    :class:`BibliographyParseError`.
    """
    config = config or VaultConfig()
    emitter = emitter or NullEmitter()

    try:
        result = _scan(text, config)
    except BibliographyParseError:
        logger.debug("Bibliography input rejected", exc_info=True)
        raise
    except Exception as exc:
        logger.debug("Unexpected failure while parsing bibliography", exc_info=True)
        raise BibliographyParseError(f"Unexpected failure while parsing: {exc}") from exc

    for issue in result.issues:
        if issue.code == "dropped-entry":
            emitter.event("entry_dropped", {"line": issue.line, "message": issue.message})
            continue
        emitter.warning(issue.message if issue.key is None else f"[{issue.key}] {issue.message}")

    logger.debug(
        "Parsed %d entries into %d references and %d authors (%d dropped)",
        result.entry_count,
        len(result.references),
        len(result.authors),
        result.dropped_entries,
    )
    return result


__all__ = ["ParsedBibliography", "parse_bibliography"]
