"""Bibliography-related CLI helpers."""

from __future__ import annotations

from pybtex.database import Person
from pybtex.exceptions import PybtexError
from rich import box
from rich.console import Console
from rich.table import Table

from bibvault.core.bibliography import ParsedBibliography
from bibvault.core.documents import single_line


def split_person_name(name: str) -> tuple[str, str]:
    """Return `(last, first)` parts of an author name, as BibTeX reads it."""
    try:
        person = Person(name)
    except PybtexError:
        return name, ""
    last = " ".join(person.prelast_names + person.last_names + person.lineage_names)
    first = " ".join(person.first_names + person.middle_names)
    if not last:
        return name, first
    return last, first


def build_reference_table(parsed: ParsedBibliography) -> Table:
    table = Table(title="References", box=box.SIMPLE, header_style="bold cyan", show_edge=True)
    table.add_column("Key", style="bold green", no_wrap=True)
    table.add_column("Type")
    table.add_column("Year", justify="right")
    table.add_column("Title", overflow="fold")
    table.add_column("Authors", overflow="fold")
    for reference in parsed.references:
        table.add_row(
            reference.cite_key,
            reference.entry_type,
            str(reference.year) if reference.year else "—",
            single_line(reference.title),
            "; ".join(reference.authors),
        )
    return table


def build_author_table(parsed: ParsedBibliography) -> Table:
    table = Table(title="Authors", box=box.SIMPLE, header_style="bold cyan", show_edge=True)
    table.add_column("Last", style="bold")
    table.add_column("First")
    table.add_column("References", justify="right")
    index = parsed.index
    rows = []
    for author in parsed.authors:
        last, first = split_person_name(author.name)
        rows.append((last, first, len(index.get(author.name, ()))))
    for last, first, count in sorted(rows, key=lambda row: (row[0].casefold(), row[1].casefold())):
        table.add_row(last, first or "—", str(count))
    return table


def build_issue_table(parsed: ParsedBibliography) -> Table:
    table = Table(title="Warnings", box=box.SIMPLE, header_style="bold yellow", show_edge=True)
    table.add_column("Key", style="yellow", no_wrap=True)
    table.add_column("Line", style="yellow", justify="right")
    table.add_column("Message", style="yellow")
    for issue in parsed.issues:
        table.add_row(
            issue.key or "—",
            str(issue.line) if issue.line else "—",
            issue.message,
        )
    return table


def print_bibliography_overview(parsed: ParsedBibliography, console: Console | None = None) -> None:
    """Print references, authors and warnings of a parsed bibliography."""
    console = console or Console()

    if not parsed.references and not parsed.authors:
        console.print("[dim]No references found.[/]")
    else:
        console.print(build_reference_table(parsed))
        console.print(build_author_table(parsed))

    if parsed.issues:
        console.print(build_issue_table(parsed))


__all__ = [
    "build_author_table",
    "build_issue_table",
    "build_reference_table",
    "print_bibliography_overview",
    "split_person_name",
]
