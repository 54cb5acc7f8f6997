import textwrap

from bibvault.core.bibliography import normalize_fields, unwrap_value
from bibvault.core.config import FieldRule, VaultConfig


def _body(payload: str) -> str:
    return textwrap.dedent(payload)


def test_unwrap_value_keeps_inner_brace_groups() -> None:
    assert (
        unwrap_value("{Word {studies} in the {New} Testament}")
        == "Word {studies} in the {New} Testament"
    )


def test_unwrap_value_leaves_partial_groups_alone() -> None:
    assert unwrap_value("{A} and {B}") == "{A} and {B}"


def test_unwrap_value_strips_quotes_and_trailing_comma() -> None:
    assert unwrap_value('"Quoted value",') == "Quoted value"
    assert unwrap_value("  1887, ") == "1887"
    assert unwrap_value("{  padded  }") == "padded"
    assert unwrap_value("bare") == "bare"


def test_normalize_fields_lowercases_keys_and_strips_delimiters() -> None:
    body = _body(
        """
          Title = {Word studies in the New Testament},
          AUTHOR="Vincent, Marvin Richardson",
          year = 1887,
          month = jan
        """
    )

    assert normalize_fields(body) == {
        "title": "Word studies in the New Testament",
        "author": "Vincent, Marvin Richardson",
        "year": "1887",
        "month": "jan",
    }


def test_normalize_fields_captures_multiline_values() -> None:
    body = _body(
        """
        abstract = {First line
          second line
          third line},
        note = {n}
        """
    )

    fields = normalize_fields(body)

    assert fields["abstract"] == "First line\n  second line\n  third line"
    assert fields["note"] == "n"


def test_normalize_fields_keeps_blank_lines_in_values() -> None:
    fields = normalize_fields("abstract = {Para one.\n\nPara two.},\ntitle={T}\n")

    assert fields == {"abstract": "Para one.\n\nPara two.", "title": "T"}


def test_normalize_fields_last_occurrence_wins() -> None:
    fields = normalize_fields("title = {First},\nTITLE = {Second}\n")

    assert fields == {"title": "Second"}


def test_normalize_fields_preserves_nested_braces() -> None:
    fields = normalize_fields("title = {Word {studies} in the {New} Testament},\n")

    assert fields["title"] == "Word {studies} in the {New} Testament"


def test_normalize_fields_splits_on_first_equals_only() -> None:
    fields = normalize_fields("url = {https://example.org/?a=b&c=d},\n")

    assert fields["url"] == "https://example.org/?a=b&c=d"


def test_normalize_fields_quoted_values_may_hold_braces() -> None:
    fields = normalize_fields('title = "The {RNA} World",\nnote = "a {"} b"\n')

    assert fields == {"title": "The {RNA} World", "note": 'a {"} b'}


def test_normalize_fields_skips_lines_without_assignment() -> None:
    fields = normalize_fields("\n  stray text\n  title = {T}\n")

    assert fields == {"title": "T"}


def test_normalize_fields_empty_value_does_not_swallow_next_field() -> None:
    fields = normalize_fields("note =\ntitle = {T}\n")

    assert fields == {"note": "", "title": "T"}


def test_normalize_fields_value_on_following_line() -> None:
    fields = normalize_fields("title =\n  {Spread out}\n")

    assert fields == {"title": "Spread out"}


def test_booktitle_colons_replaced_by_default_rules() -> None:
    fields = normalize_fields(
        "booktitle = {Proc: Part One},\ntitle = {A: B}\n", config=VaultConfig()
    )

    assert fields["booktitle"] == "Proc_ Part One"
    assert fields["title"] == "A: B"


def test_field_rules_are_opt_in() -> None:
    fields = normalize_fields("booktitle = {Proc: Part One}\n")

    assert fields["booktitle"] == "Proc: Part One"


def test_regex_field_rule() -> None:
    rule = FieldRule(field="Pages", pattern=r"\s*-+\s*", replacement="-", regex=True)

    fields = normalize_fields("pages = {12 -- 34}\n", config=VaultConfig(field_rules=[rule]))

    assert fields["pages"] == "12-34"


def test_text_after_delimited_value_is_reported() -> None:
    concatenated: list[tuple[str, int]] = []

    fields = normalize_fields(
        '\ntitle = "Foo" # " Bar",\nauthor = {A} # {B, C}, year = {2001}\n',
        concatenated=concatenated,
    )

    assert fields == {"title": "Foo", "author": "A", "year": "2001"}
    assert concatenated == [("title", 1), ("author", 2)]


def test_trailing_commas_and_spaces_are_not_reported() -> None:
    concatenated: list[tuple[str, int]] = []

    normalize_fields("title = {T} ,  \nnote = \"N\"\n", concatenated=concatenated)

    assert concatenated == []
