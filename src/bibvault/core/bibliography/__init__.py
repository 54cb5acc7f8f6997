"""Bibliography parsing facade.

Architecture
: `tokenize` splits raw text into entries while tracking brace depth, so a
  blank line inside a braced value never ends an entry.
: `normalize_fields` turns the field list of an entry into a lower-cased
  mapping, stripping one delimiter layer per value and applying the
  configured field rules.
: `build_reference` validates the mapping into an immutable `Reference`;
  `resolve_authors` and `build_index` derive the author identities and the
  author to reference links.
: `parse_bibliography` chains the stages and records per-entry problems as
  `BibliographyIssue` values instead of raising.

Usage Example

```pycon
>>> from bibvault.core.bibliography import parse_bibliography
>>> payload = \"\"\"@book{Vincent_1887,
... title={Word studies in the New Testament},
... author={Vincent, Marvin Richardson},
... year={1887}
... }\"\"\"
>>> parsed = parse_bibliography(payload)
>>> parsed.references[0].year
1887
>>> [author.name for author in parsed.authors]
['Vincent, Marvin Richardson']
```
"""

from __future__ import annotations

from .authors import AUTHOR_SEPARATOR, Author, resolve_authors, split_authors
from .fields import FieldMap, normalize_fields, unwrap_value
from .index import CrossReferenceIndex, build_index
from .issues import BibliographyIssue
from .parsing import ParsedBibliography, parse_bibliography
from .records import OPTIONAL_FIELDS, Reference, build_reference, parse_year, sanitize_cite_key
from .tokenizer import DroppedBlock, RawEntry, tokenize


__all__ = [
    "AUTHOR_SEPARATOR",
    "OPTIONAL_FIELDS",
    "Author",
    "BibliographyIssue",
    "CrossReferenceIndex",
    "DroppedBlock",
    "FieldMap",
    "ParsedBibliography",
    "RawEntry",
    "Reference",
    "build_index",
    "build_reference",
    "normalize_fields",
    "parse_bibliography",
    "parse_year",
    "resolve_authors",
    "sanitize_cite_key",
    "split_authors",
    "tokenize",
    "unwrap_value",
]
