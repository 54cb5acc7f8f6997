from __future__ import annotations

import textwrap

import pytest


VINCENT = """
@book{Vincent_1887,
title={Word studies in the New Testament},
author={Vincent, Marvin Richardson},
year={1887}
}
"""


def dedent(payload: str) -> str:
    return textwrap.dedent(payload).strip() + "\n"


@pytest.fixture
def vincent_bib() -> str:
    return dedent(VINCENT)
