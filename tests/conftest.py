"""Shared test fixtures for the dremel test suite.

WHY: Several test modules need the same schemas and records: the small
``doc.links`` example and the classic Document example (DocId, Links,
Name/Language/Url) with its two sample records. Centralizing them here
keeps the expected stripes in one place.

HOW: Module-level constants hold the paths and records; fixtures return
fresh copies so tests can mutate them freely.

RULES:
- Records follow the implicit-optional model: every field may be absent
- Fixtures return deep copies, never the shared constants
"""

import copy
from typing import Any, Dict, List

import pytest

from dremel.core.schema import parse_schema


LINKS_PATHS: List[str] = ["doc.links[*].url", "doc.links[*].language"]

DOCUMENT_PATHS: List[str] = [
    "DocId",
    "Links.Backward[*]",
    "Links.Forward[*]",
    "Name[*].Language[*].Code",
    "Name[*].Language[*].Country",
    "Name[*].Url",
]

DOCUMENT_R1: Dict[str, Any] = {
    "DocId": 10,
    "Links": {"Forward": [20, 40, 60]},
    "Name": [
        {
            "Language": [
                {"Code": "en-us", "Country": "us"},
                {"Code": "en"},
            ],
            "Url": "http://A",
        },
        {"Url": "http://B"},
        {"Language": [{"Code": "en-gb", "Country": "gb"}]},
    ],
}

DOCUMENT_R2: Dict[str, Any] = {
    "DocId": 20,
    "Links": {"Backward": [10, 30], "Forward": [80]},
    "Name": [{"Url": "http://C"}],
}

NESTED_PATHS: List[str] = [
    "a[*].b[*].c[*]",
    "a[*].b[*].d",
    "a[*].e",
    "f",
]


@pytest.fixture
def links_schema():
    return parse_schema(LINKS_PATHS)


@pytest.fixture
def document_schema():
    return parse_schema(DOCUMENT_PATHS)


@pytest.fixture
def nested_schema():
    return parse_schema(NESTED_PATHS)


@pytest.fixture
def document_records():
    """The two Document sample records, r1 and r2."""
    return [copy.deepcopy(DOCUMENT_R1), copy.deepcopy(DOCUMENT_R2)]
