"""Unit tests for all formatter modules.

WHY: Formatter output is what users read and what the assemble command
reads back. A malformed column document cannot be assembled, and a
misaligned table hides the levels it is meant to show.

HOW: Tests render the doc.links and Document stripes:
  - Column table: exact text for a small schema, null marker override
  - JSON columns: schema validation, load back, rejection of bad documents
  - FSM listing: one line per transition
  - Registry: every FORMATTERS entry produces one output with its suffix

RULES:
- Schema validation uses formatters/columns_schema.json
- JSON output is compared after parsing, never as raw text
"""

import json
from pathlib import Path

import jsonschema
import pytest

from dremel.core.ir import ColumnEntry, ShreddedColumns
from dremel.core.shredder import shred_records
from dremel.formatters import FORMATTERS
from dremel.formatters.column_table import ColumnTableFormatter
from dremel.formatters.fsm_listing import FSMListingFormatter
from dremel.formatters.json_columns import (
    JSONColumnsFormatter,
    columns_to_document,
    load_columns_document,
    loads_columns,
)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "dremel" / "formatters" / "columns_schema.json"

LINKS_RECORD = {"doc": {"links": [{"url": "a.com", "language": "en"}, {"url": "b.com"}]}}


def _load_schema():
    with open(SCHEMA_PATH) as f:
        return json.load(f)


@pytest.fixture
def links_columns(links_schema):
    return shred_records([LINKS_RECORD], links_schema)


@pytest.fixture
def document_columns(document_schema, document_records):
    return shred_records(document_records, document_schema)


class TestColumnTable:
    """Plain text stripe tables."""

    def test_exact_output(self, links_columns):
        outputs = ColumnTableFormatter(null_display="NULL").format(links_columns)
        assert len(outputs) == 1
        assert outputs[0].suffix == "-columns.txt"
        assert outputs[0].media_type == "text/plain"
        assert outputs[0].content == (
            "doc.links[*].url  (max r=1, max d=3)\n"
            "value  r  d\n"
            "a.com  0  3\n"
            "b.com  1  3\n"
            "\n"
            "doc.links[*].language  (max r=1, max d=3)\n"
            "value  r  d\n"
            "en     0  3\n"
            "NULL   1  2\n"
        )

    def test_null_display_override(self, links_columns):
        content = ColumnTableFormatter(null_display="-").format(links_columns)[0].content
        assert "-      1  2" in content
        assert "NULL" not in content

    def test_non_string_values_as_json(self, document_columns):
        content = ColumnTableFormatter(null_display="NULL").format(document_columns)[0].content
        assert "DocId  (max r=0, max d=1)" in content
        assert "10     0  1" in content

    def test_one_table_per_leaf(self, document_columns):
        content = ColumnTableFormatter().format(document_columns)[0].content
        assert content.count("(max r=") == 6


class TestJSONColumns:
    """Self-describing JSON column document."""

    def test_output_validates_against_schema(self, document_columns):
        output = JSONColumnsFormatter().format(document_columns)[0]
        assert output.suffix == "-columns.json"
        assert output.media_type == "application/json"
        jsonschema.validate(instance=json.loads(output.content), schema=_load_schema())

    def test_document_shape(self, links_columns):
        document = json.loads(JSONColumnsFormatter().format(links_columns)[0].content)
        assert document == {
            "version": 1,
            "schema": ["doc.links[*].url", "doc.links[*].language"],
            "record_count": 1,
            "columns": {
                "doc.links[*].url": [["a.com", 0, 3], ["b.com", 1, 3]],
                "doc.links[*].language": [["en", 0, 3], [None, 1, 2]],
            },
        }

    def test_load_back(self, document_columns):
        content = JSONColumnsFormatter().format(document_columns)[0].content
        loaded = loads_columns(content)
        assert loaded.record_count == 2
        assert loaded.paths == document_columns.paths
        assert loaded.columns == document_columns.columns
        assert all(isinstance(e, ColumnEntry) for e in loaded.columns["DocId"])

    def test_unsupported_version(self, links_columns):
        document = columns_to_document(links_columns)
        document["version"] = 2
        with pytest.raises(jsonschema.ValidationError):
            load_columns_document(document)

    def test_malformed_entry(self, links_columns):
        document = columns_to_document(links_columns)
        document["columns"]["doc.links[*].url"][0] = ["a.com", 0]
        with pytest.raises(jsonschema.ValidationError):
            load_columns_document(document)

    def test_negative_level(self, links_columns):
        document = columns_to_document(links_columns)
        document["columns"]["doc.links[*].url"][0] = ["a.com", -1, 3]
        with pytest.raises(jsonschema.ValidationError):
            load_columns_document(document)

    def test_column_keys_must_match_schema(self, links_columns):
        document = columns_to_document(links_columns)
        del document["columns"]["doc.links[*].language"]
        with pytest.raises(ValueError, match="do not match"):
            load_columns_document(document)

    def test_non_scalar_value_rejected_on_output(self, links_schema):
        columns = ShreddedColumns(
            schema=links_schema,
            columns={
                "doc.links[*].url": [ColumnEntry(["a.com"], 0, 3)],
                "doc.links[*].language": [ColumnEntry(None, 0, 2)],
            },
            record_count=1,
        )
        with pytest.raises(jsonschema.ValidationError):
            JSONColumnsFormatter().format(columns)


class TestFSMListing:
    """FSM transition listing."""

    def test_links_listing(self, links_columns):
        output = FSMListingFormatter().format(links_columns)[0]
        assert output.suffix == "-fsm.txt"
        assert output.content == (
            "doc.links[*].url --0--> doc.links[*].language\n"
            "doc.links[*].url --1--> doc.links[*].language\n"
            "doc.links[*].language --0--> END\n"
            "doc.links[*].language --1--> doc.links[*].url\n"
        )

    def test_document_line_count(self, document_columns):
        content = FSMListingFormatter().format(document_columns)[0].content
        assert len(content.splitlines()) == 1 + 2 + 2 + 3 + 3 + 2


class TestRegistry:
    """Every registered formatter works through the common interface."""

    @pytest.mark.parametrize("key", sorted(FORMATTERS))
    def test_single_output_with_suffix(self, key, document_columns):
        formatter = FORMATTERS[key]()
        outputs = formatter.format(document_columns)
        assert len(outputs) == 1
        assert outputs[0].suffix.startswith("-")
        assert outputs[0].content.endswith("\n")
        assert formatter.name

    def test_registered_keys(self):
        assert set(FORMATTERS) == {"column_table", "json_columns", "fsm_listing"}
