"""Unit tests for the sources module.

WHY: Schema and record files are the CLI's only inputs. Wrong discovery
or parsing would shred records against the wrong schema, or drop records
without a trace.

HOW: Tests cover companion schema discovery by naming convention, text
and JSON schema files, and records stored as a JSON array or JSON Lines.

RULES:
- All file I/O tests use tmp_path fixtures for isolation.
"""

import pytest

from dremel.core.sources import load_records, load_schema_paths, resolve_companion_schema


class TestCompanionSchemaDiscovery:
    """resolve_companion_schema finds {stem}-schema.txt or {stem}-schema.json."""

    def test_finds_text_schema(self, tmp_path):
        records = tmp_path / "orders.jsonl"
        records.touch()
        schema = tmp_path / "orders-schema.txt"
        schema.write_text("id\n", encoding="utf-8")

        assert resolve_companion_schema(records) == schema

    def test_finds_json_schema(self, tmp_path):
        records = tmp_path / "orders.json"
        records.touch()
        schema = tmp_path / "orders-schema.json"
        schema.write_text('["id"]', encoding="utf-8")

        assert resolve_companion_schema(records) == schema

    def test_text_schema_preferred(self, tmp_path):
        records = tmp_path / "orders.json"
        records.touch()
        text = tmp_path / "orders-schema.txt"
        text.write_text("id\n", encoding="utf-8")
        (tmp_path / "orders-schema.json").write_text('["id"]', encoding="utf-8")

        assert resolve_companion_schema(records) == text

    def test_strips_all_extensions(self, tmp_path):
        records = tmp_path / "orders.2024.jsonl"
        records.touch()
        schema = tmp_path / "orders-schema.txt"
        schema.write_text("id\n", encoding="utf-8")

        assert resolve_companion_schema(records) == schema

    def test_none_when_missing(self, tmp_path):
        records = tmp_path / "orders.json"
        records.touch()

        assert resolve_companion_schema(records) is None


class TestLoadSchemaPaths:
    """Text and JSON schema files."""

    def test_text_file_skips_comments_and_blanks(self, tmp_path):
        schema = tmp_path / "s.txt"
        schema.write_text(
            "# Document schema\nDocId\n\n  Name[*].Url  \n# trailing comment\n",
            encoding="utf-8",
        )
        assert load_schema_paths(schema) == ["DocId", "Name[*].Url"]

    def test_json_array(self, tmp_path):
        schema = tmp_path / "s.json"
        schema.write_text('["doc.links[*].url", "doc.links[*].language"]', encoding="utf-8")
        assert load_schema_paths(schema) == ["doc.links[*].url", "doc.links[*].language"]

    def test_json_must_be_string_array(self, tmp_path):
        schema = tmp_path / "s.json"
        schema.write_text('{"paths": ["a"]}', encoding="utf-8")
        with pytest.raises(ValueError):
            load_schema_paths(schema)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_schema_paths(tmp_path / "nope.txt")


class TestLoadRecords:
    """JSON array and JSON Lines record files."""

    def test_json_array(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text('[{"DocId": 10}, {"DocId": 20}]', encoding="utf-8")
        assert load_records(path) == [{"DocId": 10}, {"DocId": 20}]

    def test_json_lines(self, tmp_path):
        path = tmp_path / "r.jsonl"
        path.write_text('{"DocId": 10}\n\n{"DocId": 20}\n', encoding="utf-8")
        assert load_records(path) == [{"DocId": 10}, {"DocId": 20}]

    def test_leading_whitespace_before_array(self, tmp_path):
        path = tmp_path / "r.json"
        path.write_text('\n  [{"a": 1}]\n', encoding="utf-8")
        assert load_records(path) == [{"a": 1}]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "r.jsonl"
        path.write_text("   \n", encoding="utf-8")
        assert load_records(path) == []

    def test_bad_line_reports_line_number(self, tmp_path):
        path = tmp_path / "r.jsonl"
        path.write_text('{"a": 1}\n{"a": \n', encoding="utf-8")
        with pytest.raises(ValueError, match="line 2"):
            load_records(path)

    def test_unicode(self, tmp_path):
        path = tmp_path / "r.jsonl"
        path.write_text('{"name": "Zoë"}\n', encoding="utf-8")
        assert load_records(path) == [{"name": "Zoë"}]
