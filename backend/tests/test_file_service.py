"""Tests for upload validation and source classification."""

import pytest

from backend.app.config import settings
from backend.app.services.file_service import (
    build_uploaded_file,
    decode_source,
    detect_file_type,
    get_file_extension,
    validate_extension,
)


class TestExtensions:
    def test_extension_is_lowercased(self):
        assert get_file_extension("ORDERS.SQL") == ".sql"
        assert get_file_extension("archive.tar.prc") == ".prc"
        assert get_file_extension("README") == ""

    @pytest.mark.parametrize("name", ["a.sql", "b.TXT", "c.tab", "d.prc", "e.trg", "f.ddl"])
    def test_accepted(self, name):
        validate_extension(name)

    def test_rejected(self):
        with pytest.raises(ValueError, match="Unsupported file format: .csv"):
            validate_extension("data.csv")
        with pytest.raises(ValueError, match=r"\(none\)"):
            validate_extension("Makefile")


class TestDecodeSource:
    def test_utf8_with_bom(self):
        assert decode_source("\ufeffSELECT 1".encode("utf-8")) == "SELECT 1"

    def test_falls_back_to_latin1(self):
        assert decode_source("-- café".encode("latin-1")) == "-- café"

    def test_empty(self):
        with pytest.raises(ValueError, match="empty"):
            decode_source(b"")

    def test_too_large(self, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 8)
        with pytest.raises(ValueError, match="size limit"):
            decode_source(b"SELECT 1234")


class TestDetectFileType:
    @pytest.mark.parametrize("content,expected", [
        ("CREATE TABLE orders (id INT)", "table"),
        ("create proc get_orders as select 1", "procedure"),
        ("CREATE OR REPLACE PROCEDURE p AS BEGIN NULL; END;", "procedure"),
        ("CREATE TRIGGER trg ON orders FOR INSERT AS EXEC audit_proc", "trigger"),
        ("SELECT * FROM orders", "other"),
    ])
    def test_classification(self, content, expected):
        assert detect_file_type(content) == expected

    def test_trigger_wins_over_table_in_same_file(self):
        content = "CREATE TABLE audit (id INT)\nGO\nCREATE TRIGGER t ON audit FOR INSERT AS SELECT 1"
        assert detect_file_type(content) == "trigger"


def test_build_uploaded_file():
    uploaded = build_uploaded_file("orders.sql", b"CREATE TABLE orders (id INT)")

    assert uploaded.name == "orders.sql"
    assert uploaded.type == "table"
    assert uploaded.content == "CREATE TABLE orders (id INT)"
    assert uploaded.id is None


def test_build_uploaded_file_rejects_bad_extension():
    with pytest.raises(ValueError):
        build_uploaded_file("orders.csv", b"id,name")
