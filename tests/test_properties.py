"""Tests for vendor extension properties and the extension table."""

import pytest

from contactrows.properties import (
    DEFAULT_EXTENSIONS,
    X_ABLABEL,
    X_ADDRESSBOOKSERVER_MEMBER,
    ExtensionTable,
    PropertyExtension,
    uid_to_uri,
    uri_to_uid,
)


class TestExtensionTable:
    def test_lookup_is_case_insensitive(self):
        assert DEFAULT_EXTENSIONS["x-ablabel"].name == X_ABLABEL
        assert "X-Phonetic-First-Name" in DEFAULT_EXTENSIONS

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_EXTENSIONS["X-NEW"] = None

    def test_with_extensions_returns_new_table(self):
        shoe_size = PropertyExtension("X-Shoe-Size", int, str)
        table = DEFAULT_EXTENSIONS.with_extensions(shoe_size)
        assert table["X-SHOE-SIZE"] is shoe_size
        assert "X-SHOE-SIZE" not in DEFAULT_EXTENSIONS
        assert len(table) == len(DEFAULT_EXTENSIONS) + 1

    def test_with_extensions_replaces_same_name(self):
        custom_label = PropertyExtension(X_ABLABEL, str.upper, str)
        table = DEFAULT_EXTENSIONS.with_extensions(custom_label)
        assert table[X_ABLABEL] is custom_label
        assert len(table) == len(DEFAULT_EXTENSIONS)

    def test_empty_table(self):
        assert len(ExtensionTable()) == 0


class TestDefaultParsers:
    def test_blank_value_is_rejected(self):
        with pytest.raises(ValueError):
            DEFAULT_EXTENSIONS[X_ABLABEL].parse("  ")

    def test_member_strips_urn_prefix(self):
        member = DEFAULT_EXTENSIONS[X_ADDRESSBOOKSERVER_MEMBER]
        assert member.parse("urn:uuid:1234-abcd") == "1234-abcd"
        assert member.render("1234-abcd") == "urn:uuid:1234-abcd"

    def test_abdate_parses_dates(self):
        value = DEFAULT_EXTENSIONS["X-ABDATE"].parse("2015-06-01")
        assert value.date.isoformat() == "2015-06-01"


class TestUidUri:
    def test_uri_to_uid(self):
        assert uri_to_uid("URN:UUID:abc") == "abc"
        assert uri_to_uid("abc") == "abc"

    def test_uid_to_uri_keeps_uris(self):
        assert uid_to_uri("abc") == "urn:uuid:abc"
        assert uid_to_uri("mailto:jane@example.com") == "mailto:jane@example.com"
