"""Tests for messenger protocol <-> IMPP URI scheme mapping."""

from contactrows.im_mapping import (
    legacy_protocol_scheme,
    protocol_to_uri_scheme,
    scheme_to_protocol,
)
from contactrows.records import ImProtocol


class TestProtocolToUriScheme:
    def test_strips_invalid_characters(self):
        assert protocol_to_uri_scheme("PrO/ätO\\cOl") == "protocol"

    def test_strips_leading_non_letters(self):
        assert protocol_to_uri_scheme("42-chat") == "chat"

    def test_keeps_scheme_punctuation(self):
        assert protocol_to_uri_scheme("My.Chat+App-2") == "my.chat+app-2"

    def test_nothing_left(self):
        assert protocol_to_uri_scheme("123 ü") == ""

    def test_none(self):
        assert protocol_to_uri_scheme(None) is None


class TestLegacyProtocols:
    def test_schemes(self):
        assert legacy_protocol_scheme(ImProtocol.AIM) == "aim"
        assert legacy_protocol_scheme(ImProtocol.JABBER) == "xmpp"
        assert legacy_protocol_scheme(ImProtocol.GOOGLE_TALK) == "google-talk"

    def test_unknown_code(self):
        assert legacy_protocol_scheme(42) is None

    def test_scheme_to_protocol(self):
        assert scheme_to_protocol("XMPP") == (ImProtocol.JABBER, None)
        assert scheme_to_protocol("ymsgr") == (ImProtocol.YAHOO, None)
        assert scheme_to_protocol("gtalk") == (ImProtocol.GOOGLE_TALK, None)

    def test_unknown_scheme_is_custom(self):
        assert scheme_to_protocol("Matrix") == (ImProtocol.CUSTOM, "matrix")
