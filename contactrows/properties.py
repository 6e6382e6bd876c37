"""
Vendor extension properties of vCard.

Address books write a number of non-standard X- properties (phonetic names,
Apple labels and dates, address book server groups). Each one is described by
a PropertyExtension: its name plus a parser and a renderer for its value.
The codec looks extensions up in an ExtensionTable, which is immutable and
handed to the codec through its configuration; hosts that need more
properties build a new table with ExtensionTable.with_extensions().

Parsers raise ValueError for values they can't understand. The codec then
skips that one property and logs a warning.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, NamedTuple

from contactrows.dates import format_date_value, parse_date_value

X_PHONETIC_FIRST_NAME = "X-PHONETIC-FIRST-NAME"
X_PHONETIC_MIDDLE_NAME = "X-PHONETIC-MIDDLE-NAME"
X_PHONETIC_LAST_NAME = "X-PHONETIC-LAST-NAME"
X_ABDATE = "X-ABDATE"
X_ABLABEL = "X-ABLABEL"
X_ABRELATEDNAMES = "X-ABRELATEDNAMES"
X_SIP = "X-SIP"
X_ADDRESSBOOKSERVER_KIND = "X-ADDRESSBOOKSERVER-KIND"
X_ADDRESSBOOKSERVER_MEMBER = "X-ADDRESSBOOKSERVER-MEMBER"

# Parameter Apple puts on dates whose year is only a placeholder
X_APPLE_OMIT_YEAR = "X-APPLE-OMIT-YEAR"
# Placeholder year for dates without year in vCard 3
OMIT_YEAR_PLACEHOLDER = 1604

# Predefined Apple labels
APPLE_ANNIVERSARY = "_$!<Anniversary>!$_"
APPLE_OTHER = "_$!<Other>!$_"
APPLE_RELATED_LABELS = {
    "_$!<Assistant>!$_": "assistant",
    "_$!<Brother>!$_": "brother",
    "_$!<Child>!$_": "child",
    "_$!<Father>!$_": "father",
    "_$!<Friend>!$_": "friend",
    "_$!<Manager>!$_": "manager",
    "_$!<Mother>!$_": "mother",
    "_$!<Parent>!$_": "parent",
    "_$!<Partner>!$_": "partner",
    "_$!<Sister>!$_": "sister",
    "_$!<Spouse>!$_": "spouse",
}

KIND_GROUP = "group"
KIND_INDIVIDUAL = "individual"

UUID_URN_PREFIX = "urn:uuid:"


class PropertyExtension(NamedTuple):
    """
    A custom vCard property.

    :param name: Property name, case-insensitive
    :param parse: Text -> value, raises ValueError on invalid text
    :param render: Value -> text
    """

    name: str
    parse: Callable[[str], Any]
    render: Callable[[Any], str]


class ExtensionTable(Mapping):
    """Read-only mapping of upper-case property name to PropertyExtension."""

    def __init__(self, extensions: Iterable[PropertyExtension] = ()):
        table = {}
        for extension in extensions:
            table[extension.name.upper()] = extension
        self._table = MappingProxyType(table)

    def __getitem__(self, name: str) -> PropertyExtension:
        return self._table[name.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def with_extensions(self, *extensions: PropertyExtension) -> "ExtensionTable":
        """
        Create a new table with additional (or replaced) extensions.

        :param extensions: Extensions to add
        :return: New table; this one is unchanged
        """
        return ExtensionTable([*self._table.values(), *extensions])


def uri_to_uid(uri: str) -> str:
    """Strip the "urn:uuid:" prefix of a UID/member URI, if any."""
    if uri.lower().startswith(UUID_URN_PREFIX):
        return uri[len(UUID_URN_PREFIX):]
    return uri


def uid_to_uri(uid: str) -> str:
    """Turn a UID into a member URI; values that already are URIs are kept."""
    if ":" in uid:
        return uid
    return f"{UUID_URN_PREFIX}{uid}"


def _parse_text(text: str) -> str:
    if text is None or not text.strip():
        raise ValueError("Empty value")
    return text.strip()


def _render_text(value: Any) -> str:
    return str(value)


def _parse_kind(text: str) -> str:
    return _parse_text(text).lower()


def _parse_member(text: str) -> str:
    return uri_to_uid(_parse_text(text))


DEFAULT_EXTENSIONS = ExtensionTable([
    PropertyExtension(X_PHONETIC_FIRST_NAME, _parse_text, _render_text),
    PropertyExtension(X_PHONETIC_MIDDLE_NAME, _parse_text, _render_text),
    PropertyExtension(X_PHONETIC_LAST_NAME, _parse_text, _render_text),
    PropertyExtension(X_ABDATE, parse_date_value, format_date_value),
    PropertyExtension(X_ABLABEL, _parse_text, _render_text),
    PropertyExtension(X_ABRELATEDNAMES, _parse_text, _render_text),
    PropertyExtension(X_SIP, _parse_text, _render_text),
    PropertyExtension(X_ADDRESSBOOKSERVER_KIND, _parse_kind, _render_text),
    PropertyExtension(X_ADDRESSBOOKSERVER_MEMBER, _parse_member, uid_to_uri),
])
