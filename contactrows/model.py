"""
Canonical contact model shared by the record and vCard sides.

The model follows vCard closely: typed properties keep their TYPE
tokens, and properties that carry a free-form label are wrapped in
LabeledProperty. Record type codes never appear here; translating them is the
job of the taxonomy module.

Dependencies:
    - dataclasses: Standard library for value types
    - datetime: Standard library for the revision timestamp
    - typing: Standard library for type hints
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from contactrows.dates import DateOrTime

T = TypeVar("T")


@dataclass
class LabeledProperty(Generic[T]):
    """A property plus an optional label, set only when no standard type applies."""

    property: T
    label: Optional[str] = None


@dataclass
class Telephone:
    text: str
    types: List[str] = field(default_factory=list)
    pref: Optional[int] = None


@dataclass
class Email:
    value: str
    types: List[str] = field(default_factory=list)
    pref: Optional[int] = None


@dataclass
class Impp:
    """Instant messaging address, stored as a URI such as "xmpp:alice@example.com"."""

    uri: str
    types: List[str] = field(default_factory=list)
    pref: Optional[int] = None

    @property
    def scheme(self) -> Optional[str]:
        if ":" not in self.uri:
            return None
        return self.uri.split(":", 1)[0].lower()

    @property
    def handle(self) -> str:
        if ":" not in self.uri:
            return self.uri
        return self.uri.split(":", 1)[1]


@dataclass
class Address:
    po_box: Optional[str] = None
    extended: Optional[str] = None
    street: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    formatted: Optional[str] = None
    types: List[str] = field(default_factory=list)
    pref: Optional[int] = None

    def components(self) -> List[Optional[str]]:
        return [
            self.po_box, self.extended, self.street, self.locality,
            self.region, self.postal_code, self.country,
        ]

    def is_empty(self) -> bool:
        return not any(c for c in self.components())


@dataclass
class Url:
    value: str
    types: List[str] = field(default_factory=list)


@dataclass
class Nickname:
    values: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)


@dataclass
class Organization:
    """Organization name followed by its units, most general first."""

    values: List[str] = field(default_factory=list)


@dataclass
class Related:
    """A related person, either by name (text) or by reference (uri)."""

    text: Optional[str] = None
    uri: Optional[str] = None
    types: List[str] = field(default_factory=list)


@dataclass
class Contact:
    """
    A single contact or contact group.

    Lists keep insertion order. Optional text fields are None when absent.
    """

    uid: Optional[str] = None
    starred: bool = False

    group: bool = False
    members: List[str] = field(default_factory=list)

    display_name: Optional[str] = None
    prefix: Optional[str] = None
    given_name: Optional[str] = None
    middle_name: Optional[str] = None
    family_name: Optional[str] = None
    suffix: Optional[str] = None
    phonetic_given_name: Optional[str] = None
    phonetic_middle_name: Optional[str] = None
    phonetic_family_name: Optional[str] = None

    nickname: Optional[LabeledProperty[Nickname]] = None

    organization: Optional[Organization] = None
    job_title: Optional[str] = None
    job_description: Optional[str] = None

    phone_numbers: List[LabeledProperty[Telephone]] = field(default_factory=list)
    emails: List[LabeledProperty[Email]] = field(default_factory=list)
    impps: List[LabeledProperty[Impp]] = field(default_factory=list)
    addresses: List[LabeledProperty[Address]] = field(default_factory=list)
    urls: List[LabeledProperty[Url]] = field(default_factory=list)
    relations: List[Related] = field(default_factory=list)

    birthday: Optional[DateOrTime] = None
    anniversary: Optional[DateOrTime] = None
    custom_dates: List[LabeledProperty[DateOrTime]] = field(default_factory=list)

    note: Optional[str] = None
    photo: Optional[bytes] = None
    categories: List[str] = field(default_factory=list)

    revision: Optional[datetime.datetime] = None

    # vCard properties this library does not map, kept as serialized text
    unknown_properties: Optional[str] = None
    # values of host-registered extension properties, by property name
    extra_properties: Dict[str, List[Any]] = field(default_factory=dict)

    def name_components(self) -> List[Optional[str]]:
        return [
            self.prefix, self.given_name, self.middle_name, self.family_name,
            self.suffix, self.phonetic_given_name, self.phonetic_middle_name,
            self.phonetic_family_name,
        ]
