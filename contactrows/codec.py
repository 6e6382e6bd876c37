"""
vCard codec: parses vCard text into Contact objects and renders them back.

The low-level grammar (line folding, escaping, parameters, base64) is handled
by vobject. This module maps vobject components to the Contact model and
takes care of the address book specifics on top of plain vCard:

    - labels: "itemN.X-ABLABEL" gives a label to the "itemN." property
    - dates without year: vCard 3 stores them as 1604-MM-DD with
      X-APPLE-OMIT-YEAR=1604
    - anniversaries and related names in vCard 3 (X-ABDATE, X-ABRELATEDNAMES)
    - contact groups (KIND/MEMBER, X-ADDRESSBOOKSERVER-KIND/-MEMBER)
    - unknown properties are kept as text and written back unchanged

Dependencies:
    - vobject: Third-party library for vCard parsing and serialization
    - base64, uuid, datetime: Standard library helpers
    - logging: Standard library for logging
"""
# pylint: disable=logging-fstring-interpolation

import base64
import binascii
import datetime
import logging
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

import vobject
from vobject.base import ContentLine, VObjectError
from vobject.icalendar import stringToTextValues

from contactrows.dates import (
    DateOrTime,
    PartialDate,
    format_date_value,
    parse_date_value,
)
from contactrows.model import (
    Address,
    Contact,
    Email,
    Impp,
    LabeledProperty,
    Nickname,
    Organization,
    Related,
    Telephone,
    Url,
)
from contactrows.properties import (
    APPLE_ANNIVERSARY,
    APPLE_OTHER,
    APPLE_RELATED_LABELS,
    DEFAULT_EXTENSIONS,
    KIND_GROUP,
    OMIT_YEAR_PLACEHOLDER,
    X_ABDATE,
    X_ABLABEL,
    X_ABRELATEDNAMES,
    X_ADDRESSBOOKSERVER_KIND,
    X_ADDRESSBOOKSERVER_MEMBER,
    X_APPLE_OMIT_YEAR,
    X_PHONETIC_FIRST_NAME,
    X_PHONETIC_LAST_NAME,
    X_PHONETIC_MIDDLE_NAME,
    X_SIP,
    ExtensionTable,
    uid_to_uri,
    uri_to_uid,
)

logger = logging.getLogger("contactrows")

VCARD_3 = "3.0"
VCARD_4 = "4.0"
PRODUCT_ID = "-//contactrows//vCard codec//EN"

NOTE_SEPARATOR = "\n\n\n"

# LOGO and SOUND values larger than this are not kept
MAX_BINARY_DATA_SIZE = 25 * 1024

# Properties that are read elsewhere or regenerated on render
_DROPPED_PROPERTIES = {"VERSION", "PRODID", "SORT-STRING", "SOURCE", "LABEL"}

_REVISION_FORMATS = (
    "%Y%m%dT%H%M%SZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y%m%dT%H%M%S",
    "%Y-%m-%dT%H:%M:%S",
)

_IMAGE_SIGNATURES = (
    (b"\xff\xd8\xff", "JPEG", "image/jpeg"),
    (b"\x89PNG", "PNG", "image/png"),
    (b"GIF8", "GIF", "image/gif"),
)

Downloader = Callable[[str], Optional[bytes]]

# vobject keeps only the part before the first unescaped comma of text values
_DATA_URI_COMMA = re.compile(
    r"^((?:[\w-]+\.)?(?:PHOTO|LOGO)[^:\r\n]*:data:[^,\r\n]*),",
    re.IGNORECASE | re.MULTILINE,
)

_FOLDED_LINE = re.compile(r"\r?\n[ \t]")

# Comma separated text lists that vobject decodes as a single value
_TEXT_LIST_PROPERTIES = ("NICKNAME",)


def _protect_raw_values(text: str, names: Iterable[str]) -> str:
    """
    Escape backslashes and commas in the values of the named properties.

    vobject then decodes those values back to their raw wire form, which
    _decode_raw_values() splits without losing anything after a comma.
    """
    pattern = re.compile(
        r"^((?:[\w-]+\.)?(?:" + "|".join(re.escape(name) for name in names) + r")"
        r"(?:;(?:[^:\"\r\n]|\"[^\"\r\n]*\")*)?:)(.*)$",
        re.IGNORECASE | re.MULTILINE,
    )
    text = _FOLDED_LINE.sub("", text)
    return pattern.sub(
        lambda m: m.group(1) + m.group(2).replace("\\", "\\\\").replace(",", "\\,"),
        text,
    )


def _decode_raw_values(vcard: vobject.base.Component, names: Set[str]) -> None:
    """Unescape values protected by _protect_raw_values()."""
    for line in vcard.getChildren():
        if not isinstance(line, ContentLine) or line.name not in names:
            continue
        if not isinstance(line.value, str):
            continue
        values = stringToTextValues(line.value)
        if line.name in _TEXT_LIST_PROPERTIES:
            line.value = values
        else:
            # single values keep unescaped commas
            line.value = ",".join(values)


@dataclass(frozen=True)
class CodecConfig:
    """
    Settings of a VCardCodec.

    :param version: vCard version written by render() ("3.0" or "4.0")
    :param product_id: PRODID written by render(), None to omit it
    :param extensions: Custom properties the codec understands
    :param downloader: Optional callable fetching external PHOTO URLs
    """

    version: str = VCARD_3
    product_id: Optional[str] = PRODUCT_ID
    extensions: ExtensionTable = field(default_factory=lambda: DEFAULT_EXTENSIONS)
    downloader: Optional[Downloader] = None

    def __post_init__(self):
        if self.version not in (VCARD_3, VCARD_4):
            raise ValueError(f"Unsupported vCard version: {self.version}")


def _join(value: Any, separator: str = " ") -> Optional[str]:
    """Join a vobject structured component (str or list) into text."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = separator.join(str(v) for v in value if v)
    value = str(value).strip()
    return value or None


def _text(line: ContentLine) -> Optional[str]:
    return _join(line.value, ",")


def _text_values(line: ContentLine) -> List[str]:
    values = line.value if isinstance(line.value, (list, tuple)) else [line.value]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _types(line: ContentLine) -> List[str]:
    """Collect TYPE tokens, including vCard 2.1 style bare parameters."""
    types: List[str] = []
    raw = list(line.params.get("TYPE", [])) + list(line.singletonparams)
    for value in raw:
        for token in str(value).split(","):
            token = token.strip().lower()
            if token and token not in types:
                types.append(token)
    return types


def _param(line: ContentLine, name: str) -> Optional[str]:
    values = line.params.get(name)
    if not values:
        return None
    return str(values[0])


def _pref(line: ContentLine) -> Optional[int]:
    value = _param(line, "PREF")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid PREF parameter: {value}")
        return None


def _image_type(data: bytes) -> Tuple[str, str]:
    for signature, photo_type, mime_type in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return photo_type, mime_type
    return "JPEG", "image/jpeg"


def _apply_omit_year(value: DateOrTime, line: ContentLine) -> DateOrTime:
    """Turn a placeholder-year date into a date without year."""
    omit_year = _param(line, X_APPLE_OMIT_YEAR)
    if value.date is not None and omit_year == str(value.date.year):
        return DateOrTime(
            partial_date=PartialDate(month=value.date.month, day=value.date.day)
        )
    return value


def _parse_revision(value: Any) -> Optional[datetime.datetime]:
    if isinstance(value, datetime.datetime):
        return value
    text = str(value).strip()
    for fmt in _REVISION_FORMATS:
        try:
            parsed = datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue
        if fmt.endswith("Z"):
            parsed = parsed.replace(tzinfo=datetime.timezone.utc)
        return parsed
    logger.warning(f"Ignoring invalid REV: {text}")
    return None


def _capitalize(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


class _ItemGroups:
    """Hands out "itemN" property groups not used by retained properties."""

    def __init__(self, used: Set[str]):
        self._used = used
        self._next = 1

    def next(self) -> str:
        while f"item{self._next}" in self._used:
            self._next += 1
        group = f"item{self._next}"
        self._used.add(group)
        self._next += 1
        return group


class _ReadState:
    """Per-vCard state while parsing."""

    def __init__(self, labels: Dict[str, str]):
        self.labels = labels
        self.used_labels: Set[str] = set()
        self.notes: List[str] = []
        self.retained: List[ContentLine] = []

    def take_label(self, line: ContentLine) -> Optional[str]:
        if not line.group:
            return None
        group = line.group.lower()
        label = self.labels.get(group)
        if label is not None:
            self.used_labels.add(group)
        return label


class VCardCodec:
    """
    Converts between vCard text and Contact objects.

    Parsing accepts vCard 2.1, 3.0 and 4.0; rendering writes the version
    configured in CodecConfig.
    """

    def __init__(self, config: Optional[CodecConfig] = None):
        self.config = config or CodecConfig()
        self._readers = {
            "UID": self._read_uid,
            "KIND": self._read_kind,
            X_ADDRESSBOOKSERVER_KIND: self._read_kind,
            "MEMBER": self._read_member,
            X_ADDRESSBOOKSERVER_MEMBER: self._read_member,
            "FN": self._read_formatted_name,
            "N": self._read_name,
            X_PHONETIC_FIRST_NAME: self._read_phonetic_name,
            X_PHONETIC_MIDDLE_NAME: self._read_phonetic_name,
            X_PHONETIC_LAST_NAME: self._read_phonetic_name,
            "NICKNAME": self._read_nickname,
            "ORG": self._read_organization,
            "TITLE": self._read_title,
            "ROLE": self._read_role,
            "TEL": self._read_telephone,
            "EMAIL": self._read_email,
            "IMPP": self._read_impp,
            X_SIP: self._read_sip,
            "ADR": self._read_address,
            "URL": self._read_url,
            "RELATED": self._read_related,
            X_ABRELATEDNAMES: self._read_related_name,
            "BDAY": self._read_birthday,
            "ANNIVERSARY": self._read_anniversary,
            X_ABDATE: self._read_custom_date,
            "NOTE": self._read_note,
            "PHOTO": self._read_photo,
            "CATEGORIES": self._read_categories,
            "REV": self._read_revision,
        }

    # Parsing

    def parse(self, text: str) -> Contact:
        """
        Parse the first vCard of a text.

        :param text: vCard text
        :return: Parsed contact
        :raises vobject.base.ParseError: If the text is not valid vCard
        :raises ValueError: If the text contains no vCard
        """
        contacts = self.parse_all(text)
        if not contacts:
            raise ValueError("No vCard found")
        return contacts[0]

    def parse_all(self, text: str) -> List[Contact]:
        """
        Parse all vCards of a text.

        :param text: vCard text with zero or more vCards
        :return: Parsed contacts in document order
        """
        contacts = []
        raw_names = set(_TEXT_LIST_PROPERTIES) | set(self.config.extensions)
        text = _protect_raw_values(text, sorted(raw_names))
        text = _DATA_URI_COMMA.sub(r"\1\\,", text)
        for component in vobject.readComponents(text, allowQP=True):
            if component.name.upper() != "VCARD":
                logger.warning(f"Ignoring {component.name} component")
                continue
            _decode_raw_values(component, raw_names)
            contacts.append(self.parse_component(component))
        return contacts

    def parse_component(self, vcard: vobject.base.Component) -> Contact:
        """
        Map a parsed vobject vCard component to a Contact.

        Components read by vobject directly carry its plain text decoding,
        so NICKNAME lists and commas in extension values are only kept
        when the text is parsed with parse() or parse_all().

        :param vcard: vobject component
        :return: New contact
        """
        contact = Contact()
        lines = [c for c in vcard.getChildren() if isinstance(c, ContentLine)]

        labels = {}
        label_lines = []
        for line in lines:
            if line.name == X_ABLABEL and line.group:
                label = self._parse_extension(line)
                if label is not None:
                    labels[line.group.lower()] = label
                    label_lines.append(line)
        state = _ReadState(labels)

        label_ids = {id(line) for line in label_lines}
        for line in lines:
            if id(line) in label_ids:
                continue
            self._read_line(contact, line, state)

        for line in label_lines:
            if line.group.lower() not in state.used_labels:
                state.retained.append(line)

        if state.notes:
            contact.note = NOTE_SEPARATOR.join(state.notes)

        if state.retained:
            contact.unknown_properties = "".join(
                line.serialize(validate=False) for line in state.retained
            )

        if not contact.uid:
            contact.uid = str(uuid.uuid4())
            logger.warning(f"vCard without UID, generated {contact.uid}")

        return contact

    def _parse_extension(self, line: ContentLine) -> Optional[Any]:
        extension = self.config.extensions.get(line.name)
        if extension is None:
            return None
        text = line.value if isinstance(line.value, str) else _text(line)
        try:
            return extension.parse(text)
        except ValueError as e:
            logger.warning(f"Ignoring invalid {line.name} property: {e}")
            return None

    def _read_line(self, contact: Contact, line: ContentLine, state: _ReadState) -> None:
        name = line.name
        if name in _DROPPED_PROPERTIES:
            return

        reader = self._readers.get(name)
        if reader is not None and not name.startswith("X-"):
            reader(contact, line, state, None)
            return

        if name in self.config.extensions and name != X_ABLABEL:
            value = self._parse_extension(line)
            if value is None:
                return
            if reader is not None:
                reader(contact, line, state, value)
            else:
                contact.extra_properties.setdefault(name, []).append(value)
            return

        if name in ("LOGO", "SOUND"):
            data = line.value
            if data is not None and len(data) > MAX_BINARY_DATA_SIZE:
                logger.debug(f"Dropping {name} with {len(data)} bytes")
                return

        state.retained.append(line)

    def _read_uid(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        text = _text(line)
        if text:
            contact.uid = uri_to_uid(text)

    def _read_kind(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        kind = value if value is not None else _text(line)
        if kind:
            contact.group = kind.lower() == KIND_GROUP

    def _read_member(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        uid = value if value is not None else _text(line)
        if uid:
            contact.members.append(uri_to_uid(uid))

    def _read_formatted_name(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        contact.display_name = _text(line)

    def _read_name(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        name = line.value
        if isinstance(name, str):
            contact.family_name = _join(name)
            return
        contact.family_name = _join(name.family)
        contact.given_name = _join(name.given)
        contact.middle_name = _join(name.additional)
        contact.prefix = _join(name.prefix)
        contact.suffix = _join(name.suffix)

    def _read_phonetic_name(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        if line.name == X_PHONETIC_FIRST_NAME:
            contact.phonetic_given_name = value
        elif line.name == X_PHONETIC_MIDDLE_NAME:
            contact.phonetic_middle_name = value
        else:
            contact.phonetic_family_name = value

    def _read_nickname(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        values = _text_values(line)
        if not values:
            return
        if contact.nickname is None:
            nickname = Nickname(values, _types(line))
            contact.nickname = LabeledProperty(nickname, state.take_label(line))
        else:
            contact.nickname.property.values.extend(values)

    def _read_organization(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        values = line.value if isinstance(line.value, (list, tuple)) else [line.value]
        values = [str(v).strip() for v in values if v is not None]
        if any(values):
            contact.organization = Organization(values)

    def _read_title(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        contact.job_title = _text(line)

    def _read_role(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        contact.job_description = _text(line)

    def _read_telephone(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        number = _text(line)
        if not number:
            return
        if number.lower().startswith("tel:"):
            number = number[4:]
        phone = Telephone(number, _types(line), _pref(line))
        contact.phone_numbers.append(LabeledProperty(phone, state.take_label(line)))

    def _read_email(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        address = _text(line)
        if not address:
            return
        email = Email(address, _types(line), _pref(line))
        contact.emails.append(LabeledProperty(email, state.take_label(line)))

    def _read_impp(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        uri = _text(line)
        if not uri:
            return
        impp = Impp(uri, _types(line), _pref(line))
        contact.impps.append(LabeledProperty(impp, state.take_label(line)))

    def _read_sip(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        uri = value if value.lower().startswith("sip:") else f"sip:{value}"
        impp = Impp(uri, _types(line), _pref(line))
        contact.impps.append(LabeledProperty(impp, state.take_label(line)))

    def _read_address(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        adr = line.value
        if isinstance(adr, str):
            address = Address(street=_join(adr))
        else:
            address = Address(
                po_box=_join(adr.box, ", "),
                extended=_join(adr.extended, ", "),
                street=_join(adr.street, "\n"),
                locality=_join(adr.city, ", "),
                region=_join(adr.region, ", "),
                postal_code=_join(adr.code, ", "),
                country=_join(adr.country, ", "),
            )
        address.formatted = _param(line, "LABEL")
        address.types = _types(line)
        address.pref = _pref(line)
        if address.is_empty():
            return
        contact.addresses.append(LabeledProperty(address, state.take_label(line)))

    def _read_url(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        url = _text(line)
        if url:
            contact.urls.append(LabeledProperty(Url(url, _types(line)), state.take_label(line)))

    def _read_related(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        text = _text(line)
        if not text:
            return
        types = _types(line)
        value_type = (_param(line, "VALUE") or "").lower()
        if value_type == "text" or ":" not in text:
            contact.relations.append(Related(text=text, types=types))
        else:
            contact.relations.append(Related(uri=text, types=types))

    def _read_related_name(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        label = state.take_label(line)
        types = []
        if label in APPLE_RELATED_LABELS:
            types.append(APPLE_RELATED_LABELS[label])
        elif label:
            types.extend(
                part.strip().lower() for part in label.split(",") if part.strip()
            )
        contact.relations.append(Related(text=value, types=types))

    def _date_value(self, line: ContentLine) -> Optional[DateOrTime]:
        text = _text(line)
        if not text:
            return None
        if (_param(line, "VALUE") or "").lower() == "text":
            return DateOrTime(text=text)
        return _apply_omit_year(parse_date_value(text), line)

    def _read_birthday(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        contact.birthday = self._date_value(line)

    def _read_anniversary(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        contact.anniversary = self._date_value(line)

    def _read_custom_date(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        date_value = _apply_omit_year(value, line)
        label = state.take_label(line)
        if label == APPLE_ANNIVERSARY:
            if contact.anniversary is None:
                contact.anniversary = date_value
            return
        if label == APPLE_OTHER:
            label = None
        contact.custom_dates.append(LabeledProperty(date_value, label))

    def _read_note(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        note = line.value if isinstance(line.value, str) else _text(line)
        if note and note.strip():
            state.notes.append(note)

    def _read_photo(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        data = line.value
        if isinstance(data, (bytes, bytearray)):
            contact.photo = bytes(data) or None
            return

        text = str(data or "").strip()
        if not text:
            return
        try:
            if text.lower().startswith("data:"):
                header, _, payload = text.partition(",")
                if ";base64" not in header.lower():
                    logger.warning("Ignoring PHOTO data URI without base64 encoding")
                    return
                if not payload:
                    logger.warning("Ignoring PHOTO data URI without data")
                    return
                contact.photo = base64.b64decode(payload)
            elif _param(line, "ENCODING"):
                contact.photo = base64.b64decode(text)
            elif self.config.downloader is not None:
                contact.photo = self.config.downloader(text)
            else:
                logger.warning(f"Ignoring external PHOTO {text}, no downloader configured")
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Ignoring invalid PHOTO: {e}")

    def _read_categories(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        for category in _text_values(line):
            if category not in contact.categories:
                contact.categories.append(category)

    def _read_revision(
        self, contact: Contact, line: ContentLine, state: _ReadState, value: Any
    ) -> None:
        if line.value:
            contact.revision = _parse_revision(line.value)

    # Rendering

    def render(self, contact: Contact) -> str:
        """
        Render a contact as vCard text.

        :param contact: Contact to write
        :return: vCard text with CRLF line endings
        """
        return self.to_component(contact).serialize(validate=False)

    def render_all(self, contacts: List[Contact]) -> str:
        return "".join(self.render(contact) for contact in contacts)

    @property
    def _v4(self) -> bool:
        return self.config.version == VCARD_4

    def to_component(self, contact: Contact) -> vobject.base.Component:
        """
        Map a Contact to a vobject vCard component.

        :param contact: Contact to write
        :return: vobject component ready for serialization
        """
        vcard = vobject.vCard()
        vcard.add("version").value = self.config.version
        if self.config.product_id:
            vcard.add("prodid").value = self.config.product_id

        retained = self._retained_lines(contact)
        groups = _ItemGroups({line.group.lower() for line in retained if line.group})

        uid = contact.uid or str(uuid.uuid4())
        vcard.add("uid").value = uid

        self._write_group_info(vcard, contact)
        self._write_names(vcard, contact, groups)
        self._write_organization(vcard, contact)
        self._write_communication(vcard, contact, groups)
        self._write_addresses(vcard, contact, groups)
        self._write_urls(vcard, contact, groups)
        self._write_relations(vcard, contact, groups)
        self._write_dates(vcard, contact, groups)

        if contact.note:
            vcard.add("note").value = contact.note
        if contact.photo:
            self._write_photo(vcard, contact.photo)
        if contact.categories:
            self._add_raw(vcard, "categories", ",".join(
                self._escape(category) for category in contact.categories
            ))

        revision = contact.revision or datetime.datetime.now(datetime.timezone.utc)
        if revision.tzinfo is not None:
            revision = revision.astimezone(datetime.timezone.utc)
        vcard.add("rev").value = revision.strftime("%Y%m%dT%H%M%SZ")

        self._write_extra_properties(vcard, contact)
        for line in retained:
            vcard.add(line)

        return vcard

    @staticmethod
    def _escape(text: str) -> str:
        return (
            text.replace("\\", "\\\\").replace(",", "\\,")
            .replace(";", "\\;").replace("\n", "\\n")
        )

    @staticmethod
    def _add_raw(vcard, name: str, value: str, group: Optional[str] = None) -> ContentLine:
        """Add a property whose value is already in vCard wire format."""
        line = vcard.add(name, group)
        line.value = value
        line.encoded = True
        return line

    def _add_extension(
        self,
        vcard,
        name: str,
        value: Any,
        group: Optional[str] = None
    ) -> Optional[ContentLine]:
        extension = self.config.extensions.get(name)
        if extension is None:
            logger.debug(f"No extension for {name}, not writing it")
            return None
        line = vcard.add(name, group)
        line.value = extension.render(value)
        return line

    def _label_group(self, vcard, label: Optional[str], groups: _ItemGroups) -> Optional[str]:
        if not label:
            return None
        group = groups.next()
        self._add_extension(vcard, X_ABLABEL, label, group)
        return group

    def _set_types(self, line: ContentLine, types: List[str], pref: Optional[int] = None) -> None:
        types = list(types)
        if self._v4:
            if "pref" in types:
                types.remove("pref")
                pref = pref or 1
            if pref is not None:
                line.params["PREF"] = [str(pref)]
        elif pref is not None and "pref" not in types:
            types.append("pref")
        if types:
            line.params["TYPE"] = types

    def _retained_lines(self, contact: Contact) -> List[ContentLine]:
        if not contact.unknown_properties:
            return []
        text = (
            f"BEGIN:VCARD\r\nVERSION:{self.config.version}\r\n"
            f"{contact.unknown_properties}END:VCARD\r\n"
        )
        try:
            component = vobject.readOne(text, allowQP=True)
        except (VObjectError, ValueError) as e:
            logger.warning(f"Dropping unknown properties that can't be parsed: {e}")
            return []
        return [
            line for line in component.getChildren()
            if isinstance(line, ContentLine) and line.name != "VERSION"
        ]

    def _write_group_info(self, vcard, contact: Contact) -> None:
        if not contact.group:
            return
        if self._v4:
            vcard.add("kind").value = KIND_GROUP
            for member in contact.members:
                self._add_raw(vcard, "member", uid_to_uri(member))
        else:
            self._add_extension(vcard, X_ADDRESSBOOKSERVER_KIND, KIND_GROUP)
            for member in contact.members:
                self._add_extension(vcard, X_ADDRESSBOOKSERVER_MEMBER, member)

    def _formatted_name(self, contact: Contact) -> str:
        organization = None
        if contact.organization:
            organization = " / ".join(v for v in contact.organization.values if v)
        nickname = None
        if contact.nickname and contact.nickname.property.values:
            nickname = contact.nickname.property.values[0]
        email = contact.emails[0].property.value if contact.emails else None
        phone = contact.phone_numbers[0].property.text if contact.phone_numbers else None

        for candidate in (contact.display_name, organization, nickname, email, phone, contact.uid):
            if candidate and candidate.strip():
                return candidate
        return ""

    def _write_names(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        formatted_name = self._formatted_name(contact)
        vcard.add("fn").value = formatted_name

        name_parts = [
            contact.family_name, contact.given_name, contact.middle_name,
            contact.prefix, contact.suffix,
        ]
        has_name = any(name_parts)
        if not self._v4 or has_name:
            family_name = contact.family_name or ""
            if contact.group and not has_name:
                family_name = formatted_name
            vcard.add("n").value = vobject.vcard.Name(
                family=family_name,
                given=contact.given_name or "",
                additional=contact.middle_name or "",
                prefix=contact.prefix or "",
                suffix=contact.suffix or "",
            )

        phonetic = (
            (X_PHONETIC_FIRST_NAME, contact.phonetic_given_name),
            (X_PHONETIC_MIDDLE_NAME, contact.phonetic_middle_name),
            (X_PHONETIC_LAST_NAME, contact.phonetic_family_name),
        )
        for name, value in phonetic:
            if value:
                self._add_extension(vcard, name, value)

        if contact.nickname:
            nickname = contact.nickname.property
            group = self._label_group(vcard, contact.nickname.label, groups)
            for value in nickname.values:
                line = vcard.add("nickname", group)
                line.value = value
                self._set_types(line, nickname.types)

    def _write_organization(self, vcard, contact: Contact) -> None:
        if contact.organization and any(contact.organization.values):
            vcard.add("org").value = list(contact.organization.values)
        if contact.job_title:
            vcard.add("title").value = contact.job_title
        if contact.job_description:
            vcard.add("role").value = contact.job_description

    def _write_communication(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        for labeled in contact.phone_numbers:
            phone = labeled.property
            line = vcard.add("tel", self._label_group(vcard, labeled.label, groups))
            line.value = phone.text
            self._set_types(line, phone.types, phone.pref)

        for labeled in contact.emails:
            email = labeled.property
            line = vcard.add("email", self._label_group(vcard, labeled.label, groups))
            line.value = email.value
            self._set_types(line, email.types, email.pref)

        for labeled in contact.impps:
            impp = labeled.property
            line = vcard.add("impp", self._label_group(vcard, labeled.label, groups))
            line.value = impp.uri
            self._set_types(line, impp.types, impp.pref)

    def _write_addresses(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        for labeled in contact.addresses:
            address = labeled.property
            line = vcard.add("adr", self._label_group(vcard, labeled.label, groups))
            line.value = vobject.vcard.Address(
                street=address.street or "",
                city=address.locality or "",
                region=address.region or "",
                code=address.postal_code or "",
                country=address.country or "",
                box=address.po_box or "",
                extended=address.extended or "",
            )
            self._set_types(line, address.types, address.pref)

    def _write_urls(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        for labeled in contact.urls:
            url = labeled.property
            line = vcard.add("url", self._label_group(vcard, labeled.label, groups))
            line.value = url.value
            self._set_types(line, url.types)

    def _related_label(self, related: Related) -> Optional[str]:
        apple_labels = {token: label for label, token in APPLE_RELATED_LABELS.items()}
        for token in related.types:
            if token.lower() in apple_labels:
                return apple_labels[token.lower()]
        if related.types:
            return ", ".join(_capitalize(t) for t in related.types)
        return None

    def _write_relations(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        for related in contact.relations:
            if self._v4:
                line = vcard.add("related")
                if related.uri:
                    line.value = related.uri
                elif related.text:
                    line.value = related.text
                    line.params["VALUE"] = ["text"]
                else:
                    continue
                self._set_types(line, [t.lower() for t in related.types])
            else:
                name = related.text or related.uri
                if not name:
                    continue
                group = self._label_group(vcard, self._related_label(related), groups)
                self._add_extension(vcard, X_ABRELATEDNAMES, name, group)

    def _vcard3_date(self, value: DateOrTime) -> Tuple[DateOrTime, bool]:
        """Replace a date without year by the placeholder year date."""
        partial = value.partial_date
        if partial is None:
            return value, False
        if partial.month is not None and partial.day is not None:
            if partial.year is not None:
                full = datetime.date(partial.year, partial.month, partial.day)
                return DateOrTime(date=full), False
            placeholder = datetime.date(OMIT_YEAR_PLACEHOLDER, partial.month, partial.day)
            return DateOrTime(date=placeholder), True
        return value, False

    def _add_date(self, vcard, name: str, value: DateOrTime, group: Optional[str] = None) -> None:
        omit_year = False
        if not self._v4:
            value, omit_year = self._vcard3_date(value)

        if name.upper() == X_ABDATE:
            line = self._add_extension(vcard, X_ABDATE, value, group)
            if line is None:
                return
        else:
            line = vcard.add(name, group)
            line.value = format_date_value(value, extended=not self._v4)
            if value.text is not None and self._v4:
                line.params["VALUE"] = ["text"]
        if omit_year:
            line.params[X_APPLE_OMIT_YEAR] = [str(OMIT_YEAR_PLACEHOLDER)]

    def _write_dates(self, vcard, contact: Contact, groups: _ItemGroups) -> None:
        if contact.birthday is not None:
            self._add_date(vcard, "bday", contact.birthday)

        if contact.anniversary is not None:
            if self._v4:
                self._add_date(vcard, "anniversary", contact.anniversary)
            else:
                group = self._label_group(vcard, APPLE_ANNIVERSARY, groups)
                self._add_date(vcard, X_ABDATE, contact.anniversary, group)

        for labeled in contact.custom_dates:
            group = self._label_group(vcard, labeled.label, groups)
            self._add_date(vcard, X_ABDATE, labeled.property, group)

    def _write_photo(self, vcard, photo: bytes) -> None:
        photo_type, mime_type = _image_type(photo)
        if self._v4:
            encoded = base64.b64encode(photo).decode("ascii")
            self._add_raw(vcard, "photo", f"data:{mime_type};base64,{encoded}")
        else:
            line = vcard.add("photo")
            line.encoding_param = "B"
            line.type_param = photo_type
            line.value = photo

    def _write_extra_properties(self, vcard, contact: Contact) -> None:
        for name, values in contact.extra_properties.items():
            if name not in self.config.extensions:
                logger.warning(f"Not writing {name}, no extension registered for it")
                continue
            for value in values:
                self._add_extension(vcard, name, value)


def _split_vcard_blocks(content: str) -> List[str]:
    """
    Split file content into BEGIN:VCARD ... END:VCARD blocks.

    :param content: File content
    :return: vCard blocks, an unterminated last block included
    """
    blocks = []
    current: List[str] = []
    for line in content.replace("\r\n", "\n").split("\n"):
        marker = line.strip().upper()
        if marker == "BEGIN:VCARD":
            if current:
                blocks.append("\n".join(current))
            current = [line]
        elif current:
            current.append(line)
            if marker == "END:VCARD":
                blocks.append("\n".join(current))
                current = []
    if current:
        blocks.append("\n".join(current))
    return blocks


def read_vcard_file(file_path: Path, codec: Optional[VCardCodec] = None) -> List[Contact]:
    """
    Read all contacts of a .vcf file.

    Each vCard is parsed on its own, so one broken vCard does not prevent
    reading the others.

    :param file_path: Path to the vCard file
    :param codec: Codec to use, a default one if None
    :return: Parsed contacts
    :raises FileNotFoundError: If the file does not exist
    :raises ValueError: If no vCard could be parsed
    """
    if not file_path.exists():
        raise FileNotFoundError(f"vCard file not found: {file_path}")

    codec = codec or VCardCodec()
    try:
        content = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning(f"{file_path} is not valid UTF-8, ignoring invalid bytes")
        content = file_path.read_bytes().decode("utf-8", errors="ignore")

    blocks = _split_vcard_blocks(content)
    logger.debug(f"Split {file_path} into {len(blocks)} vCard blocks")

    contacts = []
    failed_count = 0
    for block_num, block in enumerate(blocks, 1):
        try:
            contacts.extend(codec.parse_all(block))
        except (VObjectError, ValueError) as e:
            failed_count += 1
            logger.warning(f"Skipping vCard block {block_num}: {e}")

    if failed_count:
        logger.warning(f"Failed to parse {failed_count} of {len(blocks)} vCard blocks")
    if not contacts:
        raise ValueError(f"No valid contacts found in {file_path}")

    logger.info(f"Parsed {len(contacts)} contacts from {file_path}")
    return contacts


def write_vcard_file(
    contacts: List[Contact],
    output_path: Path,
    codec: Optional[VCardCodec] = None
) -> None:
    """
    Write contacts to a .vcf file.

    :param contacts: Contacts to write
    :param output_path: Target file, parent directories are created
    :param codec: Codec to use, a default one if None
    """
    codec = codec or VCardCodec()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8", newline="") as f:
        f.write(codec.render_all(contacts))
    logger.info(f"Wrote {len(contacts)} contacts to {output_path}")
