"""
Handlers that apply structured records to a Contact.

There is one handler per DataKind. A handler reads the fields of one record
and adds the corresponding data to the contact; records are applied one after
the other, so repeated kinds (several phone numbers, several nicknames)
accumulate in record order.

Empty strings in a record are treated like missing fields. A record whose
primary field is missing is ignored without touching the contact. Problems
with a single record are logged as warnings and never raised.

Dependencies:
    - logging: Standard library for logging
    - types: Standard library for the read-only handler registry
    - typing: Standard library for type hints
"""
# pylint: disable=logging-fstring-interpolation

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from contactrows import records as rec
from contactrows.dates import DateOrTime, PartialDate, parse_full_date
from contactrows.im_mapping import (
    SIP_SCHEME,
    legacy_protocol_scheme,
    protocol_to_uri_scheme,
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
from contactrows.records import (
    DataKind,
    EventType,
    ImProtocol,
    RelationType,
    StructuredRecord,
)
from contactrows.taxonomy import custom_type_code, to_standard_types

logger = logging.getLogger("contactrows")

Handler = Callable[[StructuredRecord, Contact], None]


def resolve_type(
    kind: DataKind,
    record: StructuredRecord
) -> Tuple[List[str], Optional[str]]:
    """
    Translate the TYPE/LABEL fields of a record into TYPE tokens and label.

    Args:
        kind: Record kind whose taxonomy applies
        record: The record

    Returns:
        Tuple of (TYPE tokens, label). The label is only taken for the
        custom type code; any other code ignores LABEL.
    """
    type_code = record.integer(rec.TYPE)
    if type_code is None:
        return [], None
    if type_code == custom_type_code(kind):
        return [], record.text(rec.LABEL)
    return list(to_standard_types(kind, type_code)), None


def _pref(record: StructuredRecord) -> Optional[int]:
    is_primary = record.integer(rec.IS_PRIMARY)
    if is_primary:
        return 1
    return None


def handle_structured_name(record: StructuredRecord, contact: Contact) -> None:
    contact.display_name = record.text(rec.DISPLAY_NAME)
    contact.prefix = record.text(rec.PREFIX)
    contact.given_name = record.text(rec.GIVEN_NAME)
    contact.middle_name = record.text(rec.MIDDLE_NAME)
    contact.family_name = record.text(rec.FAMILY_NAME)
    contact.suffix = record.text(rec.SUFFIX)
    contact.phonetic_given_name = record.text(rec.PHONETIC_GIVEN_NAME)
    contact.phonetic_middle_name = record.text(rec.PHONETIC_MIDDLE_NAME)
    contact.phonetic_family_name = record.text(rec.PHONETIC_FAMILY_NAME)


def handle_nickname(record: StructuredRecord, contact: Contact) -> None:
    """
    Add a nickname. The contact has a single nickname property; further
    nickname records add values to it and keep the first type/label.
    """
    name = record.text(rec.NAME)
    if not name:
        return

    if contact.nickname is None:
        types, label = resolve_type(DataKind.NICKNAME, record)
        contact.nickname = LabeledProperty(Nickname([name], types), label)
    else:
        contact.nickname.property.values.append(name)


def handle_phone(record: StructuredRecord, contact: Contact) -> None:
    number = record.text(rec.NUMBER)
    if not number:
        return

    types, label = resolve_type(DataKind.PHONE, record)
    phone = Telephone(number, types, _pref(record))
    contact.phone_numbers.append(LabeledProperty(phone, label))


def handle_email(record: StructuredRecord, contact: Contact) -> None:
    address = record.text(rec.ADDRESS)
    if not address:
        return

    types, label = resolve_type(DataKind.EMAIL, record)
    email = Email(address, types, _pref(record))
    contact.emails.append(LabeledProperty(email, label))


def handle_structured_postal(record: StructuredRecord, contact: Contact) -> None:
    address = Address(
        po_box=record.text(rec.POBOX),
        extended=record.text(rec.NEIGHBORHOOD),
        street=record.text(rec.STREET),
        locality=record.text(rec.CITY),
        region=record.text(rec.REGION),
        postal_code=record.text(rec.POSTCODE),
        country=record.text(rec.COUNTRY),
        formatted=record.text(rec.FORMATTED_ADDRESS),
    )
    if address.is_empty():
        return

    types, label = resolve_type(DataKind.STRUCTURED_POSTAL, record)
    address.types = types
    address.pref = _pref(record)
    contact.addresses.append(LabeledProperty(address, label))


def handle_organization(record: StructuredRecord, contact: Contact) -> None:
    company = record.text(rec.COMPANY)
    department = record.text(rec.DEPARTMENT)
    if company or department:
        values = [company or ""]
        if department:
            values.append(department)
        contact.organization = Organization(values)

    title = record.text(rec.TITLE)
    if title:
        contact.job_title = title
    job_description = record.text(rec.JOB_DESCRIPTION)
    if job_description:
        contact.job_description = job_description


def handle_website(record: StructuredRecord, contact: Contact) -> None:
    url = record.text(rec.URL)
    if not url:
        return

    types, label = resolve_type(DataKind.WEBSITE, record)
    contact.urls.append(LabeledProperty(Url(url, types), label))


def handle_im(record: StructuredRecord, contact: Contact) -> None:
    """
    Add an instant messaging address as IMPP URI.

    Fixed protocol codes map to their reserved schemes (AIM -> "aim:...").
    For the custom protocol the scheme is derived from CUSTOM_PROTOCOL.
    """
    handle = record.text(rec.DATA)
    if not handle:
        logger.warning("Ignoring instant messenger record without handle")
        return

    protocol = record.integer(rec.PROTOCOL)
    if protocol is None:
        logger.warning(f"Ignoring instant messenger record without protocol: {handle}")
        return

    if protocol == ImProtocol.CUSTOM:
        scheme = protocol_to_uri_scheme(record.text(rec.CUSTOM_PROTOCOL))
    else:
        scheme = legacy_protocol_scheme(protocol)

    if not scheme:
        logger.warning(
            f"Messenger protocol {protocol} can't be expressed as URI, "
            f"ignoring {handle}"
        )
        return

    types, label = resolve_type(DataKind.IM, record)
    impp = Impp(f"{scheme}:{handle}", types, _pref(record))
    contact.impps.append(LabeledProperty(impp, label))


def handle_sip_address(record: StructuredRecord, contact: Contact) -> None:
    address = record.text(rec.SIP_ADDRESS)
    if not address:
        return

    if not address.lower().startswith(f"{SIP_SCHEME}:"):
        address = f"{SIP_SCHEME}:{address}"
    types, label = resolve_type(DataKind.SIP_ADDRESS, record)
    contact.impps.append(LabeledProperty(Impp(address, types, _pref(record)), label))


def _parse_event_date(text: str) -> Optional[DateOrTime]:
    try:
        return DateOrTime(date=parse_full_date(text))
    except ValueError:
        pass
    try:
        return DateOrTime(partial_date=PartialDate.parse(text))
    except ValueError:
        return None


def handle_event(record: StructuredRecord, contact: Contact) -> None:
    start_date = record.text(rec.START_DATE)
    if not start_date:
        return

    value = _parse_event_date(start_date)
    if value is None:
        logger.warning(f"Ignoring event with invalid date: {start_date}")
        return

    type_code = record.integer(rec.TYPE)
    if type_code == EventType.ANNIVERSARY:
        contact.anniversary = value
    elif type_code == EventType.BIRTHDAY:
        contact.birthday = value
    else:
        label = record.text(rec.LABEL) if type_code == EventType.CUSTOM else None
        contact.custom_dates.append(LabeledProperty(value, label))


def handle_relation(record: StructuredRecord, contact: Contact) -> None:
    """
    Add a related person. A custom relation label like "Cousin, Neighbor"
    becomes the TYPE tokens "cousin" and "neighbor".
    """
    name = record.text(rec.NAME)
    if not name:
        return

    type_code = record.integer(rec.TYPE)
    if type_code is None or type_code == RelationType.CUSTOM:
        label = record.text(rec.LABEL)
        types = [
            part.strip().lower()
            for part in (label or "").split(",")
            if part.strip()
        ]
    else:
        types = list(to_standard_types(DataKind.RELATION, type_code))

    contact.relations.append(Related(text=name, types=types))


def handle_note(record: StructuredRecord, contact: Contact) -> None:
    note = record.text(rec.NOTE)
    if note:
        contact.note = note


def handle_photo(record: StructuredRecord, contact: Contact) -> None:
    photo = record.fields.get(rec.PHOTO)
    if not photo:
        return
    if not isinstance(photo, (bytes, bytearray)):
        logger.warning(f"Ignoring photo record with {type(photo).__name__} data")
        return
    contact.photo = bytes(photo)


def handle_group_membership(record: StructuredRecord, contact: Contact) -> None:
    title = record.text(rec.GROUP_TITLE)
    if title and title not in contact.categories:
        contact.categories.append(title)


HANDLERS: Mapping[DataKind, Handler] = MappingProxyType({
    DataKind.STRUCTURED_NAME: handle_structured_name,
    DataKind.NICKNAME: handle_nickname,
    DataKind.PHONE: handle_phone,
    DataKind.EMAIL: handle_email,
    DataKind.STRUCTURED_POSTAL: handle_structured_postal,
    DataKind.ORGANIZATION: handle_organization,
    DataKind.WEBSITE: handle_website,
    DataKind.IM: handle_im,
    DataKind.SIP_ADDRESS: handle_sip_address,
    DataKind.EVENT: handle_event,
    DataKind.RELATION: handle_relation,
    DataKind.NOTE: handle_note,
    DataKind.PHOTO: handle_photo,
    DataKind.GROUP_MEMBERSHIP: handle_group_membership,
})


def handle_record(record: StructuredRecord, contact: Contact) -> None:
    """
    Apply one record to a contact using the handler of its kind.

    Args:
        record: Record to apply
        contact: Contact to update
    """
    handler = HANDLERS.get(record.kind)
    if handler is None:
        logger.warning(f"No handler for data kind {record.kind}, ignoring record")
        return
    handler(record, contact)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def handle_raw_contact(values: Mapping[str, Any], contact: Contact) -> None:
    """
    Apply the raw contact columns (UID and starred flag) to a contact.

    Args:
        values: Raw contact column values
        contact: Contact to update
    """
    uid = values.get(rec.UID)
    if uid:
        contact.uid = str(uid)
    contact.starred = _to_bool(values.get(rec.STARRED, False))


def contact_from_records(
    records: Iterable[StructuredRecord],
    raw: Optional[Mapping[str, Any]] = None
) -> Contact:
    """
    Build a new contact from its raw columns and data records.

    Args:
        records: Data records, applied in order
        raw: Optional raw contact columns

    Returns:
        The populated contact
    """
    contact = Contact()
    if raw:
        handle_raw_contact(raw, contact)
    for record in records:
        handle_record(record, contact)
    return contact
