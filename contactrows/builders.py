"""
Builders that turn a Contact into structured records.

Each builder covers one DataKind and returns the records for it, possibly
none. Labeled multi-valued properties produce one record each. Values that are
blank are skipped, so builders never emit records without their primary field.

Dependencies:
    - logging: Standard library for logging
    - types: Standard library for the read-only builder registry
    - typing: Standard library for type hints
    - contactrows.phone_normalizer: E.164 form of phone numbers
"""
# pylint: disable=logging-fstring-interpolation

import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from contactrows import records as rec
from contactrows.dates import DateOrTime
from contactrows.im_mapping import SIP_SCHEME, scheme_to_protocol
from contactrows.model import Address, Contact
from contactrows.phone_normalizer import normalize_phone_to_e164
from contactrows.records import (
    DataKind,
    EventType,
    RelationType,
    StructuredRecord,
)
from contactrows.taxonomy import (
    TelTypes,
    resolve_type_code,
    to_type_code,
)

logger = logging.getLogger("contactrows")

Builder = Callable[[Contact], List[StructuredRecord]]


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _compact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop fields whose value is None or an empty string."""
    return {
        key: value for key, value in fields.items()
        if value is not None and value != ""
    }


def _typed_fields(
    kind: DataKind,
    types: Sequence[str],
    label: Optional[str]
) -> Dict[str, Any]:
    type_code, label = resolve_type_code(kind, types, label)
    fields: Dict[str, Any] = {rec.TYPE: type_code}
    if label:
        fields[rec.LABEL] = label
    return fields


def _primary_fields(types: Sequence[str], pref: Optional[int]) -> Dict[str, int]:
    """A PREF parameter or a "pref" TYPE token marks the primary value."""
    is_primary = pref is not None or any(t.lower() == "pref" for t in types)
    flag = 1 if is_primary else 0
    return {rec.IS_PRIMARY: flag, rec.IS_SUPER_PRIMARY: flag}


def build_structured_name(contact: Contact) -> List[StructuredRecord]:
    """
    Build the structured name record.

    Args:
        contact: Source contact

    Returns:
        One record if any name component is set, otherwise no records
    """
    if all(_is_blank(component) for component in contact.name_components()):
        return []

    fields = _compact({
        rec.DISPLAY_NAME: contact.display_name,
        rec.PREFIX: contact.prefix,
        rec.GIVEN_NAME: contact.given_name,
        rec.MIDDLE_NAME: contact.middle_name,
        rec.FAMILY_NAME: contact.family_name,
        rec.SUFFIX: contact.suffix,
        rec.PHONETIC_GIVEN_NAME: contact.phonetic_given_name,
        rec.PHONETIC_MIDDLE_NAME: contact.phonetic_middle_name,
        rec.PHONETIC_FAMILY_NAME: contact.phonetic_family_name,
    })
    return [StructuredRecord(DataKind.STRUCTURED_NAME, fields)]


def build_nickname(contact: Contact) -> List[StructuredRecord]:
    """One record per nickname value, all with the same type and label."""
    if contact.nickname is None:
        return []

    nickname = contact.nickname.property
    typed = _typed_fields(DataKind.NICKNAME, nickname.types, contact.nickname.label)
    return [
        StructuredRecord(DataKind.NICKNAME, {rec.NAME: value, **typed})
        for value in nickname.values
        if not _is_blank(value)
    ]


def build_phone(contact: Contact) -> List[StructuredRecord]:
    """
    Build one record per phone number.

    The "pref" TYPE token (vCard 3) and the PREF parameter (vCard 4) both mark
    the number as primary; "pref" is not used to pick the type code.

    Args:
        contact: Source contact

    Returns:
        Phone records in contact order
    """
    result = []
    for labeled in contact.phone_numbers:
        phone = labeled.property
        if _is_blank(phone.text):
            continue

        types = [t.lower() for t in phone.types]
        primary = _primary_fields(types, phone.pref)
        types = [t for t in types if t != TelTypes.PREF]

        fields = {rec.NUMBER: phone.text}
        normalized = normalize_phone_to_e164(phone.text, None)
        if normalized:
            fields[rec.NORMALIZED_NUMBER] = normalized
        fields.update(_typed_fields(DataKind.PHONE, types, labeled.label))
        fields.update(primary)
        result.append(StructuredRecord(DataKind.PHONE, fields))
    return result


def build_email(contact: Contact) -> List[StructuredRecord]:
    result = []
    for labeled in contact.emails:
        email = labeled.property
        if _is_blank(email.value):
            continue

        types = [t.lower() for t in email.types]
        fields = {rec.ADDRESS: email.value}
        fields.update(_typed_fields(DataKind.EMAIL, types, labeled.label))
        fields.update(_primary_fields(types, email.pref))
        result.append(StructuredRecord(DataKind.EMAIL, fields))
    return result


def format_address(address: Address) -> str:
    """
    Compose a printable address when none was given.

    Args:
        address: Structured address

    Returns:
        Multi-line address text: street line, postal code and city,
        region, upper-cased country
    """
    lines = [
        " ".join(p for p in (address.street, address.po_box, address.extended) if p),
        " ".join(p for p in (address.postal_code, address.locality) if p),
        address.region or "",
        (address.country or "").upper(),
    ]
    return "\n".join(line for line in lines if line.strip())


def build_structured_postal(contact: Contact) -> List[StructuredRecord]:
    result = []
    for labeled in contact.addresses:
        address = labeled.property
        if address.is_empty():
            continue

        fields = _compact({
            rec.FORMATTED_ADDRESS: address.formatted or format_address(address),
            rec.STREET: address.street,
            rec.POBOX: address.po_box,
            rec.NEIGHBORHOOD: address.extended,
            rec.CITY: address.locality,
            rec.REGION: address.region,
            rec.POSTCODE: address.postal_code,
            rec.COUNTRY: address.country,
        })
        fields.update(
            _typed_fields(DataKind.STRUCTURED_POSTAL, address.types, labeled.label)
        )
        fields.update(_primary_fields(address.types, address.pref))
        result.append(StructuredRecord(DataKind.STRUCTURED_POSTAL, fields))
    return result


def build_organization(contact: Contact) -> List[StructuredRecord]:
    """
    Build the organization record. The first organization value is the
    company, the remaining units are joined into the department.
    """
    values = contact.organization.values if contact.organization else []
    company = values[0] if values else None
    department = " / ".join(v for v in values[1:] if v.strip())

    fields = _compact({
        rec.COMPANY: company,
        rec.DEPARTMENT: department,
        rec.TITLE: contact.job_title,
        rec.JOB_DESCRIPTION: contact.job_description,
    })
    if not fields:
        return []
    return [StructuredRecord(DataKind.ORGANIZATION, fields)]


def build_website(contact: Contact) -> List[StructuredRecord]:
    result = []
    for labeled in contact.urls:
        url = labeled.property
        if _is_blank(url.value):
            continue
        fields = {rec.URL: url.value}
        fields.update(_typed_fields(DataKind.WEBSITE, url.types, labeled.label))
        result.append(StructuredRecord(DataKind.WEBSITE, fields))
    return result


def build_im(contact: Contact) -> List[StructuredRecord]:
    """Build messenger records for all IMPP addresses except SIP ones."""
    result = []
    for labeled in contact.impps:
        impp = labeled.property
        if _is_blank(impp.uri):
            continue

        scheme = impp.scheme
        if scheme == SIP_SCHEME:
            continue
        if not scheme or not impp.handle:
            logger.warning(f"Ignoring messenger address without scheme or handle: {impp.uri}")
            continue

        protocol, custom_protocol = scheme_to_protocol(scheme)
        fields: Dict[str, Any] = {rec.DATA: impp.handle, rec.PROTOCOL: protocol}
        if custom_protocol:
            fields[rec.CUSTOM_PROTOCOL] = custom_protocol
        fields.update(_typed_fields(DataKind.IM, impp.types, labeled.label))
        fields.update(_primary_fields(impp.types, impp.pref))
        result.append(StructuredRecord(DataKind.IM, fields))
    return result


def build_sip_address(contact: Contact) -> List[StructuredRecord]:
    result = []
    for labeled in contact.impps:
        impp = labeled.property
        if impp.scheme != SIP_SCHEME or not impp.handle:
            continue
        fields = {rec.SIP_ADDRESS: impp.handle}
        fields.update(_typed_fields(DataKind.SIP_ADDRESS, impp.types, labeled.label))
        fields.update(_primary_fields(impp.types, impp.pref))
        result.append(StructuredRecord(DataKind.SIP_ADDRESS, fields))
    return result


def _event_date(value: DateOrTime) -> Optional[str]:
    if value.date is not None:
        return value.date.isoformat()
    if value.partial_date is not None:
        return value.partial_date.to_iso8601(extended=True)
    return None


def _event_record(
    value: DateOrTime,
    type_code: int,
    label: Optional[str] = None
) -> Optional[StructuredRecord]:
    start_date = _event_date(value)
    if start_date is None:
        logger.warning(f"Ignoring event without usable date: {value.text!r}")
        return None
    fields: Dict[str, Any] = {rec.START_DATE: start_date, rec.TYPE: int(type_code)}
    if label:
        fields[rec.LABEL] = label
    return StructuredRecord(DataKind.EVENT, fields)


def build_event(contact: Contact) -> List[StructuredRecord]:
    """
    Build event records for birthday, anniversary and custom dates.

    Dates are written as "YYYY-MM-DD", dates without year as "--MM-DD".
    Free-text dates have no record representation and are skipped.
    """
    events = []
    if contact.birthday is not None:
        events.append(_event_record(contact.birthday, EventType.BIRTHDAY))
    if contact.anniversary is not None:
        events.append(_event_record(contact.anniversary, EventType.ANNIVERSARY))
    for labeled in contact.custom_dates:
        if labeled.label:
            events.append(_event_record(labeled.property, EventType.CUSTOM, labeled.label))
        else:
            events.append(_event_record(labeled.property, EventType.OTHER))
    return [event for event in events if event is not None]


def _capitalize(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


def build_relation(contact: Contact) -> List[StructuredRecord]:
    """
    Build relation records. Types without a relation code are kept as
    custom label, e.g. types "cousin" and "neighbor" give "Cousin, Neighbor".
    """
    result = []
    for related in contact.relations:
        name = related.text or related.uri
        if _is_blank(name):
            continue

        types = [t.lower() for t in related.types]
        fields: Dict[str, Any] = {rec.NAME: name}
        type_code = to_type_code(DataKind.RELATION, types)
        if type_code is not None:
            fields[rec.TYPE] = int(type_code)
        else:
            fields[rec.TYPE] = int(RelationType.CUSTOM)
            fields[rec.LABEL] = ", ".join(_capitalize(t) for t in types) or "Other"
        result.append(StructuredRecord(DataKind.RELATION, fields))
    return result


def build_note(contact: Contact) -> List[StructuredRecord]:
    if _is_blank(contact.note):
        return []
    return [StructuredRecord(DataKind.NOTE, {rec.NOTE: contact.note})]


def build_photo(contact: Contact) -> List[StructuredRecord]:
    if not contact.photo:
        return []
    return [StructuredRecord(DataKind.PHOTO, {rec.PHOTO: contact.photo})]


def build_group_membership(contact: Contact) -> List[StructuredRecord]:
    return [
        StructuredRecord(DataKind.GROUP_MEMBERSHIP, {rec.GROUP_TITLE: category})
        for category in contact.categories
        if not _is_blank(category)
    ]


BUILDERS: Mapping[DataKind, Builder] = MappingProxyType({
    DataKind.STRUCTURED_NAME: build_structured_name,
    DataKind.NICKNAME: build_nickname,
    DataKind.PHONE: build_phone,
    DataKind.EMAIL: build_email,
    DataKind.STRUCTURED_POSTAL: build_structured_postal,
    DataKind.ORGANIZATION: build_organization,
    DataKind.WEBSITE: build_website,
    DataKind.IM: build_im,
    DataKind.SIP_ADDRESS: build_sip_address,
    DataKind.EVENT: build_event,
    DataKind.RELATION: build_relation,
    DataKind.NOTE: build_note,
    DataKind.PHOTO: build_photo,
    DataKind.GROUP_MEMBERSHIP: build_group_membership,
})


def build_records(contact: Contact) -> List[StructuredRecord]:
    """
    Build all data records of a contact.

    Args:
        contact: Source contact

    Returns:
        Records of all kinds, grouped by kind in registry order
    """
    result = []
    for builder in BUILDERS.values():
        result.extend(builder(contact))
    return result


def build_raw_contact(contact: Contact) -> Dict[str, Any]:
    """Build the raw contact columns (UID and starred flag)."""
    return {
        rec.UID: contact.uid,
        rec.STARRED: 1 if contact.starred else 0,
    }
