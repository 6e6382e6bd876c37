"""
Structured record types for the address-book side of the mapping.

A contact stored in an address book is a list of typed data rows. This module
defines the row container (StructuredRecord), the closed set of row kinds
(DataKind), the field names used inside a row and the integer type codes each
kind understands. The numeric values of the type codes follow the Android
contacts provider so that records can be exchanged with such stores as-is.

Dependencies:
    - dataclasses: Standard library for the record container
    - enum: Standard library for kinds and type codes
    - typing: Standard library for type hints
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class DataKind(str, Enum):
    """Kinds of data rows a contact is made of."""

    STRUCTURED_NAME = "structured_name"
    NICKNAME = "nickname"
    PHONE = "phone"
    EMAIL = "email"
    STRUCTURED_POSTAL = "structured_postal"
    ORGANIZATION = "organization"
    WEBSITE = "website"
    IM = "im"
    SIP_ADDRESS = "sip_address"
    EVENT = "event"
    RELATION = "relation"
    NOTE = "note"
    PHOTO = "photo"
    GROUP_MEMBERSHIP = "group_membership"


# Fields shared by all typed kinds
TYPE = "type"
LABEL = "label"
IS_PRIMARY = "is_primary"
IS_SUPER_PRIMARY = "is_super_primary"

# Structured name
DISPLAY_NAME = "display_name"
PREFIX = "prefix"
GIVEN_NAME = "given_name"
MIDDLE_NAME = "middle_name"
FAMILY_NAME = "family_name"
SUFFIX = "suffix"
PHONETIC_GIVEN_NAME = "phonetic_given_name"
PHONETIC_MIDDLE_NAME = "phonetic_middle_name"
PHONETIC_FAMILY_NAME = "phonetic_family_name"

# Nickname and relation
NAME = "name"

# Phone
NUMBER = "number"
NORMALIZED_NUMBER = "normalized_number"

# Email
ADDRESS = "address"

# Structured postal
FORMATTED_ADDRESS = "formatted_address"
STREET = "street"
POBOX = "pobox"
NEIGHBORHOOD = "neighborhood"
CITY = "city"
REGION = "region"
POSTCODE = "postcode"
COUNTRY = "country"

# Organization
COMPANY = "company"
DEPARTMENT = "department"
TITLE = "title"
JOB_DESCRIPTION = "job_description"

# Website
URL = "url"

# Instant messaging
DATA = "data"
PROTOCOL = "protocol"
CUSTOM_PROTOCOL = "custom_protocol"

# SIP address
SIP_ADDRESS = "sip_address"

# Event
START_DATE = "start_date"

# Note, photo, group membership
NOTE = "note"
PHOTO = "photo"
GROUP_TITLE = "group_title"

# Raw contact columns
UID = "uid"
STARRED = "starred"


class PhoneType(IntEnum):
    CUSTOM = 0
    HOME = 1
    MOBILE = 2
    WORK = 3
    FAX_WORK = 4
    FAX_HOME = 5
    PAGER = 6
    OTHER = 7
    CALLBACK = 8
    CAR = 9
    COMPANY_MAIN = 10
    ISDN = 11
    MAIN = 12
    OTHER_FAX = 13
    RADIO = 14
    TELEX = 15
    TTY_TDD = 16
    WORK_MOBILE = 17
    WORK_PAGER = 18
    ASSISTANT = 19
    MMS = 20


class EmailType(IntEnum):
    CUSTOM = 0
    HOME = 1
    WORK = 2
    OTHER = 3
    MOBILE = 4


class PostalType(IntEnum):
    CUSTOM = 0
    HOME = 1
    WORK = 2
    OTHER = 3


class ImType(IntEnum):
    CUSTOM = 0
    HOME = 1
    WORK = 2
    OTHER = 3


class ImProtocol(IntEnum):
    CUSTOM = -1
    AIM = 0
    MSN = 1
    YAHOO = 2
    SKYPE = 3
    QQ = 4
    GOOGLE_TALK = 5
    ICQ = 6
    JABBER = 7
    NETMEETING = 8


class SipType(IntEnum):
    CUSTOM = 0
    HOME = 1
    WORK = 2
    OTHER = 3


class NicknameType(IntEnum):
    CUSTOM = 0
    DEFAULT = 1
    OTHER_NAME = 2
    MAIDEN_NAME = 3
    SHORT_NAME = 4
    INITIALS = 5


class WebsiteType(IntEnum):
    CUSTOM = 0
    HOMEPAGE = 1
    BLOG = 2
    PROFILE = 3
    HOME = 4
    WORK = 5
    FTP = 6
    OTHER = 7


class EventType(IntEnum):
    CUSTOM = 0
    ANNIVERSARY = 1
    OTHER = 2
    BIRTHDAY = 3


class RelationType(IntEnum):
    CUSTOM = 0
    ASSISTANT = 1
    BROTHER = 2
    CHILD = 3
    DOMESTIC_PARTNER = 4
    FATHER = 5
    FRIEND = 6
    MANAGER = 7
    MOTHER = 8
    PARENT = 9
    PARTNER = 10
    REFERRED_BY = 11
    RELATIVE = 12
    SISTER = 13
    SPOUSE = 14


@dataclass
class StructuredRecord:
    """
    One data row of a contact.

    :param kind: Kind of the row, selects the handler/builder
    :param fields: Field name to value mapping (strings, ints or bytes)
    """

    kind: DataKind
    fields: Dict[str, Any] = field(default_factory=dict)

    def text(self, name: str) -> Optional[str]:
        """
        Get a text field, treating empty strings as missing.

        :param name: Field name
        :return: Field value or None
        """
        value = self.fields.get(name)
        if value is None:
            return None
        value = str(value)
        return value if value else None

    def integer(self, name: str) -> Optional[int]:
        """
        Get an integer field. Records loaded from JSON or CSV may carry
        numbers as strings, so those are converted too.

        :param name: Field name
        :return: Field value or None if missing or not a number
        """
        value = self.fields.get(name)
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
