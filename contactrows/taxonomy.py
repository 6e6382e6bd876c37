"""
Type and label taxonomy between record type codes and vCard TYPE values.

Records carry a closed integer type code per kind (plus a free label for the
custom code), while vCard properties carry an open list of TYPE tokens plus an
optional label. The tables here translate in both directions.

Decoding (type code -> TYPE tokens) is a plain table lookup. Encoding
(TYPE tokens -> type code) follows a per-kind precedence, because one vCard
property may carry several tokens (e.g. "cell" and "work") that together
select a single code.

Both directions are total: an unmapped code decodes to no tokens and an
unmapped token list encodes to None, which resolve_type_code() turns into the
kind's custom code (with label) or its default code.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from contactrows.records import (
    DataKind,
    EmailType,
    ImType,
    NicknameType,
    PhoneType,
    PostalType,
    RelationType,
    SipType,
    WebsiteType,
)


class TelTypes:
    HOME = "home"
    WORK = "work"
    CELL = "cell"
    FAX = "fax"
    PAGER = "pager"
    CAR = "car"
    ISDN = "isdn"
    VOICE = "voice"
    TEXTPHONE = "textphone"
    TEXT = "text"
    PREF = "pref"
    X_ASSISTANT = "x-assistant"
    X_CALLBACK = "x-callback"
    X_COMPANY_MAIN = "x-company_main"
    X_MMS = "x-mms"
    X_RADIO = "x-radio"


class EmailTypes:
    HOME = "home"
    WORK = "work"
    PREF = "pref"
    X_MOBILE = "x-mobile"


class AddressTypes:
    HOME = "home"
    WORK = "work"
    PREF = "pref"


class ImppTypes:
    HOME = "home"
    WORK = "work"
    PERSONAL = "personal"
    BUSINESS = "business"
    PREF = "pref"


class NicknameTypes:
    X_INITIALS = "x-initials"
    X_MAIDEN_NAME = "x-maiden-name"
    X_SHORT_NAME = "x-short-name"


class UrlTypes:
    HOME = "home"
    WORK = "work"
    X_HOMEPAGE = "x-homepage"
    X_BLOG = "x-blog"
    X_PROFILE = "x-profile"
    X_FTP = "x-ftp"


class RelatedTypes:
    # RFC 6350
    CHILD = "child"
    CO_WORKER = "co-worker"
    FRIEND = "friend"
    KIN = "kin"
    PARENT = "parent"
    SIBLING = "sibling"
    SPOUSE = "spouse"
    # Android relation types without an RFC 6350 counterpart
    ASSISTANT = "assistant"
    BROTHER = "brother"
    DOMESTIC_PARTNER = "domestic-partner"
    FATHER = "father"
    MANAGER = "manager"
    MOTHER = "mother"
    PARTNER = "partner"
    REFERRED_BY = "referred-by"
    SISTER = "sister"
    OTHER = "other"


_PHONE_TYPES = {
    PhoneType.HOME: (TelTypes.HOME,),
    PhoneType.MOBILE: (TelTypes.CELL,),
    PhoneType.WORK: (TelTypes.WORK,),
    PhoneType.FAX_WORK: (TelTypes.FAX, TelTypes.WORK),
    PhoneType.FAX_HOME: (TelTypes.FAX, TelTypes.HOME),
    PhoneType.PAGER: (TelTypes.PAGER,),
    PhoneType.CALLBACK: (TelTypes.X_CALLBACK,),
    PhoneType.CAR: (TelTypes.CAR,),
    PhoneType.COMPANY_MAIN: (TelTypes.X_COMPANY_MAIN,),
    PhoneType.ISDN: (TelTypes.ISDN,),
    PhoneType.MAIN: (TelTypes.VOICE,),
    PhoneType.OTHER_FAX: (TelTypes.FAX,),
    PhoneType.RADIO: (TelTypes.X_RADIO,),
    PhoneType.TELEX: (TelTypes.TEXTPHONE,),
    PhoneType.TTY_TDD: (TelTypes.TEXT,),
    PhoneType.WORK_MOBILE: (TelTypes.CELL, TelTypes.WORK),
    PhoneType.WORK_PAGER: (TelTypes.PAGER, TelTypes.WORK),
    PhoneType.ASSISTANT: (TelTypes.X_ASSISTANT,),
    PhoneType.MMS: (TelTypes.X_MMS,),
}

_EMAIL_TYPES = {
    EmailType.HOME: (EmailTypes.HOME,),
    EmailType.WORK: (EmailTypes.WORK,),
    EmailType.MOBILE: (EmailTypes.X_MOBILE,),
}

_POSTAL_TYPES = {
    PostalType.HOME: (AddressTypes.HOME,),
    PostalType.WORK: (AddressTypes.WORK,),
}

_IMPP_TYPES = {
    ImType.HOME: (ImppTypes.HOME,),
    ImType.WORK: (ImppTypes.WORK,),
}

_NICKNAME_TYPES = {
    NicknameType.INITIALS: (NicknameTypes.X_INITIALS,),
    NicknameType.MAIDEN_NAME: (NicknameTypes.X_MAIDEN_NAME,),
    NicknameType.SHORT_NAME: (NicknameTypes.X_SHORT_NAME,),
}

_WEBSITE_TYPES = {
    WebsiteType.HOMEPAGE: (UrlTypes.X_HOMEPAGE,),
    WebsiteType.BLOG: (UrlTypes.X_BLOG,),
    WebsiteType.PROFILE: (UrlTypes.X_PROFILE,),
    WebsiteType.FTP: (UrlTypes.X_FTP,),
    WebsiteType.HOME: (UrlTypes.HOME,),
    WebsiteType.WORK: (UrlTypes.WORK,),
}

_RELATION_TYPES = {
    RelationType.ASSISTANT: (RelatedTypes.ASSISTANT, RelatedTypes.CO_WORKER),
    RelationType.BROTHER: (RelatedTypes.BROTHER, RelatedTypes.SIBLING),
    RelationType.CHILD: (RelatedTypes.CHILD,),
    RelationType.DOMESTIC_PARTNER: (
        RelatedTypes.DOMESTIC_PARTNER, RelatedTypes.SPOUSE
    ),
    RelationType.FATHER: (RelatedTypes.FATHER, RelatedTypes.PARENT),
    RelationType.FRIEND: (RelatedTypes.FRIEND,),
    RelationType.MANAGER: (RelatedTypes.MANAGER, RelatedTypes.CO_WORKER),
    RelationType.MOTHER: (RelatedTypes.MOTHER, RelatedTypes.PARENT),
    RelationType.PARENT: (RelatedTypes.PARENT,),
    RelationType.PARTNER: (RelatedTypes.PARTNER,),
    RelationType.REFERRED_BY: (RelatedTypes.REFERRED_BY,),
    RelationType.RELATIVE: (RelatedTypes.KIN,),
    RelationType.SISTER: (RelatedTypes.SISTER, RelatedTypes.SIBLING),
    RelationType.SPOUSE: (RelatedTypes.SPOUSE,),
}

_DECODE_TABLES = {
    DataKind.PHONE: _PHONE_TYPES,
    DataKind.EMAIL: _EMAIL_TYPES,
    DataKind.STRUCTURED_POSTAL: _POSTAL_TYPES,
    DataKind.IM: _IMPP_TYPES,
    DataKind.SIP_ADDRESS: _IMPP_TYPES,
    DataKind.NICKNAME: _NICKNAME_TYPES,
    DataKind.WEBSITE: _WEBSITE_TYPES,
    DataKind.RELATION: _RELATION_TYPES,
}

# (custom code, default code) per kind
_CUSTOM_AND_DEFAULT = {
    DataKind.PHONE: (PhoneType.CUSTOM, PhoneType.OTHER),
    DataKind.EMAIL: (EmailType.CUSTOM, EmailType.OTHER),
    DataKind.STRUCTURED_POSTAL: (PostalType.CUSTOM, PostalType.OTHER),
    DataKind.IM: (ImType.CUSTOM, ImType.OTHER),
    DataKind.SIP_ADDRESS: (SipType.CUSTOM, SipType.OTHER),
    DataKind.NICKNAME: (NicknameType.CUSTOM, NicknameType.DEFAULT),
    DataKind.WEBSITE: (WebsiteType.CUSTOM, WebsiteType.OTHER),
    DataKind.RELATION: (RelationType.CUSTOM, RelationType.CUSTOM),
}


def _normalize(types: Iterable[str]) -> List[str]:
    return [t.lower() for t in types if t]


def _encode_phone(types: List[str]) -> Optional[int]:
    if TelTypes.CELL in types:
        if TelTypes.WORK in types:
            return PhoneType.WORK_MOBILE
        return PhoneType.MOBILE
    if TelTypes.FAX in types:
        if TelTypes.HOME in types:
            return PhoneType.FAX_HOME
        if TelTypes.WORK in types:
            return PhoneType.FAX_WORK
        return PhoneType.OTHER_FAX
    if TelTypes.PAGER in types:
        if TelTypes.WORK in types:
            return PhoneType.WORK_PAGER
        return PhoneType.PAGER

    precedence = (
        (TelTypes.HOME, PhoneType.HOME),
        (TelTypes.WORK, PhoneType.WORK),
        (TelTypes.X_CALLBACK, PhoneType.CALLBACK),
        (TelTypes.CAR, PhoneType.CAR),
        (TelTypes.X_COMPANY_MAIN, PhoneType.COMPANY_MAIN),
        (TelTypes.ISDN, PhoneType.ISDN),
        (TelTypes.X_RADIO, PhoneType.RADIO),
        (TelTypes.X_ASSISTANT, PhoneType.ASSISTANT),
        (TelTypes.X_MMS, PhoneType.MMS),
        (TelTypes.TEXTPHONE, PhoneType.TELEX),
        (TelTypes.TEXT, PhoneType.TTY_TDD),
        (TelTypes.VOICE, PhoneType.MAIN),
    )
    for token, code in precedence:
        if token in types:
            return code
    return None


def _encode_email(types: List[str]) -> Optional[int]:
    code = None
    # last recognised type wins
    for token in types:
        if token == EmailTypes.HOME:
            code = EmailType.HOME
        elif token == EmailTypes.WORK:
            code = EmailType.WORK
        elif token == EmailTypes.X_MOBILE:
            code = EmailType.MOBILE
    return code


def _encode_postal(types: List[str]) -> Optional[int]:
    if AddressTypes.HOME in types:
        return PostalType.HOME
    if AddressTypes.WORK in types:
        return PostalType.WORK
    return None


def _encode_impp(types: List[str]) -> Optional[int]:
    # ImType and SipType share their numeric values
    code = None
    # last recognised type wins
    for token in types:
        if token in (ImppTypes.HOME, ImppTypes.PERSONAL):
            code = ImType.HOME
        elif token in (ImppTypes.WORK, ImppTypes.BUSINESS):
            code = ImType.WORK
    return code


def _encode_nickname(types: List[str]) -> Optional[int]:
    if not types:
        return None
    for token in types:
        for code, tokens in _NICKNAME_TYPES.items():
            if token in tokens:
                return code
    return NicknameType.OTHER_NAME


def _encode_website(types: List[str]) -> Optional[int]:
    for token in types:
        for code, tokens in _WEBSITE_TYPES.items():
            if token in tokens:
                return code
    return None


def _encode_relation(types: List[str]) -> Optional[int]:
    precedence = (
        (RelatedTypes.ASSISTANT, RelationType.ASSISTANT),
        (RelatedTypes.BROTHER, RelationType.BROTHER),
        (RelatedTypes.DOMESTIC_PARTNER, RelationType.DOMESTIC_PARTNER),
        (RelatedTypes.FATHER, RelationType.FATHER),
        (RelatedTypes.MANAGER, RelationType.MANAGER),
        (RelatedTypes.MOTHER, RelationType.MOTHER),
        (RelatedTypes.PARTNER, RelationType.PARTNER),
        (RelatedTypes.REFERRED_BY, RelationType.REFERRED_BY),
        (RelatedTypes.SISTER, RelationType.SISTER),
        (RelatedTypes.CHILD, RelationType.CHILD),
        (RelatedTypes.FRIEND, RelationType.FRIEND),
        (RelatedTypes.KIN, RelationType.RELATIVE),
        (RelatedTypes.PARENT, RelationType.PARENT),
        (RelatedTypes.SPOUSE, RelationType.SPOUSE),
    )
    for token, code in precedence:
        if token in types:
            return code
    return None


_ENCODERS: Dict[DataKind, Callable[[List[str]], Optional[int]]] = {
    DataKind.PHONE: _encode_phone,
    DataKind.EMAIL: _encode_email,
    DataKind.STRUCTURED_POSTAL: _encode_postal,
    DataKind.IM: _encode_impp,
    DataKind.SIP_ADDRESS: _encode_impp,
    DataKind.NICKNAME: _encode_nickname,
    DataKind.WEBSITE: _encode_website,
    DataKind.RELATION: _encode_relation,
}


def to_standard_types(kind: DataKind, type_code: Optional[int]) -> Tuple[str, ...]:
    """
    Decode a record type code into vCard TYPE tokens.

    :param kind: Record kind
    :param type_code: Integer type code of the record
    :return: TYPE tokens, empty for unmapped, default and custom codes
    """
    if type_code is None:
        return ()
    return _DECODE_TABLES.get(kind, {}).get(type_code, ())


def to_type_code(kind: DataKind, types: Sequence[str]) -> Optional[int]:
    """
    Encode vCard TYPE tokens into a record type code.

    :param kind: Record kind
    :param types: TYPE tokens (case-insensitive)
    :return: Type code, or None when no token is recognised
    """
    encoder = _ENCODERS.get(kind)
    if encoder is None:
        return None
    return encoder(_normalize(types))


def resolve_type_code(
    kind: DataKind,
    types: Sequence[str],
    label: Optional[str]
) -> Tuple[int, Optional[str]]:
    """
    Pick the record type code and label for a typed/labeled property.

    A recognised standard type always wins and suppresses the label. Without
    one, a non-blank label selects the kind's custom code; otherwise the
    kind's default code is used.

    :param kind: Record kind
    :param types: TYPE tokens of the property
    :param label: Free-form label of the property
    :return: Tuple of (type code, label or None)
    """
    custom, default = _CUSTOM_AND_DEFAULT[kind]
    code = to_type_code(kind, types)
    if code is not None:
        return int(code), None
    if label and label.strip():
        return int(custom), label
    return int(default), None


def custom_type_code(kind: DataKind) -> int:
    """Get the custom (labelled) type code of a kind."""
    return int(_CUSTOM_AND_DEFAULT[kind][0])
