"""
Mapping between instant messaging protocols and IMPP URI schemes.

Address-book records identify a messenger either by a fixed protocol code
(AIM, MSN, ...) or by a free custom protocol name. vCard IMPP properties carry
the messenger as the scheme of a URI instead.
"""

import re
from typing import Optional, Tuple

from contactrows.records import ImProtocol

SIP_SCHEME = "sip"

LEGACY_PROTOCOL_SCHEMES = {
    ImProtocol.AIM: "aim",
    ImProtocol.MSN: "msnim",
    ImProtocol.YAHOO: "ymsgr",
    ImProtocol.SKYPE: "skype",
    ImProtocol.QQ: "qq",
    ImProtocol.GOOGLE_TALK: "google-talk",
    ImProtocol.ICQ: "icq",
    ImProtocol.JABBER: "xmpp",
    ImProtocol.NETMEETING: "netmeeting",
}

_SCHEME_PROTOCOLS = {
    scheme: protocol for protocol, scheme in LEGACY_PROTOCOL_SCHEMES.items()
}
_SCHEME_PROTOCOLS.update({
    "mqq": ImProtocol.QQ,
    "gtalk": ImProtocol.GOOGLE_TALK,
    "jabber": ImProtocol.JABBER,
    "msn": ImProtocol.MSN,
    "yahoo": ImProtocol.YAHOO,
})

_LEADING_NON_LETTERS = re.compile(r"^[^a-zA-Z]+")
_NON_SCHEME_CHARS = re.compile(r"[^\da-zA-Z+\-.]")


def protocol_to_uri_scheme(protocol: Optional[str]) -> Optional[str]:
    """
    Turn a free-form protocol name into a valid URI scheme.

    Leading characters up to the first ASCII letter are stripped, all
    characters a scheme can't contain are removed and the result is
    lower-cased, e.g. "PrO/ätO\\cOl" becomes "protocol".

    :param protocol: Protocol name
    :return: URI scheme ("" if nothing is left), None for None
    """
    if protocol is None:
        return None
    scheme = _LEADING_NON_LETTERS.sub("", protocol)
    scheme = _NON_SCHEME_CHARS.sub("", scheme)
    return scheme.lower()


def legacy_protocol_scheme(protocol: int) -> Optional[str]:
    """
    Get the URI scheme of a fixed protocol code.

    :param protocol: ImProtocol value other than CUSTOM
    :return: Scheme or None for unknown codes
    """
    try:
        return LEGACY_PROTOCOL_SCHEMES.get(ImProtocol(protocol))
    except ValueError:
        return None


def scheme_to_protocol(scheme: str) -> Tuple[int, Optional[str]]:
    """
    Find the protocol code for a URI scheme.

    :param scheme: URI scheme (case-insensitive)
    :return: Tuple of (protocol code, custom protocol name or None)
    """
    scheme = scheme.lower()
    protocol = _SCHEME_PROTOCOLS.get(scheme)
    if protocol is not None:
        return int(protocol), None
    return int(ImProtocol.CUSTOM), scheme
