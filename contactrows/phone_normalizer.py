"""
Phone number normalization to E.164.

Used in two places: the phone builder fills the normalized number column of
phone records, and the command line can rewrite all phone numbers of the
converted contacts into E.164 form (e.g. "+31646432757").

A region is needed for numbers written in national format ("0646432757");
numbers starting with "+" are parsed without one.

Dependencies:
    - phonenumbers: Third-party library for phone number parsing and formatting
    - locale: Standard library for region detection
    - logging: Standard library for logging
"""
# pylint: disable=logging-fstring-interpolation

import locale
import logging
from typing import Dict, List, Optional, Tuple

import phonenumbers
from phonenumbers import NumberParseException

from contactrows.model import Contact

logger = logging.getLogger("contactrows")

DEFAULT_REGION = "US"


def detect_region_from_locale() -> Optional[str]:
    """
    Guess the phone region from the locale ("nl_NL.UTF-8" -> "NL").

    :return: Upper-case country code or None
    """
    try:
        locale_code, _ = locale.getlocale()
    except ValueError as e:
        logger.debug(f"Could not read locale: {e}")
        return None

    if not locale_code or "_" not in locale_code:
        return None
    country = locale_code.split("_")[-1].split(".")[0].upper()
    if validate_region_code(country):
        logger.debug(f"Detected phone region from locale: {country}")
        return country
    return None


def validate_region_code(region_code: Optional[str]) -> bool:
    """
    Check that a region code is a two-letter code known to phonenumbers.

    :param region_code: Region code such as "NL"
    :return: True if the code can be used for parsing
    """
    if not region_code or len(region_code) != 2 or not region_code.isalpha():
        return False
    return region_code.upper() in phonenumbers.SUPPORTED_REGIONS


def get_default_region(
    provided_region: Optional[str] = None,
    auto_detect: bool = True
) -> str:
    """
    Pick the region used for national-format numbers.

    The provided region wins if it is valid, then the locale region, then
    DEFAULT_REGION.

    :param provided_region: Region given by the user
    :param auto_detect: Whether to look at the locale
    :return: Region code
    """
    if provided_region:
        region = provided_region.strip().upper()
        if validate_region_code(region):
            return region
        logger.warning(f"Invalid phone region '{provided_region}', ignoring it")

    if auto_detect:
        detected = detect_region_from_locale()
        if detected:
            return detected

    logger.warning(
        f"Could not determine phone region, using {DEFAULT_REGION}. "
        f"Use --phone-region for numbers in national format."
    )
    return DEFAULT_REGION


def _format_e164(phone_number: str, region: Optional[str]) -> Optional[str]:
    try:
        parsed = phonenumbers.parse(phone_number, region)
    except NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def normalize_phone_to_e164(
    phone_number: Optional[str],
    default_region: Optional[str] = DEFAULT_REGION
) -> Optional[str]:
    """
    Normalize a phone number to E.164.

    :param phone_number: Phone number as written in the contact
    :param default_region: Region for national-format numbers; None only
                           accepts international numbers
    :return: E.164 number, or None if the number is not valid
    """
    if not phone_number or not phone_number.strip():
        return None

    phone_number = phone_number.strip()
    normalized = _format_e164(phone_number, default_region)
    if normalized is None and default_region and phone_number.startswith("+"):
        normalized = _format_e164(phone_number, None)

    if normalized is None:
        logger.debug(f"Could not normalize phone number: {phone_number}")
    return normalized


def normalize_contact_phones(
    contact: Contact,
    default_region: str = DEFAULT_REGION
) -> Tuple[int, int]:
    """
    Rewrite the phone numbers of a contact in E.164 form, in place.

    Numbers that can't be normalized keep their original text. Types,
    labels and preference are not touched.

    :param contact: Contact to update
    :param default_region: Region for national-format numbers
    :return: Tuple of (normalized count, failed count)
    """
    normalized_count = 0
    failed_count = 0
    for labeled in contact.phone_numbers:
        phone = labeled.property
        normalized = normalize_phone_to_e164(phone.text, default_region)
        if normalized:
            phone.text = normalized
            normalized_count += 1
        else:
            logger.debug(
                f"Keeping phone number '{phone.text}' of "
                f"'{contact.display_name or contact.uid}' unchanged"
            )
            failed_count += 1
    return normalized_count, failed_count


def normalize_contacts_phones(
    contacts: List[Contact],
    default_region: str = DEFAULT_REGION
) -> Dict[str, int]:
    """
    Normalize the phone numbers of several contacts.

    :param contacts: Contacts to update in place
    :param default_region: Region for national-format numbers
    :return: Statistics dictionary
    """
    stats = {
        'total_contacts': len(contacts),
        'contacts_with_phones': 0,
        'total_phones': 0,
        'normalized_phones': 0,
        'failed_normalizations': 0
    }

    for contact in contacts:
        if contact.phone_numbers:
            stats['contacts_with_phones'] += 1
            stats['total_phones'] += len(contact.phone_numbers)
        normalized_count, failed_count = normalize_contact_phones(
            contact, default_region
        )
        stats['normalized_phones'] += normalized_count
        stats['failed_normalizations'] += failed_count

    logger.info(
        f"Phone normalization: {stats['normalized_phones']}/"
        f"{stats['total_phones']} phones normalized, "
        f"{stats['failed_normalizations']} failed"
    )
    return stats
