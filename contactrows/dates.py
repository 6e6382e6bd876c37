"""
Full and partial dates as used by birthdays, anniversaries and custom dates.

vCard allows reduced-accuracy dates (e.g. a birthday without a year, written
"--05-12"). These are kept as PartialDate values. DateOrTime wraps the three
shapes a date-ish property can take: a full date, a partial date, or free text.

Dependencies:
    - datetime: Standard library for full dates
    - re: Standard library for partial date patterns
    - dataclasses: Standard library for value types
"""

import datetime
import re
from dataclasses import dataclass
from typing import Optional

_PARTIAL_PATTERNS = (
    re.compile(r"^(?P<year>\d{4})$"),
    re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})$"),
    re.compile(r"^--(?P<month>\d{2})-?(?P<day>\d{2})$"),
    re.compile(r"^--(?P<month>\d{2})$"),
    re.compile(r"^---(?P<day>\d{2})$"),
)

_FULL_DATE_FORMATS = ("%Y-%m-%d", "%Y%m%d")


@dataclass(frozen=True)
class PartialDate:
    """
    A date with some components missing.

    :param year: Four-digit year or None
    :param month: Month 1-12 or None
    :param day: Day of month 1-31 or None
    """

    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None

    def __post_init__(self):
        if self.year is None and self.month is None and self.day is None:
            raise ValueError("Partial date needs at least one component")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")
        if self.day is not None and not 1 <= self.day <= 31:
            raise ValueError(f"Invalid day: {self.day}")
        if self.year is not None and self.day is not None and self.month is None:
            raise ValueError("Partial date with year and day needs a month")

    @classmethod
    def parse(cls, text: str) -> "PartialDate":
        """
        Parse an ISO 8601 reduced-accuracy or truncated date.

        Accepted forms: YYYY, YYYY-MM, --MM-DD, --MMDD, --MM and ---DD.

        :param text: Date text
        :return: Parsed partial date
        :raises ValueError: If the text is not a partial date
        """
        text = (text or "").strip()
        for pattern in _PARTIAL_PATTERNS:
            match = pattern.match(text)
            if match:
                parts = {
                    key: int(value)
                    for key, value in match.groupdict().items()
                    if value is not None
                }
                return cls(**parts)
        raise ValueError(f"Not a partial date: {text!r}")

    def to_iso8601(self, extended: bool = True) -> str:
        """
        Format the date in ISO 8601 (extended "--05-12" or basic "--0512").

        :param extended: Use the extended (dashed) format
        :return: Formatted date
        """
        sep = "-" if extended else ""
        if self.year is not None:
            if self.month is None:
                return f"{self.year:04d}"
            if self.day is None:
                return f"{self.year:04d}-{self.month:02d}"
            return f"{self.year:04d}{sep}{self.month:02d}{sep}{self.day:02d}"
        if self.month is not None:
            if self.day is None:
                return f"--{self.month:02d}"
            return f"--{self.month:02d}{sep}{self.day:02d}"
        return f"---{self.day:02d}"


@dataclass(frozen=True)
class DateOrTime:
    """Exactly one of date, partial_date or text is set."""

    date: Optional[datetime.date] = None
    partial_date: Optional[PartialDate] = None
    text: Optional[str] = None


def parse_full_date(text: str) -> datetime.date:
    """
    Parse a complete calendar date ("1990-05-12" or "19900512").

    A time part ("1990-05-12T10:00:00Z") is ignored.

    :param text: Date text
    :return: Parsed date
    :raises ValueError: If the text is not a complete date
    """
    value = (text or "").strip().split("T", 1)[0]
    for fmt in _FULL_DATE_FORMATS:
        try:
            return datetime.datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Not a full date: {text!r}")


def parse_date_value(text: str) -> DateOrTime:
    """
    Parse a date property value: full date, then partial date, then text.

    :param text: Property value
    :return: DateOrTime with the first shape that matched
    :raises ValueError: If the value is blank
    """
    if not text or not text.strip():
        raise ValueError("Empty date value")
    try:
        return DateOrTime(date=parse_full_date(text))
    except ValueError:
        pass
    try:
        return DateOrTime(partial_date=PartialDate.parse(text))
    except ValueError:
        return DateOrTime(text=text.strip())


def format_date_value(value: DateOrTime, extended: bool = True) -> str:
    """
    Format a DateOrTime back into property text.

    :param value: Date value
    :param extended: Use the extended ISO 8601 format for dates
    :return: Formatted text
    """
    if value.date is not None:
        if extended:
            return value.date.isoformat()
        return value.date.strftime("%Y%m%d")
    if value.partial_date is not None:
        return value.partial_date.to_iso8601(extended)
    return value.text or ""
