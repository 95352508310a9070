"""Publish date normalization for RSS `pubDate` values.

Feeds disagree on how they format RFC 822 dates: some zero-pad the day,
some do not, and some use a named zone where others use a numeric offset.
The layouts below are tried in order and the first match wins.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

_WEEKDAY = r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)"
_MONTH = r"(?P<month>Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"
_TIME = r"(?P<year>\d{4}) (?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
_NUMERIC_ZONE = r"(?P<offset>[+-]\d{4})"
_NAMED_ZONE = r"(?P<zone>[A-Za-z]{1,5})"


def _layout(day: str, zone: str) -> "re.Pattern[str]":
    return re.compile(
        rf"^{_WEEKDAY}, (?P<day>{day}) {_MONTH} {_TIME} {zone}$",
        re.IGNORECASE,
    )


# (name, pattern) in the order they are attempted
DATE_LAYOUTS = [
    ("rfc1123z", _layout(r"\d{2}", _NUMERIC_ZONE)),
    ("rfc1123", _layout(r"\d{2}", _NAMED_ZONE)),
    ("rfc1123-short-day", _layout(r"\d{1,2}", _NAMED_ZONE)),
    ("rfc1123z-short-day", _layout(r"\d{1,2}", _NUMERIC_ZONE)),
]

MONTHS = {
    name: index
    for index, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}

# RFC 822 zone names, as hours east of UTC
NAMED_ZONES = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
}


def _zone_offset(match: "re.Match[str]") -> timedelta:
    groups = match.groupdict()
    if groups.get("offset"):
        raw = groups["offset"]
        sign = -1 if raw[0] == "-" else 1
        return sign * timedelta(hours=int(raw[1:3]), minutes=int(raw[3:5]))

    # Unknown abbreviations are read as UTC
    hours = NAMED_ZONES.get(groups["zone"].upper(), 0)
    return timedelta(hours=hours)


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RSS publish date into a naive UTC datetime.

    Args:
        value: Raw `pubDate` text from the feed

    Returns:
        The instant as naive UTC, or None if no known layout matches.
    """
    if not value:
        return None

    text = " ".join(value.split())
    for name, pattern in DATE_LAYOUTS:
        match = pattern.match(text)
        if not match:
            continue
        try:
            local = datetime(
                int(match.group("year")),
                MONTHS[match.group("month").lower()],
                int(match.group("day")),
                int(match.group("hour")),
                int(match.group("minute")),
                int(match.group("second")),
            )
        except ValueError:
            # Layout matched but the fields are out of range
            continue
        logger.debug(f"Parsed publish date {value!r} using {name}")
        return local - _zone_offset(match)

    logger.warning(f"Unable to parse publish date: {value!r}")
    return None
