"""Parsing of FTP ``LIST`` output.

Only the Unix-style long listing is recognized::

    -rw-r--r--   1 owner group     1234 Mar  7 14:02 index.html
    -rw-r--r--   1 owner group     1234 Mar  7  2021 old.html

Entries carry no timezone and, when recent, no year; the parsed values are
therefore only meaningful relative to one another (see ``calibrator``).
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

LIST_LINE_PATTERN = re.compile(
    r"^((?P<DIR>([dD]{1}))|)(?P<ATTRIBS>(.*))\s(?P<SIZE>([0-9]{1,}))\s"
    r"(?P<DATE>((?P<MONTHDAY>((?P<MONTH>(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec))"
    r"\s(?P<DAY>([0-9\s]{2}))))\s(\s(?P<YEAR>([0-9]{4}))|(?P<TIME>([0-9]{2}\:[0-9]{2})))))"
    r"\s(?P<NAME>([A-Za-z0-9\-\._\s]{1,}))$"
)

MONTHS = "Jan Feb Mar Apr May Jun Jul Aug Sep Oct Nov Dec".split()

LINE_SPLIT = re.compile(r"\r\n|\r|\n")


@dataclass
class ListingEntry:
    """A file entry parsed from a directory listing."""

    name: str
    size: int
    modified: datetime
    """Server-reported modification time (UTC-tagged, server clock)"""


def parse_listing_date(
    month: str, day: str, clock: Optional[str], year: Optional[str], current_year: int
) -> Optional[datetime]:
    """Parse the date columns of a listing line.

    "month day HH:MM" is tried first and implies ``current_year``; "month day
    yyyy" is tried second and implies midnight.

    Args:
        month: Three-letter English month abbreviation
        day: Day of month, possibly space padded
        clock: ``HH:MM`` column if present
        year: Four-digit year column if present
        current_year: Year assumed for entries that show a clock time

    Returns:
        Parsed UTC-tagged datetime, or None if neither format applies
    """
    try:
        month_number = MONTHS.index(month) + 1
        day_number = int(day.strip())
    except ValueError:
        return None

    if clock:
        try:
            hour, minute = (int(part) for part in clock.split(":"))
            return datetime(
                current_year,
                month_number,
                day_number,
                hour,
                minute,
                tzinfo=timezone.utc,
            )
        except ValueError:
            pass

    if year:
        try:
            return datetime(int(year), month_number, day_number, tzinfo=timezone.utc)
        except ValueError:
            pass

    return None


def parse_listing_line(line: str, current_year: int) -> Optional[ListingEntry]:
    """Parse one listing line.

    Args:
        line: Raw line without line terminator
        current_year: Year assumed for entries that show a clock time

    Returns:
        ListingEntry for file lines; None for directories and for lines that
        do not match the grammar or carry an invalid date
    """
    match = LIST_LINE_PATTERN.match(line)
    if match is None or match.group("DIR"):
        return None

    modified = parse_listing_date(
        match.group("MONTH"),
        match.group("DAY"),
        match.group("TIME"),
        match.group("YEAR"),
        current_year,
    )
    if modified is None:
        logger.debug(f"Skipping listing line with unparseable date: {line!r}")
        return None

    return ListingEntry(
        name=match.group("NAME"),
        size=int(match.group("SIZE")),
        modified=modified,
    )


def parse_listing(text: Optional[str], current_year: Optional[int] = None) -> list[ListingEntry]:
    """Parse a complete ``LIST`` response.

    Args:
        text: Listing text (None is treated as empty)
        current_year: Year assumed for recent entries (defaults to this year)

    Returns:
        Parsed file entries in listing order
    """
    if not text:
        return []
    if current_year is None:
        current_year = datetime.now().year

    entries = []
    for line in LINE_SPLIT.split(text):
        entry = parse_listing_line(line, current_year)
        if entry is not None:
            entries.append(entry)
    return entries
