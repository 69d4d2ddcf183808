"""
Date Normalizer

Turns a raw spreadsheet cell of unknown shape into a calendar date.

openpyxl returns ``datetime`` objects for date-typed cells, plain numbers
for cells that hold a serial date without date formatting, and strings for
everything a CSV export produces.  ``normalize_date`` tries, in order:

    1. native ``date`` / ``datetime`` values
    2. numbers and fully-numeric strings as spreadsheet serials
       (serial 0 = 1899-12-30)
    3. ISO-like strings ("2024-01-15", "2024-01-15T09:30:00", "Jan 15, 2024")
    4. day-first ``D/M/Y`` or ``D-M-Y`` extraction (2-digit years -> 20YY)

Numeric strings are tried as serials *before* generic parsing: "44197" is
the intended 2021-01-01, not a year.  Nothing in this module raises.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Serial day 0 in the 1900 date system as used by Excel / LibreOffice.
SERIAL_EPOCH = date(1899, 12, 30)

_NUMERIC_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_DAY_FIRST_PATTERN = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})")

# Tried after datetime.fromisoformat().  No month-first numeric formats:
# numeric dates that are not ISO are read day-first below.
_TEXT_FORMATS = (
    "%Y/%m/%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_date(raw: Any) -> date | None:
    """Return the calendar date encoded by *raw*, or None.

    Examples:
        >>> normalize_date(44197)
        datetime.date(2021, 1, 1)
        >>> normalize_date("2021-01-01")
        datetime.date(2021, 1, 1)
        >>> normalize_date("15/03/24")
        datetime.date(2024, 3, 15)
        >>> normalize_date("not a date") is None
        True
    """
    if raw is None:
        return None

    # 1. Native values
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    # bool is an int subclass; a TRUE/FALSE cell is never a date.
    if isinstance(raw, bool):
        return None

    # 2. Serial day counts
    if isinstance(raw, (int, float)):
        return from_serial(raw)

    text = str(raw).strip()
    if not text:
        return None

    if _NUMERIC_PATTERN.match(text):
        return from_serial(float(text))

    # 3. ISO-like strings
    parsed = _parse_iso_like(text)
    if parsed is not None:
        return parsed

    # 4. Day-first numeric dates
    parsed = _parse_day_first(text)
    if parsed is not None:
        return parsed

    logger.debug("Could not parse date value %r", raw)
    return None


def from_serial(serial: int | float) -> date | None:
    """Convert a spreadsheet serial day count to a date.

    The fractional part (time of day) is dropped.  Negative, infinite and
    out-of-range serials return None.
    """
    if isinstance(serial, float) and not math.isfinite(serial):
        return None
    days = math.floor(serial)
    if days < 0:
        return None
    try:
        return SERIAL_EPOCH + timedelta(days=days)
    except OverflowError:
        return None


# ---------------------------------------------------------------------------
# String parsers
# ---------------------------------------------------------------------------

def _parse_iso_like(text: str) -> date | None:
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_day_first(text: str) -> date | None:
    m = _DAY_FIRST_PATTERN.search(text)
    if not m:
        return None
    day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    if year < 100:
        year += 2000
    try:
        return date(year, month, day)
    except ValueError:
        # 31/02/2024 and friends
        return None
