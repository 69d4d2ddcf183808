"""
Overdue Classifier

Computes each invoice's age in calendar days and decides whether it is
overdue.  This is the only place the overdue rule lives:

    overdue = age_days is not None
              and age_days > threshold_days
              and not is_affirmative(paid_flag)

Age is a calendar-day difference between two ``date`` objects, so results
are deterministic for a fixed ``today`` regardless of the time of day.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Iterable, Optional

from .config import DEFAULT_THRESHOLD_DAYS
from .models import Classification, InvoiceRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def is_affirmative(flag: Any) -> bool:
    """True when the trimmed, lowercased flag starts with ``"y"``.

    >>> is_affirmative(" Yes ")
    True
    >>> is_affirmative("no")
    False
    """
    if flag is None:
        return False
    return str(flag).strip().lower().startswith("y")


def coerce_threshold(value: Any) -> int:
    """Return a usable threshold in days.

    Integers pass through; floats and numeric strings are truncated toward
    zero.  None, booleans, NaN and non-numeric input fall back to the
    default of 30 days.

    >>> coerce_threshold("45")
    45
    >>> coerce_threshold("abc")
    30
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_THRESHOLD_DAYS
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return DEFAULT_THRESHOLD_DAYS
    if not math.isfinite(number):
        return DEFAULT_THRESHOLD_DAYS
    return int(number)


# ---------------------------------------------------------------------------
# Core Classification Functions
# ---------------------------------------------------------------------------

def compute_age_days(invoice_date: Optional[date], today: date) -> Optional[int]:
    """Calendar days from *invoice_date* to *today*; None without a date."""
    if invoice_date is None:
        return None
    return (today - invoice_date).days


def classify(
    record: InvoiceRecord,
    threshold_days: Any = None,
    today: Optional[date] = None,
) -> Classification:
    """Classify a single record without modifying it.

    Args:
        record: The invoice record.  Only ``invoice_date`` and
            ``paid_flag`` are read.
        threshold_days: Age in days an invoice may reach before it is
            overdue.  Coerced with :func:`coerce_threshold`.
        today: Reference date.  Defaults to ``date.today()``.

    Returns:
        A frozen Classification.  Calling this twice with the same inputs
        yields equal results.
    """
    threshold = coerce_threshold(threshold_days)
    as_of = today or date.today()

    age_days = compute_age_days(record.invoice_date, as_of)
    if age_days is None:
        overdue = False
    else:
        overdue = age_days > threshold and not is_affirmative(record.paid_flag)

    return Classification(
        age_days=age_days,
        overdue=overdue,
        threshold_days=threshold,
        as_of=as_of,
    )


def classify_all(
    records: Iterable[InvoiceRecord],
    threshold_days: Any = None,
    today: Optional[date] = None,
) -> list[InvoiceRecord]:
    """Classify a batch with one shared ``today`` and attach the results.

    ``excluded`` is left untouched.  Returns the records as a list.
    """
    threshold = coerce_threshold(threshold_days)
    as_of = today or date.today()

    classified: list[InvoiceRecord] = []
    for record in records:
        record.classification = classify(record, threshold, as_of)
        classified.append(record)

    logger.info(
        "Classified %d records against %d days as of %s: %d overdue",
        len(classified), threshold, as_of.isoformat(),
        sum(1 for r in classified if r.overdue),
    )
    return classified


# ---------------------------------------------------------------------------
# Batch Summary
# ---------------------------------------------------------------------------

def summarize(records: Iterable[InvoiceRecord]) -> dict[str, int]:
    """Counts for reports: total, dated, undated, overdue, paid."""
    summary = {
        "total": 0,
        "dated": 0,
        "undated": 0,
        "overdue": 0,
        "paid": 0,
    }
    for record in records:
        summary["total"] += 1
        if record.invoice_date is None:
            summary["undated"] += 1
        else:
            summary["dated"] += 1
        if record.overdue:
            summary["overdue"] += 1
        if is_affirmative(record.paid_flag):
            summary["paid"] += 1
    return summary
