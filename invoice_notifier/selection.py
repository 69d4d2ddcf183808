"""Selection state for one imported sheet.

Holds the record batch of an import and the user's per-row exclusion
flags.  The eligible set is derived on every read:

    overdue and not excluded and email is syntactically valid

A re-import builds a new ``SelectionState``; nothing here replaces
records in place.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .models import InvoiceRecord, SkipReason
from .classifier import is_affirmative

logger = logging.getLogger(__name__)


class SelectionState:
    """Ordered record batch with exclusion toggles.

    Records are indexed by their import ``id``.  Duplicate ids are
    rejected at construction.
    """

    def __init__(self, records: Iterable[InvoiceRecord] = ()) -> None:
        self._records: list[InvoiceRecord] = list(records)
        self._by_id: dict[int, InvoiceRecord] = {}
        for record in self._records:
            if record.id in self._by_id:
                raise ValueError(f"Duplicate record id: {record.id}")
            self._by_id[record.id] = record

    # --- container protocol ---

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[InvoiceRecord]:
        return iter(self._records)

    @property
    def records(self) -> list[InvoiceRecord]:
        """A copy of the record list, in import order."""
        return list(self._records)

    def get(self, record_id: int) -> InvoiceRecord | None:
        return self._by_id.get(record_id)

    # --- mutations ---

    def toggle_excluded(self, record_id: int) -> bool:
        """Flip the exclusion flag.  Unknown ids are ignored.

        Returns:
            True if a record was toggled.
        """
        record = self._by_id.get(record_id)
        if record is None:
            logger.debug("toggle_excluded: no record with id %s", record_id)
            return False
        record.excluded = not record.excluded
        return True

    def set_excluded(self, record_id: int, value: bool) -> bool:
        """Set the exclusion flag explicitly.  Unknown ids are ignored."""
        record = self._by_id.get(record_id)
        if record is None:
            logger.debug("set_excluded: no record with id %s", record_id)
            return False
        record.excluded = bool(value)
        return True

    def set_all_overdue_excluded(self, value: bool) -> int:
        """Include or exclude every overdue record.

        Non-overdue records keep their flag.  Returns the number of
        records whose flag actually changed.
        """
        changed = 0
        for record in self._records:
            if record.overdue and record.excluded != bool(value):
                record.excluded = bool(value)
                changed += 1
        return changed

    # --- derived views ---

    def overdue_records(self) -> list[InvoiceRecord]:
        return [r for r in self._records if r.overdue]

    def excluded_records(self) -> list[InvoiceRecord]:
        return [r for r in self._records if r.excluded]

    def eligible_for_notification(self) -> list[InvoiceRecord]:
        """Overdue, non-excluded records with a valid email."""
        return [
            r for r in self._records
            if r.overdue and not r.excluded and r.has_valid_email
        ]

    def skip_reason(self, record: InvoiceRecord) -> SkipReason | None:
        """First reason the record is not eligible, or None if it is."""
        if record.invoice_date is None:
            return SkipReason.NO_DATE
        if not record.overdue:
            cls = record.classification
            if (
                cls is not None
                and cls.age_days is not None
                and cls.age_days > cls.threshold_days
                and is_affirmative(record.paid_flag)
            ):
                return SkipReason.PAID
            return SkipReason.NOT_OVERDUE
        if record.excluded:
            return SkipReason.EXCLUDED
        if not record.has_valid_email:
            return SkipReason.INVALID_EMAIL
        return None

    def skip_counts(self) -> dict[SkipReason, int]:
        counts: dict[SkipReason, int] = {}
        for record in self._records:
            reason = self.skip_reason(record)
            if reason is not None:
                counts[reason] = counts.get(reason, 0) + 1
        return counts
