"""Data models for the invoice notifier.

All models are plain dataclasses with type hints.  No ORM, no Pydantic --
just stdlib so the module has zero dependencies.

An ``InvoiceRecord`` is created once per imported sheet row.  Its overdue
status comes from the ``Classification`` attached by the classifier; the
only field a user changes afterwards is ``excluded``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LogicalField(str, Enum):
    """The invoice attributes a sheet header can be mapped to."""

    NAME = "name"
    EMAIL = "email"
    INVOICE = "invoice"
    DATE = "date"
    AMOUNT = "amount"
    PAID = "paid"


class SkipReason(Enum):
    """Why a record is not part of the eligible set."""

    NO_DATE = "Invoice date missing or unparseable"
    NOT_OVERDUE = "Not older than the threshold"
    PAID = "Paid flag is affirmative"
    EXCLUDED = "Excluded by the user"
    INVALID_EMAIL = "Email is empty or invalid"


# ---------------------------------------------------------------------------
# Email validation
# ---------------------------------------------------------------------------

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")


def is_valid_email(value: str | None) -> bool:
    """Syntactic check: one ``@``, a local part and a dotted domain.

    >>> is_valid_email("ap@store.com")
    True
    >>> is_valid_email("ap@store")
    False
    """
    if not value:
        return False
    return bool(_EMAIL_PATTERN.match(value.strip()))


# ---------------------------------------------------------------------------
# Core Data Models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one record against a threshold.

    Attributes:
        age_days: Calendar days between the invoice date and ``as_of``.
            None when the record has no usable date.
        overdue: True iff ``age_days > threshold_days`` and the record
            is not marked paid.
        threshold_days: The threshold the record was classified against.
        as_of: The reference "today" used for the age computation.
    """
    age_days: int | None
    overdue: bool
    threshold_days: int
    as_of: date


@dataclass
class InvoiceRecord:
    """A single invoice row from the imported sheet.

    Display fields (client name, email, invoice number, amount) are kept as
    the strings found in the sheet.  The amount in particular is never
    parsed as a number.
    """

    # --- identity ---
    id: int                                 # 1-based, assigned at import
    client_name: str = ""
    email: str = ""
    invoice_number: str = ""
    amount: str = ""

    # --- dates ---
    invoice_date: date | None = None
    raw_invoice_date: str = ""              # original cell text, for display

    # --- flags ---
    paid_flag: str = ""
    excluded: bool = False

    # --- diagnostics ---
    source_row: int | None = None

    classification: Classification | None = field(default=None, repr=False)

    @property
    def age_days(self) -> int | None:
        """Age in days, or None if unclassified or undated."""
        if self.classification is None:
            return None
        return self.classification.age_days

    @property
    def overdue(self) -> bool:
        """Derived from the classification; never stored directly."""
        if self.classification is None:
            return False
        return self.classification.overdue

    @property
    def has_valid_email(self) -> bool:
        return is_valid_email(self.email)

    @property
    def display_date(self) -> str:
        """ISO date when parsed, otherwise the raw cell text."""
        if self.invoice_date is not None:
            return self.invoice_date.isoformat()
        return self.raw_invoice_date

    def to_dict(self) -> dict:
        """Serialize to a plain dict for previews and JSON output."""
        return {
            "id": self.id,
            "client": self.client_name,
            "email": self.email,
            "invoice": self.invoice_number,
            "date": self.display_date,
            "amount": self.amount,
            "paid": self.paid_flag,
            "days": self.age_days,
            "overdue": self.overdue,
            "excluded": self.excluded,
        }


@dataclass
class ColumnMapping:
    """Result of matching sheet headers to logical fields.

    ``fields`` holds every logical field; unmatched ones map to None.
    """

    fields: dict[LogicalField, str | None] = field(default_factory=dict)
    unmatched: list[LogicalField] = field(default_factory=list)
    missing_required: list[LogicalField] = field(default_factory=list)

    def header_for(self, logical_field: LogicalField | str) -> str | None:
        return self.fields.get(LogicalField(logical_field))

    @property
    def is_complete(self) -> bool:
        """True when every required field found a header."""
        return not self.missing_required

    def describe(self) -> str:
        """One line per field, e.g. ``email   -> 'E-mail'``."""
        lines = []
        for logical_field in LogicalField:
            header = self.fields.get(logical_field)
            shown = repr(header) if header is not None else "(unmapped)"
            lines.append(f"{logical_field.value:<8s}-> {shown}")
        return "\n".join(lines)


@dataclass
class SendResult:
    """Aggregate response of one reminder batch."""

    success: bool
    sent_count: int = 0
    error: str | None = None
    requested: int = 0

    @property
    def feedback(self) -> str:
        """User-facing summary line."""
        if self.success:
            return f"Send complete. {self.sent_count} reminder(s) sent."
        return f"Send failed: {self.error or 'unknown error'}"
