"""Invoice Notifier - overdue detection and reminder batching.

Reads an invoice spreadsheet, flags rows older than a threshold as
overdue, lets the user exclude rows, and posts the remaining rows to a
reminder endpoint in one batch.
"""

from .models import (
    Classification,
    ColumnMapping,
    InvoiceRecord,
    LogicalField,
    SendResult,
    SkipReason,
)

from .classifier import classify, classify_all
from .column_mapper import map_columns
from .controller import ReminderController
from .data_loader import LoadResult, load_records
from .date_normalizer import normalize_date
from .notifier import ReminderClient
from .payload import render
from .selection import SelectionState

__all__ = [
    "Classification",
    "ColumnMapping",
    "InvoiceRecord",
    "LoadResult",
    "LogicalField",
    "ReminderClient",
    "ReminderController",
    "SelectionState",
    "SendResult",
    "SkipReason",
    "classify",
    "classify_all",
    "load_records",
    "map_columns",
    "normalize_date",
    "render",
]
