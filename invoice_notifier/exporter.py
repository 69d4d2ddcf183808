"""Export overdue records back to a workbook.

Writes one sheet named ``overdue`` with the columns::

    client | email | invoice | date | amount | days
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font

from .models import InvoiceRecord

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "overdue.xlsx"
EXPORT_SHEET = "overdue"
EXPORT_COLUMNS: tuple[str, ...] = ("client", "email", "invoice", "date", "amount", "days")


def export_row(record: InvoiceRecord) -> dict:
    """The exported values for one record, keyed by column name."""
    return {
        "client": record.client_name,
        "email": record.email,
        "invoice": record.invoice_number,
        "date": record.display_date,
        "amount": record.amount,
        "days": record.age_days,
    }


def export_overdue(records: Iterable[InvoiceRecord], path: str | Path) -> Path:
    """Write *records* to an ``.xlsx`` file.

    Parent directories are created.  Returns the Path written to.

    Raises:
        ValueError: If there is nothing to export.
    """
    rows = [export_row(r) for r in records]
    if not rows:
        raise ValueError("Nothing to export: no overdue records selected.")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET
    ws.append(list(EXPORT_COLUMNS))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([row[col] for col in EXPORT_COLUMNS])

    wb.save(path)
    logger.info("Exported %d records to %s", len(rows), path)
    return path
