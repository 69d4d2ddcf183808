"""Invoice Notifier - Spreadsheet Data Loader.

Reads an invoice sheet and returns classified ``InvoiceRecord`` objects.

Supported data sources
~~~~~~~~~~~~~~~~~~~~~~
* **File path** -- local ``.xlsx`` / ``.xlsm`` workbook or ``.csv`` export.
* **Bytes** -- raw upload content (``bytes`` or a binary file object).
  Pass ``filename`` so the format can be taken from its suffix; without
  one, ZIP content is read as a workbook and anything else as CSV.

Only the first worksheet of a workbook is read.  Row 1 holds the headers;
every following non-blank row becomes one record, numbered from 1 in
sheet order.

Usage::

    from invoice_notifier.data_loader import load_records

    result = load_records("invoices.xlsx", threshold_days=30)
    print(f"Records: {len(result.records)}")
    result.print_summary()
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import IO, Any, Iterable, Optional, Union
from xml.etree.ElementTree import ParseError

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .classifier import classify_all, coerce_threshold, summarize
from .column_mapper import cell_for, map_columns
from .config import NotifierConfig, get_config
from .date_normalizer import normalize_date
from .models import ColumnMapping, InvoiceRecord, LogicalField

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray, IO[bytes]]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_XLSX_SUFFIXES = {".xlsx", ".xlsm"}
_CSV_SUFFIXES = {".csv", ".txt"}
_UNSUPPORTED_SUFFIXES = {".xls", ".ods", ".numbers"}

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"

_CSV_DELIMITERS = ",;\t"

# Broken XML parts raise ParseError (stdlib) or XMLSyntaxError (lxml);
# both subclass SyntaxError.  Malformed values raise ValueError/TypeError.
_XLSX_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    KeyError,
    IndexError,
    OSError,
    ParseError,
    SyntaxError,
    ValueError,
    TypeError,
)

# Cell values that should be treated as empty.
_NULL_SIGNALS: set[str] = {"", "#N/A", "N/A", "#REF!"}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SpreadsheetError(ValueError):
    """The uploaded file cannot be turned into invoice rows."""


class SpreadsheetReadError(SpreadsheetError):
    """The file is corrupt or in an unsupported format."""


class EmptySpreadsheetError(SpreadsheetError):
    """The file has no header row or no data rows."""


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass
class SheetData:
    """Decoded sheet: headers plus ``(row_number, {header: value})`` pairs."""

    headers: list[str] = field(default_factory=list)
    rows: list[tuple[int, dict[str, Any]]] = field(default_factory=list)
    file_format: str = ""
    blank_rows_skipped: int = 0


@dataclass
class LoadResult:
    """Aggregated output from :func:`load_records`."""

    records: list[InvoiceRecord] = field(default_factory=list)
    mapping: ColumnMapping = field(default_factory=ColumnMapping)
    headers: list[str] = field(default_factory=list)

    # Metadata
    source_file: str | None = None
    file_format: str = ""
    threshold_days: int = 0
    as_of: date | None = None
    rows_scanned: int = 0
    blank_rows_skipped: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def overdue_records(self) -> list[InvoiceRecord]:
        return [r for r in self.records if r.overdue]

    @property
    def undated_records(self) -> list[InvoiceRecord]:
        return [r for r in self.records if r.invoice_date is None]

    def print_summary(self) -> None:
        """Print a human-readable summary of what was loaded."""
        counts = summarize(self.records)

        print("=" * 65)
        print("  Invoice Notifier -- Import Summary")
        print("=" * 65)
        print(f"  Source file       : {self.source_file or '(bytes buffer)'}")
        print(f"  Format            : {self.file_format}")
        print(f"  Rows scanned      : {self.rows_scanned}")
        print(f"  Blank rows skipped: {self.blank_rows_skipped}")
        print("-" * 65)
        print("  Column mapping:")
        for line in self.mapping.describe().splitlines():
            print(f"    {line}")
        print("-" * 65)
        print(f"  Records           : {counts['total']}")
        print(f"  With valid date   : {counts['dated']}")
        print(f"  Without date      : {counts['undated']}")
        print(f"  Marked paid       : {counts['paid']}")
        as_of = self.as_of.isoformat() if self.as_of else "today"
        print(f"  Overdue (> {self.threshold_days} days as of {as_of}): "
              f"{counts['overdue']}")
        if self.warnings:
            print("-" * 65)
            print(f"  Warnings ({len(self.warnings)}):")
            for w in self.warnings[:20]:
                print(f"    - {w}")
            if len(self.warnings) > 20:
                print(f"    ... and {len(self.warnings) - 20} more")
        print("=" * 65)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_records(
    source: Source,
    *,
    threshold_days: Any = None,
    today: Optional[date] = None,
    filename: str | None = None,
    config: NotifierConfig | None = None,
) -> LoadResult:
    """Read, map, normalize and classify every row of an invoice sheet.

    Parameters
    ----------
    source:
        File path or raw bytes / binary buffer.
    threshold_days:
        Overdue threshold.  ``None`` uses the configured value; anything
        non-numeric falls back to 30.
    today:
        Reference date for ages.  Defaults to ``date.today()``.
    filename:
        Original file name for bytes input (format detection only).
    config:
        Configuration.  Loads ``config.yaml`` / defaults when omitted.

    Raises
    ------
    FileNotFoundError
        The path does not exist.
    SpreadsheetReadError
        The file is corrupt or in an unsupported format.
    EmptySpreadsheetError
        No header row, or no data rows below it.
    """
    cfg = config or get_config()
    if threshold_days is None:
        threshold_days = cfg.classification.threshold_days

    result = LoadResult()
    if isinstance(source, (str, Path)):
        result.source_file = str(source)

    # ------------------------------------------------------------------
    # 1. Decode the sheet
    # ------------------------------------------------------------------
    sheet = read_rows(source, filename=filename)
    result.headers = sheet.headers
    result.file_format = sheet.file_format
    result.blank_rows_skipped = sheet.blank_rows_skipped
    result.rows_scanned = len(sheet.rows) + sheet.blank_rows_skipped

    if not sheet.rows:
        raise EmptySpreadsheetError("The file is empty or unreadable: no data rows found.")

    # ------------------------------------------------------------------
    # 2. Map headers to logical fields
    # ------------------------------------------------------------------
    mapping = map_columns(
        sheet.headers,
        synonyms=cfg.columns.synonyms,
        required=cfg.classification.required_fields,
    )
    result.mapping = mapping
    for missing in mapping.missing_required:
        msg = f"No column found for '{missing.value}'"
        result.warnings.append(msg)
        logger.warning("%s (headers: %s)", msg, sheet.headers)

    # ------------------------------------------------------------------
    # 3. Build records
    # ------------------------------------------------------------------
    legacy = cfg.columns.legacy_names
    records: list[InvoiceRecord] = []
    for record_id, (row_number, row) in enumerate(sheet.rows, start=1):
        raw_date = cell_for(row, mapping, LogicalField.DATE, legacy)
        invoice_date = normalize_date(raw_date)
        raw_date_text = _clean_str(raw_date)
        if invoice_date is None and raw_date_text:
            result.warnings.append(
                f"Row {row_number}: could not parse date '{raw_date_text}'"
            )

        records.append(InvoiceRecord(
            id=record_id,
            client_name=_clean_str(cell_for(row, mapping, LogicalField.NAME, legacy)),
            email=_clean_str(cell_for(row, mapping, LogicalField.EMAIL, legacy)),
            invoice_number=_clean_str(cell_for(row, mapping, LogicalField.INVOICE, legacy)),
            amount=_clean_str(cell_for(row, mapping, LogicalField.AMOUNT, legacy)),
            invoice_date=invoice_date,
            raw_invoice_date=raw_date_text,
            paid_flag=_clean_str(cell_for(row, mapping, LogicalField.PAID, legacy)),
            source_row=row_number,
        ))

    # ------------------------------------------------------------------
    # 4. Classify
    # ------------------------------------------------------------------
    result.threshold_days = coerce_threshold(threshold_days)
    result.as_of = today or date.today()
    result.records = classify_all(records, result.threshold_days, result.as_of)

    logger.info(
        "Loaded %d records from %s (%d blank rows skipped, %d warnings)",
        len(result.records),
        result.source_file or "bytes buffer",
        result.blank_rows_skipped,
        len(result.warnings),
    )
    return result


def read_rows(source: Source, *, filename: str | None = None) -> SheetData:
    """Decode the first sheet of *source* into header-keyed rows.

    Missing cells default to ``""``.  Fully blank rows are skipped, blank
    headers are dropped and repeated headers get ``_1``, ``_2`` suffixes.
    """
    data, name = _read_source(source, filename)
    file_format = _detect_format(data, name)

    if file_format == "xlsx":
        raw_rows = _iter_xlsx_rows(data)
    else:
        raw_rows = _iter_csv_rows(data)

    sheet = _rows_to_sheet(raw_rows)
    sheet.file_format = file_format
    return sheet


# ---------------------------------------------------------------------------
# Source handling
# ---------------------------------------------------------------------------

def _read_source(source: Source, filename: str | None) -> tuple[bytes, str]:
    """Return ``(content, name)`` for any supported source type."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Spreadsheet not found: {path}")
        logger.info("Opening spreadsheet: %s", path)
        return path.read_bytes(), filename or path.name

    if isinstance(source, (bytes, bytearray)):
        logger.info("Reading spreadsheet from bytes buffer")
        return bytes(source), filename or ""

    logger.info("Reading spreadsheet from file object")
    return source.read(), filename or getattr(source, "name", "") or ""


def _detect_format(data: bytes, name: str) -> str:
    suffix = Path(name).suffix.lower() if name else ""

    if suffix in _UNSUPPORTED_SUFFIXES or data.startswith(_OLE_MAGIC):
        raise SpreadsheetReadError(
            f"Unsupported spreadsheet format '{suffix or 'legacy binary'}'. "
            "Save the file as .xlsx or .csv."
        )
    if suffix in _XLSX_SUFFIXES:
        return "xlsx"
    if suffix in _CSV_SUFFIXES:
        return "csv"
    return "xlsx" if data.startswith(_ZIP_MAGIC) else "csv"


# ---------------------------------------------------------------------------
# Format readers
# ---------------------------------------------------------------------------

def _iter_xlsx_rows(data: bytes) -> list[tuple]:
    """All rows of the first worksheet as value tuples."""
    wb = None
    try:
        wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True, read_only=True)
        ws = wb.worksheets[0]
        logger.debug("Reading worksheet '%s'", ws.title)
        return [tuple(row) for row in ws.iter_rows(values_only=True)]
    except _XLSX_READ_ERRORS as exc:
        raise SpreadsheetReadError(
            f"The file is empty or unreadable: {exc}"
        ) from exc
    finally:
        if wb is not None:
            wb.close()


def _iter_csv_rows(data: bytes) -> list[list[str]]:
    """Decode CSV bytes, sniffing the delimiter among , ; and tab."""
    text = _decode_text(data)
    if not text.strip():
        return []

    sample = text[:8192]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=_CSV_DELIMITERS)
    except csv.Error:
        dialect = csv.excel
    return list(csv.reader(io.StringIO(text, newline=""), dialect))


def _decode_text(data: bytes) -> str:
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


# ---------------------------------------------------------------------------
# Row shaping
# ---------------------------------------------------------------------------

def _rows_to_sheet(raw_rows: Iterable[Iterable[Any]]) -> SheetData:
    """Turn raw value rows into header-keyed dicts (row 1 = headers)."""
    iterator = iter(raw_rows)
    header_values = next(iterator, None)
    if header_values is None:
        raise EmptySpreadsheetError("The file is empty or unreadable: no header row.")

    columns = _build_header_columns(list(header_values))
    if not columns:
        raise EmptySpreadsheetError("The file is empty or unreadable: header row is blank.")

    sheet = SheetData(headers=[name for _, name in columns])

    for row_number, values in enumerate(iterator, start=2):
        values = list(values or ())
        if all(_is_blank(v) for v in values):
            sheet.blank_rows_skipped += 1
            continue
        row: dict[str, Any] = {}
        for idx, name in columns:
            value = values[idx] if idx < len(values) else None
            row[name] = "" if value is None else value
        sheet.rows.append((row_number, row))

    logger.debug(
        "Decoded %d rows x %d columns", len(sheet.rows), len(sheet.headers),
    )
    return sheet


def _build_header_columns(header_values: list[Any]) -> list[tuple[int, str]]:
    """``(column_index, header)`` pairs with blanks dropped and repeats suffixed."""
    columns: list[tuple[int, str]] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(header_values):
        name = _clean_str(value)
        if not name:
            continue
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        columns.append((idx, name))
    return columns


# ---------------------------------------------------------------------------
# Data cleaning helpers
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean_str(value: Any) -> str:
    """Render a cell as display text.  None and null signals become ``""``.

    Integral floats lose their ``.0`` (invoice numbers come back from
    workbooks as ``906858.0``), dates render as ISO and booleans as
    ``TRUE`` / ``FALSE`` the way a spreadsheet shows them.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    s = str(value).strip()
    return "" if s in _NULL_SIGNALS else s
