"""Root conftest.py -- keeps `invoice_notifier` importable and shares fixtures."""

import sys
from datetime import date
from pathlib import Path

import pytest
from openpyxl import Workbook

# Add the project root to sys.path so `from invoice_notifier import ...` works
# without an editable install.
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from invoice_notifier.config import NotifierConfig  # noqa: E402
from invoice_notifier.models import InvoiceRecord  # noqa: E402

# Fixed reference date so ages are deterministic.
TODAY = date(2024, 6, 30)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def config() -> NotifierConfig:
    """Pure defaults, independent of any config.yaml on disk."""
    cfg = NotifierConfig()
    cfg.notifier.endpoint_url = "http://reminders.test/api/send-reminders"
    return cfg


@pytest.fixture
def make_record():
    """Factory for InvoiceRecord with sensible defaults."""
    def _make(record_id: int = 1, **overrides) -> InvoiceRecord:
        fields = {
            "client_name": f"Client {record_id}",
            "email": f"client{record_id}@example.com",
            "invoice_number": f"F-{record_id:04d}",
            "amount": "1500.00",
        }
        fields.update(overrides)
        return InvoiceRecord(id=record_id, **fields)
    return _make


@pytest.fixture
def write_xlsx(tmp_path):
    """Write header + rows to an xlsx file and return its path."""
    def _write(headers, rows, name: str = "invoices.xlsx") -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = "Factures"
        ws.append(list(headers))
        for row in rows:
            ws.append(list(row))
        path = tmp_path / name
        wb.save(path)
        return path
    return _write
