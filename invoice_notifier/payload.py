"""
Reminder Payload Builder

Renders the reminder message for each record and assembles the JSON body
posted to the notification endpoint.

Templates use four literal placeholders:

    {{name}}     client name
    {{invoice}}  invoice number
    {{amount}}   amount, exactly as it appeared in the sheet
    {{days}}     age in days

Every occurrence of a placeholder is replaced.  Any other ``{{...}}`` token
is left in the output untouched, and a record field with no value renders
as an empty string.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional

from .models import InvoiceRecord

DEFAULT_MESSAGE_TEMPLATE = (
    "Hello {{name}},\n"
    "\n"
    "Our records show that invoice #{{invoice}} for {{amount}} is "
    "{{days}} days overdue. Please arrange payment at your earliest "
    "convenience.\n"
    "\n"
    "Kind regards,\n"
    "Accounts Receivable"
)

PLACEHOLDERS: tuple[str, ...] = ("name", "invoice", "amount", "days")

_PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def placeholder_values(record: InvoiceRecord) -> dict[str, str]:
    """String form of each placeholder for *record*."""
    days = record.age_days
    return {
        "name": record.client_name or "",
        "invoice": record.invoice_number or "",
        "amount": record.amount or "",
        "days": "" if days is None else str(days),
    }


def render(template: str, record: InvoiceRecord) -> str:
    """Substitute every known placeholder in *template*.

    >>> r = InvoiceRecord(id=1, client_name="Acme", invoice_number="F-12")
    >>> render("{{name}} / {{name}} / {{invoice}} / {{unknown}}", r)
    'Acme / Acme / F-12 / {{unknown}}'
    """
    values = placeholder_values(record)

    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        return match.group(0)

    return _PLACEHOLDER_PATTERN.sub(_substitute, template)


def load_template(path: str | Path) -> str:
    """Read a UTF-8 message template from disk."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Message template not found: {path}")
    return path.read_text(encoding="utf-8")


def build_item(record: InvoiceRecord, template: Optional[str] = None) -> dict:
    """One entry of the ``items`` array.

    ``name`` and ``client`` carry the same value so that either flavor of
    endpoint can read it.  ``message`` is present only when a template is
    given.
    """
    item = {
        "email": record.email.strip(),
        "name": record.client_name,
        "client": record.client_name,
        "invoice": record.invoice_number,
        "amount": record.amount,
        "days": record.age_days,
    }
    if template is not None:
        item["message"] = render(template, record)
    return item


def build_payload(
    records: Iterable[InvoiceRecord],
    template: Optional[str] = None,
) -> dict:
    """The request body: ``{"items": [...]}``."""
    return {"items": [build_item(r, template) for r in records]}
