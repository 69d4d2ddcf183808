"""
Invoice Notifier -- Configuration Module

Centralizes all configuration for the invoice reminder tool.
Loads defaults from dataclasses, then overlays any overrides from config.yaml.

Usage:
    from invoice_notifier.config import get_config
    cfg = get_config()                         # loads config.yaml if present
    cfg = get_config("path/to/custom.yaml")    # loads a specific file
    print(cfg.classification.threshold_days)   # 30
    print(cfg.notifier.endpoint_url)           # http://localhost:3000/api/send-reminders
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

# ---------------------------------------------------------------------------
# Path constants -- everything relative to the project root
# ---------------------------------------------------------------------------
_THIS_DIR = Path(__file__).resolve().parent          # invoice_notifier/
PROJECT_ROOT = _THIS_DIR.parent                       # project checkout
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config.yaml"

DEFAULT_THRESHOLD_DAYS: int = 30


# ===================================================================
# 1. Classification
# ===================================================================

@dataclass
class ClassificationConfig:
    """Overdue threshold and the columns an import is expected to carry."""
    threshold_days: int = DEFAULT_THRESHOLD_DAYS
    # Logical fields reported as missing when no header maps to them.
    required_fields: list[str] = field(default_factory=lambda: [
        "name",
        "email",
        "invoice",
        "date",
    ])


# ===================================================================
# 2. Column synonyms
# ===================================================================

@dataclass
class ColumnConfig:
    """Header matching rules.

    ``synonyms`` are lowercase substrings tried in order against each
    normalized header.  ``legacy_names`` are exact header names used when
    no header was mapped for a field.
    """
    synonyms: dict[str, list[str]] = field(default_factory=lambda: {
        "name":    ["client", "clientname", "name", "customer"],
        "email":   ["email", "e-mail", "mail"],
        "invoice": ["invoice", "invoice#", "invoicenumber", "ref", "facture", "facture#"],
        "date":    ["date", "invoicedate", "datefacture", "facturedate", "date de facture"],
        "amount":  ["amount", "montant", "total", "balance"],
        "paid":    ["paid", "status", "etat", "paiement"],
    })

    legacy_names: dict[str, list[str]] = field(default_factory=lambda: {
        "name":    ["Client", "ClientName"],
        "email":   ["Email"],
        "invoice": ["Invoice", "Facture"],
        "date":    ["InvoiceDate", "Date"],
        "amount":  ["Amount", "Montant"],
        "paid":    ["Paid"],
    })


# ===================================================================
# 3. Notification endpoint
# ===================================================================

@dataclass
class NotifierSettings:
    """Where reminders are posted.  The endpoint owns SMTP delivery."""
    endpoint_url: str = ""        # set via env var INVOICE_NOTIFIER_ENDPOINT
    timeout_seconds: float = 10.0
    # The endpoint silently truncates larger batches.
    max_items_hint: int = 100

    def __post_init__(self):
        self.endpoint_url = (
            self.endpoint_url
            or os.environ.get("INVOICE_NOTIFIER_ENDPOINT", "")
            or "http://localhost:3000/api/send-reminders"
        )


# ===================================================================
# 4. Message template
# ===================================================================

@dataclass
class MessageConfig:
    """Reminder text.  ``template_file`` wins over ``template`` when set."""
    template: str = ""            # empty -> payload.DEFAULT_MESSAGE_TEMPLATE
    template_file: str = ""

    @property
    def resolved_template_file(self) -> Path | None:
        if not self.template_file:
            return None
        p = Path(self.template_file)
        if not p.is_absolute():
            p = PROJECT_ROOT / p
        return p


# ===================================================================
# 5. Output
# ===================================================================

@dataclass
class OutputConfig:
    """Where the overdue export is written."""
    export_dir: str = "output"
    export_filename: str = "overdue.xlsx"

    @property
    def export_path(self) -> Path:
        d = Path(self.export_dir)
        if not d.is_absolute():
            d = PROJECT_ROOT / d
        return d / self.export_filename


# ===================================================================
# Master Config
# ===================================================================

@dataclass
class NotifierConfig:
    """Top-level configuration container for the invoice notifier."""
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    notifier: NotifierSettings = field(default_factory=NotifierSettings)
    message: MessageConfig = field(default_factory=MessageConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


# ===================================================================
# YAML Loading
# ===================================================================

def _apply_yaml_to_config(cfg: NotifierConfig, data: dict) -> None:
    """Apply a parsed YAML dict onto a NotifierConfig instance."""

    # --- column synonyms merge per field instead of replacing the table ---
    columns = data.get("columns")
    if isinstance(columns, dict):
        for attr in ("synonyms", "legacy_names"):
            overrides = columns.get(attr)
            if isinstance(overrides, dict):
                table = getattr(cfg.columns, attr)
                for logical_field, names in overrides.items():
                    table[logical_field] = [str(n) for n in (names or [])]

    _section_map = {
        "classification": cfg.classification,
        "notifier": cfg.notifier,
        "message": cfg.message,
        "output": cfg.output,
    }

    for section_key, section_obj in _section_map.items():
        if section_key in data and isinstance(data[section_key], dict):
            for attr, val in data[section_key].items():
                # Blank YAML values keep the default (and its env override).
                if val is None or val == "":
                    continue
                if hasattr(section_obj, attr):
                    setattr(section_obj, attr, val)


def get_config(yaml_path: Optional[str | Path] = None) -> NotifierConfig:
    """Build a NotifierConfig, optionally overlaying values from a YAML file.

    Args:
        yaml_path: Path to a config.yaml file.  If None, looks for the
                   default config.yaml at the project root.  If that file
                   doesn't exist, returns pure defaults.

    Returns:
        Fully populated NotifierConfig instance.

    Raises:
        FileNotFoundError: If an explicit ``yaml_path`` does not exist.
    """
    cfg = NotifierConfig()

    if yaml_path:
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        _apply_yaml_to_config(cfg, data)

    return cfg
