"""
Column Mapper

Infers which sheet header holds each logical invoice field.

Headers are matched by *substring*, not by exact name, so that sheets
exported from different tools ("Client Name", "E-mail", "Date de facture")
all resolve without configuration.  A field with no matching header is
left unmapped; row lookups then fall back to a short list of legacy
header names, then to an empty string.  Nothing here raises.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from .config import ColumnConfig
from .models import ColumnMapping, LogicalField

logger = logging.getLogger(__name__)


# Defaults come from the config dataclass so YAML overrides and the
# module-level API share one table.
_DEFAULTS = ColumnConfig()
DEFAULT_SYNONYMS: dict[str, list[str]] = _DEFAULTS.synonyms
LEGACY_NAMES: dict[str, list[str]] = _DEFAULTS.legacy_names

REQUIRED_FIELDS: tuple[LogicalField, ...] = (
    LogicalField.NAME,
    LogicalField.EMAIL,
    LogicalField.INVOICE,
    LogicalField.DATE,
)


def normalize_header(header: Any) -> str:
    """Trim and lowercase a header cell.  None becomes ``""``."""
    if header is None:
        return ""
    return str(header).strip().lower()


def map_columns(
    headers: Iterable[Any],
    synonyms: Optional[Mapping[str, list[str]]] = None,
    required: Iterable[LogicalField | str] = REQUIRED_FIELDS,
) -> ColumnMapping:
    """Map each logical field to the first header that contains a synonym.

    Args:
        headers: Header strings in original column order.
        synonyms: Per-field ordered candidate substrings.  Fields absent
            from this mapping use the built-in defaults.
        required: Fields reported in ``missing_required`` when unmatched.

    Returns:
        ColumnMapping with the original header text for every matched
        field.  One header may be chosen for several fields.

    Examples:
        >>> m = map_columns(["Invoice Date", "Client Name", "E-mail"])
        >>> m.header_for("date"), m.header_for("name"), m.header_for("email")
        ('Invoice Date', 'Client Name', 'E-mail')
    """
    original = [h for h in headers]
    normalized = [normalize_header(h) for h in original]

    table = dict(DEFAULT_SYNONYMS)
    if synonyms:
        table.update({k: list(v) for k, v in synonyms.items()})

    mapping = ColumnMapping()
    for logical_field in LogicalField:
        candidates = [c.lower() for c in table.get(logical_field.value, []) if c]
        chosen = None
        for idx, header in enumerate(normalized):
            if not header:
                continue
            if any(candidate in header for candidate in candidates):
                chosen = str(original[idx])
                break
        mapping.fields[logical_field] = chosen
        if chosen is None:
            mapping.unmatched.append(logical_field)

    required_fields = {LogicalField(f) for f in required}
    mapping.missing_required = [
        f for f in mapping.unmatched if f in required_fields
    ]

    logger.debug(
        "Column map: %s",
        {f.value: h for f, h in mapping.fields.items()},
    )
    return mapping


def cell_for(
    row: Mapping[str, Any],
    mapping: ColumnMapping,
    logical_field: LogicalField | str,
    legacy_names: Optional[Mapping[str, list[str]]] = None,
) -> Any:
    """Read the cell for a logical field from a ``{header: value}`` row.

    Lookup order: the mapped header, then each legacy header name, then
    ``""``.  A mapped header that is absent from this particular row (a
    ragged CSV line, for example) also falls through to the legacy names.
    """
    logical_field = LogicalField(logical_field)

    header = mapping.header_for(logical_field)
    if header is not None and header in row:
        value = row[header]
        if value is not None:
            return value

    names = (legacy_names or LEGACY_NAMES).get(logical_field.value, [])
    for name in names:
        if name in row and row[name] is not None:
            return row[name]

    return ""
