"""Session controller.

Single owner of the current import.  Each successful import builds a new
``SelectionState`` and swaps it in with one assignment; a failed import
leaves the previous session in place.  Every user-visible outcome is
written to ``feedback`` as one line of text.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

from .config import NotifierConfig, get_config
from .data_loader import LoadResult, Source, SpreadsheetError, load_records
from .exporter import export_overdue
from .models import SendResult
from .notifier import ReminderClient
from .payload import DEFAULT_MESSAGE_TEMPLATE, load_template
from .selection import SelectionState

logger = logging.getLogger(__name__)

NO_RECIPIENTS = "No eligible recipients to send to."


class ReminderController:
    """Import -> review -> send / export workflow for one user session."""

    def __init__(
        self,
        config: NotifierConfig | None = None,
        client: ReminderClient | None = None,
        template: str | None = None,
    ) -> None:
        self.config = config or get_config()
        self.client = client or ReminderClient(settings=self.config.notifier)
        self.template = template if template is not None else self._configured_template()
        self.selection = SelectionState()
        self.last_load: LoadResult | None = None
        self.feedback: str = ""

    def _configured_template(self) -> str:
        template_file = self.config.message.resolved_template_file
        if template_file is not None:
            return load_template(template_file)
        return self.config.message.template or DEFAULT_MESSAGE_TEMPLATE

    # -------------------------------------------------------------------
    # Import
    # -------------------------------------------------------------------

    def import_file(
        self,
        source: Source,
        *,
        threshold_days: Any = None,
        today: Optional[date] = None,
        filename: str | None = None,
    ) -> LoadResult | None:
        """Load a sheet and replace the session with its records.

        Spreadsheet problems become feedback and return None.  A missing
        path still raises ``FileNotFoundError``.
        """
        try:
            result = load_records(
                source,
                threshold_days=threshold_days,
                today=today,
                filename=filename,
                config=self.config,
            )
        except SpreadsheetError as exc:
            logger.warning("Import failed: %s", exc)
            self.feedback = str(exc)
            return None

        self.selection = SelectionState(result.records)
        self.last_load = result
        overdue = len(result.overdue_records)
        self.feedback = (
            f"{len(result.records)} rows imported, {overdue} overdue "
            f"(> {result.threshold_days} days)."
        )
        return result

    # -------------------------------------------------------------------
    # Send
    # -------------------------------------------------------------------

    def send_reminders(self) -> SendResult:
        """Post the eligible set as one batch.

        The selection is left untouched whatever the outcome so a failed
        send can simply be retried.
        """
        eligible = self.selection.eligible_for_notification()
        if not eligible:
            self.feedback = NO_RECIPIENTS
            return SendResult(success=False, error=NO_RECIPIENTS)

        logger.info(
            "Sending %d reminders to %s", len(eligible), self.client.endpoint_url,
        )
        result = self.client.send(eligible, self.template)
        self.feedback = result.feedback
        return result

    # -------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------

    def export(self, path: str | Path | None = None) -> Path | None:
        """Write the eligible set to ``overdue.xlsx``.

        Returns the written path, or None (with feedback) when there is
        nothing to export.
        """
        target = Path(path) if path else self.config.output.export_path
        try:
            written = export_overdue(self.selection.eligible_for_notification(), target)
        except ValueError as exc:
            self.feedback = str(exc)
            return None
        self.feedback = f"Exported to {written}"
        return written
