"""Invoice Notifier -- Command Line Entry Point.

Runs the reminder workflow end to end:

    1. Load configuration (config.yaml or defaults)
    2. Import the spreadsheet and classify every row
    3. Apply exclusions given on the command line
    4. Print the preview table and the eligible count
    5. Optionally post the eligible set to the reminder endpoint
    6. Optionally export the eligible set to overdue.xlsx

Usage::

    invoice-notifier invoices.xlsx
    invoice-notifier invoices.csv --threshold 45 --exclude 3 7
    invoice-notifier invoices.xlsx --send --endpoint https://billing.example.com/api/send-reminders
    invoice-notifier invoices.xlsx --export output/overdue.xlsx
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from typing import Optional, Sequence

from .config import get_config
from .controller import ReminderController
from .exporter import EXPORT_FILENAME
from .models import InvoiceRecord
from .notifier import ReminderClient
from .payload import load_template

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Preview printing
# ---------------------------------------------------------------------------

_PREVIEW_COLUMNS = (
    ("#", 4),
    ("Client", 24),
    ("Email", 28),
    ("Invoice", 12),
    ("Date", 10),
    ("Amount", 12),
    ("Days", 5),
    ("Excl", 4),
)


def _truncate(value: str, width: int) -> str:
    return value if len(value) <= width else value[: width - 1] + "~"


def format_preview(records: Sequence[InvoiceRecord]) -> str:
    """Fixed-width table of records, one line each."""
    header = "  ".join(f"{name:<{width}s}" for name, width in _PREVIEW_COLUMNS)
    lines = [header, "-" * len(header)]
    for r in records:
        cells = (
            str(r.id),
            r.client_name,
            r.email,
            r.invoice_number,
            r.display_date,
            r.amount,
            "" if r.age_days is None else str(r.age_days),
            "x" if r.excluded else "",
        )
        lines.append("  ".join(
            f"{_truncate(cell, width):<{width}s}"
            for cell, (_, width) in zip(cells, _PREVIEW_COLUMNS)
        ))
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _parse_date_arg(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got '{value}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invoice-notifier",
        description="Invoice Notifier - flag overdue invoices and send reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  invoice-notifier invoices.xlsx\n"
            "  invoice-notifier invoices.csv --threshold 45 --exclude 3 7\n"
            "  invoice-notifier invoices.xlsx --send\n"
            "  invoice-notifier invoices.xlsx --export\n"
        ),
    )
    parser.add_argument("file", help="Invoice spreadsheet (.xlsx or .csv)")
    parser.add_argument(
        "--threshold",
        default=None,
        help="Days after the invoice date before it is overdue (default: config, 30)",
    )
    parser.add_argument(
        "--today",
        type=_parse_date_arg,
        default=None,
        help="Reference date YYYY-MM-DD for ages (default: today)",
    )
    parser.add_argument(
        "--exclude",
        type=int,
        nargs="+",
        default=[],
        metavar="ID",
        help="Row ids to leave out of the reminders",
    )
    parser.add_argument(
        "--exclude-all",
        action="store_true",
        help="Exclude every overdue row (combine with --include to pick a few)",
    )
    parser.add_argument(
        "--include",
        type=int,
        nargs="+",
        default=[],
        metavar="ID",
        help="Row ids to keep when --exclude-all is given",
    )
    parser.add_argument(
        "--show-all",
        action="store_true",
        help="Preview every row, not only overdue ones",
    )
    parser.add_argument(
        "--template-file",
        default=None,
        help="Message template with {{name}}, {{invoice}}, {{amount}}, {{days}}",
    )
    parser.add_argument(
        "--send",
        action="store_true",
        help="Post the eligible rows to the reminder endpoint",
    )
    parser.add_argument(
        "--endpoint",
        default=None,
        help="Reminder endpoint URL (overrides config)",
    )
    parser.add_argument(
        "--export",
        nargs="?",
        const="",
        default=None,
        metavar="PATH",
        help=f"Write the eligible rows to an xlsx file (default name: {EXPORT_FILENAME})",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: project root config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    return parser


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    """Execute the workflow for parsed arguments.  Returns the exit code."""
    config = get_config(args.config)
    if args.endpoint:
        config.notifier.endpoint_url = args.endpoint

    template = load_template(args.template_file) if args.template_file else None
    controller = ReminderController(
        config=config,
        client=ReminderClient(settings=config.notifier),
        template=template,
    )

    result = controller.import_file(
        args.file, threshold_days=args.threshold, today=args.today,
    )
    if result is None:
        print(f"\nERROR: {controller.feedback}")
        return 1

    result.print_summary()

    selection = controller.selection
    if args.exclude_all:
        selection.set_all_overdue_excluded(True)
        for record_id in args.include:
            selection.set_excluded(record_id, False)
    for record_id in args.exclude:
        if not selection.set_excluded(record_id, True):
            logger.warning("Ignoring --exclude %s: no such row", record_id)

    shown = selection.records if args.show_all else selection.overdue_records()
    print()
    print(format_preview(shown))

    eligible = selection.eligible_for_notification()
    print()
    print(f"{len(eligible)} of {len(selection.overdue_records())} overdue rows "
          f"eligible for a reminder.")
    skip_counts = selection.skip_counts()
    if skip_counts:
        print("Not eligible:")
        for reason, count in sorted(skip_counts.items(), key=lambda x: -x[1]):
            print(f"  {reason.value:<40s}: {count}")

    exit_code = 0

    if args.send:
        send_result = controller.send_reminders()
        print(f"\n{controller.feedback}")
        if not send_result.success:
            exit_code = 1

    if args.export is not None:
        controller.export(args.export or None)
        print(f"\n{controller.feedback}")

    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 = success, 1 = error).
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        return run(args)
    except FileNotFoundError as exc:
        logger.error("File not found: %s", exc)
        print(f"\nERROR: {exc}")
        return 1
    except ValueError as exc:
        logger.error("Data error: %s", exc)
        print(f"\nERROR: {exc}")
        return 1
    except Exception as exc:
        logger.exception("Unexpected error")
        print(f"\nUNEXPECTED ERROR: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
