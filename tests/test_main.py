"""Tests for the invoice-notifier command line."""

from datetime import date

import httpx
import pytest
from openpyxl import load_workbook

from invoice_notifier.main import build_parser, format_preview, main
from invoice_notifier.notifier import ReminderClient

CSV = (
    "Client,Email,Invoice,Date,Amount\n"
    "Acme,ap@acme.com,F-1,2024-04-01,100\n"
    "Globex,billing@globex.com,F-2,2024-06-25,200\n"
    "Umbrella,ap@umbrella.com,F-3,2024-05-15,300\n"
)


@pytest.fixture
def sheet(tmp_path):
    path = tmp_path / "invoices.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"output:\n  export_dir: {tmp_path / 'out'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def endpoint(monkeypatch):
    """Route every ReminderClient built by the CLI through a mock transport."""
    requests = []
    state = {"status": 200, "body": {"success": True, "sent": 2}}

    def handler(request):
        requests.append(request)
        return httpx.Response(state["status"], json=state["body"])

    original_init = ReminderClient.__init__

    def patched_init(self, *args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        original_init(self, *args, **kwargs)

    monkeypatch.setattr(ReminderClient, "__init__", patched_init)
    return requests, state


def _run(sheet, config_file, *extra):
    return main([str(sheet), "--today", "2024-06-30", "--config", str(config_file), *extra])


# ============================================================================
# Argument parsing
# ============================================================================

class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(["invoices.xlsx"])
        assert args.file == "invoices.xlsx"
        assert args.threshold is None
        assert args.exclude == []
        assert args.export is None
        assert args.send is False

    def test_export_without_path(self):
        assert build_parser().parse_args(["x.csv", "--export"]).export == ""

    def test_export_with_path(self):
        assert build_parser().parse_args(["x.csv", "--export", "out.xlsx"]).export == "out.xlsx"

    def test_today(self):
        assert build_parser().parse_args(["x.csv", "--today", "2024-01-31"]).today == date(2024, 1, 31)

    def test_bad_today(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["x.csv", "--today", "31/01/2024"])

    def test_multiple_excludes(self):
        assert build_parser().parse_args(["x.csv", "--exclude", "3", "7"]).exclude == [3, 7]


# ============================================================================
# Workflow
# ============================================================================

class TestRun:

    def test_preview_only(self, sheet, config_file, endpoint, capsys):
        requests, _ = endpoint
        assert _run(sheet, config_file) == 0
        out = capsys.readouterr().out
        assert "Import Summary" in out
        assert "2 of 2 overdue rows eligible for a reminder." in out
        assert requests == []

    def test_threshold_flag(self, sheet, config_file, endpoint, capsys):
        assert _run(sheet, config_file, "--threshold", "60") == 0
        assert "1 of 1 overdue rows eligible" in capsys.readouterr().out

    def test_exclude(self, sheet, config_file, endpoint, capsys):
        assert _run(sheet, config_file, "--exclude", "1", "99") == 0
        out = capsys.readouterr().out
        assert "1 of 2 overdue rows eligible" in out
        assert "Excluded by the user" in out

    def test_exclude_all_with_include(self, sheet, config_file, endpoint, capsys):
        assert _run(sheet, config_file, "--exclude-all", "--include", "3") == 0
        assert "1 of 2 overdue rows eligible" in capsys.readouterr().out

    def test_send(self, sheet, config_file, endpoint, capsys):
        requests, _ = endpoint
        assert _run(sheet, config_file, "--send") == 0
        assert len(requests) == 1
        assert "Send complete. 2 reminder(s) sent." in capsys.readouterr().out

    def test_send_failure_exit_code(self, sheet, config_file, endpoint, capsys):
        _, state = endpoint
        state["status"] = 500
        state["body"] = {"error": "SMTP down"}
        assert _run(sheet, config_file, "--send") == 1
        assert "Send failed: SMTP down" in capsys.readouterr().out

    def test_endpoint_override(self, sheet, config_file, endpoint):
        requests, _ = endpoint
        _run(sheet, config_file, "--send", "--endpoint", "http://other.test/hook")
        assert str(requests[0].url) == "http://other.test/hook"

    def test_template_file(self, sheet, config_file, endpoint, tmp_path):
        requests, _ = endpoint
        template = tmp_path / "t.txt"
        template.write_text("Pay {{invoice}} please", encoding="utf-8")
        _run(sheet, config_file, "--send", "--template-file", str(template))
        assert b"Pay F-1 please" in requests[0].content

    def test_export_default_path(self, sheet, config_file, endpoint, tmp_path):
        assert _run(sheet, config_file, "--export") == 0
        path = tmp_path / "out" / "overdue.xlsx"
        rows = list(load_workbook(path)["overdue"].iter_rows(values_only=True))
        assert [row[2] for row in rows[1:]] == ["F-1", "F-3"]

    def test_export_explicit_path(self, sheet, config_file, endpoint, tmp_path):
        target = tmp_path / "custom.xlsx"
        assert _run(sheet, config_file, "--export", str(target)) == 0
        assert target.exists()

    def test_missing_file(self, tmp_path, config_file, capsys):
        assert _run(tmp_path / "nope.csv", config_file) == 1
        assert "ERROR" in capsys.readouterr().out

    def test_empty_file(self, tmp_path, config_file, capsys):
        empty = tmp_path / "empty.csv"
        empty.write_bytes(b"")
        assert _run(empty, config_file) == 1
        assert "empty or unreadable" in capsys.readouterr().out

    def test_missing_config(self, sheet, tmp_path):
        assert main([str(sheet), "--config", str(tmp_path / "missing.yaml")]) == 1


# ============================================================================
# Preview table
# ============================================================================

class TestFormatPreview:

    def test_rows(self, make_record):
        text = format_preview([make_record(1), make_record(2, excluded=True)])
        lines = text.splitlines()
        assert lines[0].startswith("#")
        assert len(lines) == 4
        assert "client2@example.com" in lines[3]
        assert lines[3].rstrip().endswith("x")

    def test_long_values_truncated(self, make_record):
        text = format_preview([make_record(1, client_name="A" * 60)])
        assert "A" * 60 not in text
        assert "~" in text
