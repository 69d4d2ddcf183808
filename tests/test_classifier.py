"""Tests for invoice_notifier.classifier -- the overdue rule.

Covers:
- Threshold boundary (strictly greater than)
- Paid flag handling
- Undated records
- Threshold coercion
- Idempotence and batch classification
- Summary counts
"""

from datetime import date, timedelta

import pytest

from invoice_notifier.classifier import (
    classify,
    classify_all,
    coerce_threshold,
    compute_age_days,
    is_affirmative,
    summarize,
)

TODAY = date(2024, 6, 30)


def _dated(make_record, age_days, record_id=1, **overrides):
    return make_record(
        record_id,
        invoice_date=TODAY - timedelta(days=age_days),
        **overrides,
    )


# ============================================================================
# Boundary tests
# ============================================================================

class TestThresholdBoundary:

    @pytest.mark.parametrize("age,expected", [
        (0, False),
        (29, False),
        (30, False),     # exactly the threshold: not overdue
        (31, True),      # one day past
        (365, True),
    ])
    def test_default_threshold(self, make_record, age, expected):
        c = classify(_dated(make_record, age), 30, TODAY)
        assert c.age_days == age
        assert c.overdue is expected

    @pytest.mark.parametrize("threshold", [0, 1, 15, 45, 90])
    def test_boundary_for_any_threshold(self, make_record, threshold):
        at = classify(_dated(make_record, threshold), threshold, TODAY)
        past = classify(_dated(make_record, threshold + 1), threshold, TODAY)
        assert at.overdue is False
        assert past.overdue is True

    def test_future_invoice_has_negative_age(self, make_record):
        c = classify(_dated(make_record, -5), 30, TODAY)
        assert c.age_days == -5
        assert c.overdue is False

    def test_undated_is_never_overdue(self, make_record):
        c = classify(make_record(invoice_date=None), 0, TODAY)
        assert c.age_days is None
        assert c.overdue is False


# ============================================================================
# Paid flag
# ============================================================================

class TestPaidFlag:

    @pytest.mark.parametrize("flag", ["yes", "Y", "  Yes ", "YES!", "y"])
    def test_affirmative_blocks_overdue(self, make_record, flag):
        c = classify(_dated(make_record, 90, paid_flag=flag), 30, TODAY)
        assert c.age_days == 90
        assert c.overdue is False

    @pytest.mark.parametrize("flag", ["", "no", "N", "paid", "TRUE", "FALSE", "non"])
    def test_non_affirmative_keeps_overdue(self, make_record, flag):
        c = classify(_dated(make_record, 90, paid_flag=flag), 30, TODAY)
        assert c.overdue is True

    @pytest.mark.parametrize("flag,expected", [
        ("yes", True),
        (" y", True),
        ("Yep", True),
        ("no", False),
        ("", False),
        (None, False),
        (True, False),   # renders as "True", does not start with y
    ])
    def test_is_affirmative(self, flag, expected):
        assert is_affirmative(flag) is expected

    def test_overdue_implies_age_above_threshold(self, make_record):
        """overdue => age > threshold; the converse fails only for paid rows."""
        records = [
            _dated(make_record, age, record_id=i, paid_flag=flag)
            for i, (age, flag) in enumerate(
                [(10, ""), (30, ""), (31, ""), (31, "yes"), (200, "no"), (200, "y")],
                start=1,
            )
        ]
        for record in classify_all(records, 30, TODAY):
            if record.overdue:
                assert record.age_days > 30
            elif record.age_days > 30:
                assert is_affirmative(record.paid_flag)


# ============================================================================
# Threshold coercion
# ============================================================================

class TestCoerceThreshold:

    @pytest.mark.parametrize("value,expected", [
        (45, 45),
        (0, 0),
        ("45", 45),
        (" 60 ", 60),
        (45.9, 45),
        ("45.9", 45),
        (-3, -3),
        (None, 30),
        ("", 30),
        ("abc", 30),
        ("nan", 30),
        (float("inf"), 30),
        (True, 30),
    ])
    def test_coerce(self, value, expected):
        assert coerce_threshold(value) == expected

    def test_non_numeric_threshold_uses_default(self, make_record):
        c = classify(_dated(make_record, 31), "soon", TODAY)
        assert c.threshold_days == 30
        assert c.overdue is True


# ============================================================================
# Idempotence and batches
# ============================================================================

class TestBatch:

    def test_classify_is_idempotent(self, make_record):
        record = _dated(make_record, 42)
        first = classify(record, 30, TODAY)
        second = classify(record, 30, TODAY)
        assert first == second

    def test_classify_does_not_modify_record(self, make_record):
        record = _dated(make_record, 42)
        classify(record, 30, TODAY)
        assert record.classification is None

    def test_classify_all_attaches_classification(self, make_record):
        records = [_dated(make_record, 10, 1), _dated(make_record, 40, 2)]
        result = classify_all(records, 30, TODAY)
        assert [r.overdue for r in result] == [False, True]
        assert all(r.classification.as_of == TODAY for r in result)
        assert all(r.classification.threshold_days == 30 for r in result)

    def test_reclassify_keeps_exclusion(self, make_record):
        record = _dated(make_record, 40, excluded=True)
        classify_all([record], 30, TODAY)
        classify_all([record], 60, TODAY)
        assert record.excluded is True
        assert record.overdue is False

    def test_defaults_to_today(self, make_record):
        record = make_record(invoice_date=date.today() - timedelta(days=31))
        assert classify(record).overdue is True

    def test_compute_age_days(self):
        assert compute_age_days(date(2024, 6, 1), TODAY) == 29
        assert compute_age_days(None, TODAY) is None


# ============================================================================
# Summary
# ============================================================================

class TestSummarize:

    def test_counts(self, make_record):
        records = classify_all([
            _dated(make_record, 10, 1),
            _dated(make_record, 40, 2),
            _dated(make_record, 40, 3, paid_flag="yes"),
            make_record(4, invoice_date=None),
        ], 30, TODAY)
        assert summarize(records) == {
            "total": 4,
            "dated": 3,
            "undated": 1,
            "overdue": 1,
            "paid": 1,
        }

    def test_empty(self):
        assert summarize([])["total"] == 0
