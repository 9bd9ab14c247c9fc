"""
Tests for reconciliation of stated invoice totals against line items plus freight.
"""

import pytest

from invoice_extractor.models.invoice import InvoiceLineItem
from invoice_extractor.processing.validator import calculated_total, reconcile


def test_discrepancy_at_tolerance_is_not_flagged(make_record):
    """100.00 vs 80.00 + 19.99 is off by exactly one cent, which is allowed"""
    record = make_record(invoice_total=100.0, line_totals=(80.0,), total_freight=19.99)

    result = reconcile(record)

    assert result.validation_error is None
    assert result is record


def test_discrepancy_above_tolerance_is_flagged(make_record):
    """100.00 vs 80.00 + 15.00 is off by 5.00"""
    record = make_record(invoice_total=100.0, line_totals=(80.0,), total_freight=15.0)

    result = reconcile(record)

    assert result.validation_error is not None
    assert "$100.00" in result.validation_error
    assert "$95.00" in result.validation_error
    assert "$5.00" in result.validation_error
    assert result.validation_error.startswith("Warning: Invoice total of $100.00")


def test_flagging_returns_copy_and_leaves_original(make_record):
    record = make_record(invoice_total=100.0, line_totals=(10.0,))

    result = reconcile(record)

    assert record.validation_error is None
    assert result.validation_error is not None
    assert result.model_dump(exclude={"validation_error"}) == record.model_dump(
        exclude={"validation_error"}
    )


@pytest.mark.parametrize(
    "total, line_totals, freight, flagged",
    [
        (100.0, (50.0, 50.0), None, False),
        (100.0, (50.0, 50.0), 0.0, False),
        (100.0, (50.0, 49.99), None, False),
        (100.0, (50.0, 49.98), None, True),
        (0.1 + 0.2, (0.1, 0.2), None, False),
        (1234.56, (1000.0, 200.0), 34.56, False),
        (1234.56, (1000.0, 200.0), 34.54, True),
        (50.0, (60.0,), None, True),
    ],
)
def test_flagged_iff_discrepancy_exceeds_one_cent(make_record, total, line_totals, freight, flagged):
    record = make_record(invoice_total=total, line_totals=line_totals, total_freight=freight)

    assert (reconcile(record).validation_error is not None) is flagged


def test_missing_invoice_total_skips_validation(make_record):
    record = make_record(invoice_total=None, line_totals=(999.0,))

    assert reconcile(record).validation_error is None


def test_missing_line_items_skips_validation(make_record):
    record = make_record(invoice_total=100.0, line_totals=None)

    assert reconcile(record).validation_error is None


def test_empty_line_items_are_still_validated(make_record):
    """An empty list is present, so only freight counts toward the total"""
    record = make_record(invoice_total=100.0, line_totals=(), total_freight=100.0)

    assert reconcile(record).validation_error is None


def test_missing_line_total_counts_as_zero(make_record):
    record = make_record(invoice_total=30.0, line_totals=(30.0,))
    record = record.model_copy(
        update={"line_items": record.line_items + [InvoiceLineItem(description="No total")]}
    )

    assert float(calculated_total(record)) == 30.0
    assert reconcile(record).validation_error is None


def test_currency_symbol_is_configurable(make_record):
    record = make_record(invoice_total=100.0, line_totals=(90.0,))

    result = reconcile(record, symbol="R")

    assert "R100.00" in result.validation_error
    assert "R90.00" in result.validation_error
    assert "R10.00" in result.validation_error
