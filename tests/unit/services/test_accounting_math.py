"""Tests for invoice terms, aging, statements, payments and settlement totals."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.core.exceptions import ValidationError
from app.services.accounting.invoice_service import (
    aging_bucket,
    build_aging,
    build_statement_lines,
    line_amount,
    payment_terms_days,
)
from app.services.accounting.payment_service import payment_status, reopened_invoice_status
from app.services.accounting.settlement_service import settlement_totals, summarize_payables

AS_OF = date(2024, 6, 30)


class TestPaymentTerms:
    @pytest.mark.parametrize(
        "terms,days",
        [("NET30", 30), ("net15", 15), ("NET0", 0), ("DUE_ON_RECEIPT", 0), ("COD", 0), (None, 30)],
    )
    def test_known_terms(self, terms, days):
        assert payment_terms_days(terms) == days

    @pytest.mark.parametrize("terms", ["NETX", "WEEKLY", "2/10 NET30"])
    def test_unknown_terms_are_rejected(self, terms):
        with pytest.raises(ValidationError):
            payment_terms_days(terms)


def test_line_amount_rounds_half_up():
    assert line_amount(Decimal("2.5"), 101) == 253
    assert line_amount(Decimal("1.333"), 300) == 400
    assert line_amount(Decimal("1"), 185000) == 185000


@pytest.mark.parametrize(
    "due,bucket",
    [
        (date(2024, 7, 15), "current"),
        (AS_OF, "current"),
        (date(2024, 6, 29), "days_1_30"),
        (date(2024, 5, 31), "days_1_30"),
        (date(2024, 5, 30), "days_31_60"),
        (date(2024, 4, 1), "days_61_90"),
        (date(2024, 3, 31), "days_90_plus"),
    ],
)
def test_aging_bucket_boundaries(due, bucket):
    assert aging_bucket(due, AS_OF) == bucket


def test_build_aging_groups_by_customer_and_sorts_by_balance():
    acme, globex = uuid4(), uuid4()
    invoices = [
        SimpleNamespace(company_id=acme, company=SimpleNamespace(name="Acme"), due_date=date(2024, 7, 10),
                        balance_due_cents=1000),
        SimpleNamespace(company_id=acme, company=SimpleNamespace(name="Acme"), due_date=date(2024, 6, 15),
                        balance_due_cents=500),
        SimpleNamespace(company_id=globex, company=None, due_date=date(2024, 3, 1), balance_due_cents=3000),
        SimpleNamespace(company_id=globex, company=None, due_date=date(2024, 3, 1), balance_due_cents=0),
    ]

    report = build_aging(invoices, AS_OF)

    assert report.totals == {
        "current": 1000,
        "days_1_30": 500,
        "days_31_60": 0,
        "days_61_90": 0,
        "days_90_plus": 3000,
        "total": 4500,
    }
    assert [row.company_id for row in report.customers] == [globex, acme]
    assert report.customers[1].company_name == "Acme"
    assert report.customers[1].total == 1500
    assert report.customers[0].company_name is None


def test_statement_lines_keep_running_balance():
    invoices = [
        SimpleNamespace(invoice_date=date(2024, 5, 10), invoice_number="INV-000002", total_cents=300),
        SimpleNamespace(invoice_date=date(2024, 5, 1), invoice_number="INV-000001", total_cents=5000),
    ]
    payments = [SimpleNamespace(payment_date=date(2024, 5, 1), payment_number="PMT-000001", amount_cents=2000)]

    lines = build_statement_lines(invoices, payments, opening_balance=1000)

    assert [(l.reference, l.balance_cents) for l in lines] == [
        ("INV-000001", 6000),
        ("PMT-000001", 4000),
        ("INV-000002", 4300),
    ]
    assert lines[1].type == "PAYMENT"
    assert lines[1].payments_cents == 2000
    assert lines[1].charges_cents == 0


def test_statement_without_activity_is_empty():
    assert build_statement_lines([], [], opening_balance=500) == []


@pytest.mark.parametrize("unapplied,status", [(0, "APPLIED"), (400, "PARTIAL"), (1000, "RECEIVED")])
def test_payment_status(unapplied, status):
    assert payment_status(1000, unapplied) == status


class TestReopenedInvoiceStatus:
    def test_partly_paid_invoice_is_partial(self):
        invoice = SimpleNamespace(amount_paid_cents=100, due_date=date(2024, 1, 1))
        assert reopened_invoice_status(invoice, AS_OF) == "PARTIAL"

    def test_unpaid_past_due_invoice_is_overdue(self):
        invoice = SimpleNamespace(amount_paid_cents=0, due_date=date(2024, 6, 1))
        assert reopened_invoice_status(invoice, AS_OF) == "OVERDUE"

    def test_unpaid_invoice_not_yet_due_is_sent(self):
        invoice = SimpleNamespace(amount_paid_cents=0, due_date=AS_OF)
        assert reopened_invoice_status(invoice, AS_OF) == "SENT"


def test_settlement_totals_treat_negative_lines_as_deductions():
    lines = [
        SimpleNamespace(amount_cents=200_000),
        SimpleNamespace(amount_cents=15_000),
        SimpleNamespace(amount_cents=-50_000),
    ]

    assert settlement_totals(lines) == {
        "gross_amount_cents": 215_000,
        "deductions_cents": 50_000,
        "net_amount_cents": 165_000,
    }


def test_payables_summary_buckets_by_due_date():
    settlements = [
        SimpleNamespace(net_amount_cents=1000, amount_paid_cents=0, due_date=date(2024, 6, 1)),
        SimpleNamespace(net_amount_cents=2000, amount_paid_cents=None, due_date=AS_OF),
        SimpleNamespace(net_amount_cents=3000, amount_paid_cents=500, due_date=date(2024, 7, 30)),
    ]

    summary = summarize_payables(settlements, AS_OF)

    assert (summary.overdue.count, summary.overdue.amount_cents) == (1, 1000)
    assert (summary.due_today.count, summary.due_today.amount_cents) == (1, 2000)
    assert (summary.upcoming.count, summary.upcoming.amount_cents) == (1, 2500)
    assert summary.total_outstanding_cents == 5500
