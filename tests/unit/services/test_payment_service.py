"""Tests for applying customer payments to invoices and reversing bounced ones."""

from datetime import date, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, InvalidStateTransitionError, ValidationError
from app.schemas.accounting import PaymentApplicationIn
from app.services.accounting.payment_service import PaymentService


def make_invoice(company_id, balance, status="SENT", paid=0, due_in_days=30):
    return SimpleNamespace(
        id=uuid4(),
        invoice_number=f"INV-{uuid4().hex[:6]}",
        company_id=company_id,
        status=status,
        amount_paid_cents=paid,
        balance_due_cents=balance,
        due_date=date.today() + timedelta(days=due_in_days),
    )


@pytest.fixture
def payment_setup(mock_session, tenant_id):
    company_id = uuid4()
    payment = SimpleNamespace(
        id=uuid4(),
        payment_number="PMT-00042",
        company_id=company_id,
        status="RECEIVED",
        amount_cents=150_000,
        unapplied_amount_cents=150_000,
        notes=None,
        applications=[],
    )
    full = make_invoice(company_id, 100_000)
    part = make_invoice(company_id, 80_000)

    mock_session.expire = MagicMock()
    service = PaymentService(mock_session, tenant_id)
    service.payment_repo = AsyncMock()
    service.payment_repo.get_detail.return_value = payment
    service.payment_repo.update_where.return_value = 1
    service.invoice_repo = AsyncMock()
    service.invoice_repo.get_many.return_value = [full, part]
    service.invoice_repo.update_where.return_value = 1
    service.application_repo = AsyncMock()
    return SimpleNamespace(service=service, payment=payment, full=full, part=part)


def status_writes(repo):
    return [call.kwargs["status"] for call in repo.update_where.call_args_list]


class TestApplyPayment:
    @pytest.mark.asyncio
    async def test_split_across_invoices(self, payment_setup, mock_session):
        s = payment_setup
        applications = [
            PaymentApplicationIn(invoice_id=s.full.id, amount_cents=100_000),
            PaymentApplicationIn(invoice_id=s.part.id, amount_cents=50_000),
        ]

        result = await s.service.apply_payment(s.payment.id, applications)

        assert result is s.payment
        assert status_writes(s.service.invoice_repo) == ["PAID", "PARTIAL"]
        created = [call.kwargs for call in s.service.application_repo.create.call_args_list]
        assert [(c["invoice_id"], c["amount_cents"]) for c in created] == [
            (s.full.id, 100_000),
            (s.part.id, 50_000),
        ]
        assert status_writes(s.service.payment_repo) == ["APPLIED"]
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_application_leaves_payment_partial(self, payment_setup):
        s = payment_setup

        await s.service.apply_payment(s.payment.id, [PaymentApplicationIn(invoice_id=s.part.id, amount_cents=80_000)])

        assert status_writes(s.service.invoice_repo) == ["PAID"]
        assert status_writes(s.service.payment_repo) == ["PARTIAL"]

    @pytest.mark.asyncio
    async def test_cannot_apply_more_than_unapplied(self, payment_setup, mock_session):
        s = payment_setup
        s.payment.unapplied_amount_cents = 40_000

        with pytest.raises(ValidationError):
            await s.service.apply_payment(
                s.payment.id, [PaymentApplicationIn(invoice_id=s.full.id, amount_cents=50_000)]
            )

        s.service.invoice_repo.update_where.assert_not_awaited()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cannot_exceed_invoice_balance(self, payment_setup):
        s = payment_setup

        with pytest.raises(ValidationError, match="balance"):
            await s.service.apply_payment(
                s.payment.id, [PaymentApplicationIn(invoice_id=s.part.id, amount_cents=90_000)]
            )

        s.service.application_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_customers_invoice_is_rejected(self, payment_setup):
        s = payment_setup
        s.full.company_id = uuid4()

        with pytest.raises(ValidationError, match="different customer"):
            await s.service.apply_payment(
                s.payment.id, [PaymentApplicationIn(invoice_id=s.full.id, amount_cents=10_000)]
            )

    @pytest.mark.asyncio
    async def test_invoice_paid_meanwhile_rolls_back(self, payment_setup, mock_session):
        s = payment_setup
        s.service.invoice_repo.update_where.return_value = 0

        with pytest.raises(ConflictError):
            await s.service.apply_payment(
                s.payment.id, [PaymentApplicationIn(invoice_id=s.full.id, amount_cents=10_000)]
            )

        mock_session.rollback.assert_awaited_once()
        s.service.payment_repo.update_where.assert_not_awaited()


class TestMarkBounced:
    @pytest.mark.asyncio
    async def test_bounce_reopens_invoices(self, payment_setup, mock_session):
        s = payment_setup
        overdue = make_invoice(s.payment.company_id, 0, status="PAID", paid=100_000, due_in_days=-5)
        partial = make_invoice(s.payment.company_id, 30_000, status="PAID", paid=80_000)
        s.payment.status = "APPLIED"
        s.payment.unapplied_amount_cents = 0
        s.payment.applications = [
            SimpleNamespace(id=uuid4(), invoice_id=overdue.id, amount_cents=100_000),
            SimpleNamespace(id=uuid4(), invoice_id=partial.id, amount_cents=50_000),
        ]
        s.service.invoice_repo.get_many.return_value = [overdue, partial]

        await s.service.mark_bounced(s.payment.id, reason="NSF")

        assert (overdue.amount_paid_cents, overdue.balance_due_cents, overdue.status) == (0, 100_000, "OVERDUE")
        assert (partial.amount_paid_cents, partial.balance_due_cents, partial.status) == (30_000, 80_000, "PARTIAL")
        assert s.service.application_repo.delete.await_count == 2
        kwargs = s.service.payment_repo.update_where.call_args.kwargs
        assert kwargs["status"] == "BOUNCED"
        assert kwargs["unapplied_amount_cents"] == 150_000
        assert kwargs["notes"] == "NSF"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bounced_payment_cannot_bounce_again(self, payment_setup):
        s = payment_setup
        s.payment.status = "BOUNCED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.mark_bounced(s.payment.id)

        s.service.payment_repo.update_where.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bounced_payment_cannot_be_applied(self, payment_setup):
        s = payment_setup
        s.payment.status = "BOUNCED"

        with pytest.raises(ValidationError):
            await s.service.apply_payment(
                s.payment.id, [PaymentApplicationIn(invoice_id=s.full.id, amount_cents=10_000)]
            )
