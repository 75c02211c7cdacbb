"""
Credit sale repayments.

Status is a function of the running total, never set directly:

    amount_paid == 0            -> pending
    0 < amount_paid < amount_due -> partial
    amount_paid >= amount_due   -> paid

Payments only add, so a record moves pending -> partial -> paid and never back.
A payment that would take amount_paid above amount_due is rejected.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from gcdl.app.db.models.core_types import PaymentStatus
from gcdl.app.db.models.models_v1 import CreditSale, Sale
from gcdl.app.db.session import atomic
from gcdl.app.logging_config import get_logger
from gcdl.services.access import (
    Identity,
    Operation,
    authorize,
    ensure_row_access,
    resolve_branch_scope,
)
from gcdl.services.errors import NotFound, ValidationError
from gcdl.services.filters import FilterColumns, ListFilters, apply_filters

log = get_logger("credit")


def payment_status_for(amount_paid: Decimal, amount_due: Decimal) -> PaymentStatus:
    amount_paid = Decimal(amount_paid)
    if amount_paid >= Decimal(amount_due):
        return PaymentStatus.paid
    if amount_paid > 0:
        return PaymentStatus.partial
    return PaymentStatus.pending


def record_payment(
    db: Session,
    identity: Identity,
    credit_id: int,
    amount: Decimal,
) -> CreditSale:
    authorize(identity, Operation.credit_record_payment)

    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationError("Valid payment amount is required")

    with atomic(db):
        credit = db.execute(
            select(CreditSale)
            .where(CreditSale.id == credit_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not credit:
            raise NotFound("Credit record not found")

        branch_id = db.execute(select(Sale.branch_id).where(Sale.id == credit.sale_id)).scalar_one()
        ensure_row_access(identity, branch_id)

        new_paid = Decimal(credit.amount_paid) + amount
        if new_paid > Decimal(credit.amount_due):
            outstanding = Decimal(credit.amount_due) - Decimal(credit.amount_paid)
            raise ValidationError(f"Payment exceeds amount due (outstanding={outstanding})")

        credit.amount_paid = new_paid
        credit.payment_status = payment_status_for(new_paid, credit.amount_due)
        db.flush()

    log.info(
        "credit.payment_recorded",
        extra={
            "credit_id": credit.id,
            "amount": amount,
            "amount_paid": credit.amount_paid,
            "payment_status": credit.payment_status,
            "user_id": identity.user_id,
        },
    )
    return credit


def get_credit(db: Session, identity: Identity, credit_id: int) -> CreditSale:
    authorize(identity, Operation.read)
    credit = db.get(CreditSale, credit_id)
    if not credit:
        raise NotFound("Credit record not found")
    ensure_row_access(identity, credit.sale.branch_id)
    return credit


def list_credits(
    db: Session,
    identity: Identity,
    *,
    branch_id: int | None = None,
    payment_status: PaymentStatus | None = None,
    overdue: bool = False,
    today: date | None = None,
) -> list[CreditSale]:
    authorize(identity, Operation.read)
    filters = ListFilters(
        branch_id=resolve_branch_scope(identity, branch_id),
        payment_status=payment_status,
        overdue=overdue,
        today=today,
    )
    stmt = apply_filters(
        select(CreditSale)
        .join(Sale, Sale.id == CreditSale.sale_id)
        .order_by(CreditSale.due_date.asc(), CreditSale.id.asc()),
        FilterColumns(
            branch=Sale.branch_id,
            payment_status=CreditSale.payment_status,
            due_date=CreditSale.due_date,
        ),
        filters,
    )
    return list(db.execute(stmt).scalars().all())


def credit_stats(
    db: Session,
    identity: Identity,
    *,
    branch_id: int | None = None,
    today: date | None = None,
) -> dict:
    authorize(identity, Operation.read)
    today = today or date.today()

    def _count(cond):
        return func.coalesce(func.sum(case((cond, 1), else_=0)), 0)

    stmt = apply_filters(
        select(
            func.count(CreditSale.id).label("total_credits"),
            func.coalesce(func.sum(CreditSale.amount_due), 0).label("total_amount_due"),
            func.coalesce(func.sum(CreditSale.amount_paid), 0).label("total_amount_paid"),
            _count(CreditSale.payment_status == PaymentStatus.pending).label("pending_count"),
            _count(CreditSale.payment_status == PaymentStatus.partial).label("partial_count"),
            _count(CreditSale.payment_status == PaymentStatus.paid).label("paid_count"),
            _count(
                (CreditSale.due_date < today) & (CreditSale.payment_status != PaymentStatus.paid)
            ).label("overdue_count"),
        ).join(Sale, Sale.id == CreditSale.sale_id),
        FilterColumns(branch=Sale.branch_id),
        ListFilters(branch_id=resolve_branch_scope(identity, branch_id)),
    )
    row = db.execute(stmt).one()

    total_due = Decimal(row.total_amount_due)
    total_paid = Decimal(row.total_amount_paid)
    return {
        "total_credits": int(row.total_credits),
        "total_amount_due": total_due,
        "total_amount_paid": total_paid,
        "total_outstanding": total_due - total_paid,
        "pending_count": int(row.pending_count),
        "partial_count": int(row.partial_count),
        "paid_count": int(row.paid_count),
        "overdue_count": int(row.overdue_count),
    }
