"""
Sales service.

create_sale writes, in one unit of work:
    1. the sale row
    2. the ``-tonnage`` stock debit (conditional UPDATE, see inventory.adjust_stock)
    3. the credit record when payment_type == credit

The sufficiency check runs twice: once on a locking read before any write (clean
400 without touching the sales table) and once inside the debit itself, which
is what actually protects stock from concurrent sales.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gcdl.app.db.models.core_types import PaymentStatus, PaymentType
from gcdl.app.db.models.models_v1 import CreditSale, Sale
from gcdl.app.db.session import atomic
from gcdl.app.logging_config import get_logger
from gcdl.services.access import (
    Identity,
    Operation,
    authorize,
    ensure_row_access,
    require_branch,
    resolve_branch_scope,
)
from gcdl.services.errors import InsufficientStock, NotFound, ValidationError
from gcdl.services.filters import FilterColumns, ListFilters, apply_filters
from gcdl.services.inventory import adjust_stock, lock_produce

log = get_logger("sales")

SALE_UPDATABLE_FIELDS = ("buyer_name", "buyer_contact", "tonnage", "amount_paid")


def create_sale(
    db: Session,
    identity: Identity,
    *,
    produce_id: int,
    branch_id: int,
    buyer_name: str,
    tonnage: Decimal,
    amount_paid: Decimal,
    payment_type: PaymentType,
    buyer_contact: str | None = None,
    buyer_national_id: str | None = None,
    buyer_location: str | None = None,
    amount_due: Decimal | None = None,
    due_date: date | None = None,
) -> Sale:
    authorize(identity, Operation.sale_create)
    branch_id = require_branch(identity, branch_id)

    tonnage = Decimal(tonnage)
    amount_paid = Decimal(amount_paid)
    payment_type = PaymentType(payment_type)
    if tonnage <= 0:
        raise ValidationError("Tonnage must be greater than 0")
    if amount_paid < 0:
        raise ValidationError("Amount paid must be 0 or greater")
    if payment_type == PaymentType.credit:
        if amount_due is None or Decimal(amount_due) <= 0:
            raise ValidationError("Amount due must be greater than 0 for a credit sale")
        if due_date is None:
            raise ValidationError("Valid due date is required for a credit sale")

    with atomic(db):
        produce = lock_produce(db, produce_id=produce_id, branch_id=branch_id)
        if Decimal(produce.current_stock) < tonnage:
            log.warning(
                "stock.insufficient",
                extra={
                    "produce_id": produce_id,
                    "branch_id": branch_id,
                    "available": produce.current_stock,
                    "requested": tonnage,
                },
            )
            raise InsufficientStock(available=produce.current_stock, requested=tonnage)

        sale = Sale(
            produce_id=produce_id,
            branch_id=branch_id,
            buyer_name=buyer_name,
            buyer_contact=buyer_contact,
            tonnage=tonnage,
            amount_paid=amount_paid,
            payment_type=payment_type,
            sales_agent_id=identity.user_id,
        )
        db.add(sale)
        db.flush()

        produce = adjust_stock(db, produce_id=produce_id, branch_id=branch_id, delta=-tonnage)

        if payment_type == PaymentType.credit:
            db.add(
                CreditSale(
                    sale_id=sale.id,
                    buyer_national_id=buyer_national_id,
                    buyer_location=buyer_location,
                    amount_due=Decimal(amount_due),
                    amount_paid=Decimal("0"),
                    due_date=due_date,
                    payment_status=PaymentStatus.pending,
                )
            )
            db.flush()

    db.refresh(sale)
    log.info(
        "sale.created",
        extra={
            "sale_id": sale.id,
            "produce_id": produce_id,
            "branch_id": branch_id,
            "tonnage": tonnage,
            "payment_type": payment_type,
            "current_stock": produce.current_stock,
            "user_id": identity.user_id,
        },
    )
    return sale


def get_sale(db: Session, identity: Identity, sale_id: int) -> Sale:
    authorize(identity, Operation.read)
    sale = db.get(Sale, sale_id)
    if not sale:
        raise NotFound("Sale not found")
    ensure_row_access(identity, sale.branch_id)
    return sale


def list_sales(
    db: Session,
    identity: Identity,
    *,
    branch_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_type: PaymentType | None = None,
) -> list[Sale]:
    authorize(identity, Operation.read)
    filters = ListFilters(
        branch_id=resolve_branch_scope(identity, branch_id),
        start_date=start_date,
        end_date=end_date,
        payment_type=payment_type,
    )
    stmt = apply_filters(
        select(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()),
        FilterColumns(
            branch=Sale.branch_id,
            created_at=Sale.created_at,
            payment_type=Sale.payment_type,
        ),
        filters,
    )
    return list(db.execute(stmt).scalars().all())


def _lock_sale(db: Session, sale_id: int) -> Sale:
    sale = db.execute(
        select(Sale)
        .where(Sale.id == sale_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not sale:
        raise NotFound("Sale not found")
    return sale


def update_sale(
    db: Session,
    identity: Identity,
    sale_id: int,
    changes: dict[str, Any],
) -> Sale:
    """
    Partial update of buyer/amount fields.

    A tonnage change is settled against stock like a procurement edit:
    raising it debits ``new - old`` (guarded), lowering it gives the difference back.
    """
    authorize(identity, Operation.sale_update)
    fields = {k: v for k, v in changes.items() if k in SALE_UPDATABLE_FIELDS and v is not None}
    if not fields:
        raise ValidationError("No valid fields to update")
    if "tonnage" in fields and Decimal(fields["tonnage"]) <= 0:
        raise ValidationError("Tonnage must be greater than 0")
    if "amount_paid" in fields and Decimal(fields["amount_paid"]) < 0:
        raise ValidationError("Amount paid must be 0 or greater")

    delta = Decimal("0")
    with atomic(db):
        sale = _lock_sale(db, sale_id)
        ensure_row_access(identity, sale.branch_id)

        if "tonnage" in fields:
            fields["tonnage"] = Decimal(fields["tonnage"])
            delta = Decimal(sale.tonnage) - fields["tonnage"]
            if delta != 0:
                adjust_stock(db, produce_id=sale.produce_id, branch_id=sale.branch_id, delta=delta)

        for key, value in fields.items():
            setattr(sale, key, value)
        db.flush()

    log.info(
        "sale.updated",
        extra={"sale_id": sale.id, "fields": sorted(fields), "stock_delta": delta, "user_id": identity.user_id},
    )
    return sale


def delete_sale(db: Session, identity: Identity, sale_id: int) -> None:
    """Give the tonnage back to stock, drop the credit record, drop the sale."""
    authorize(identity, Operation.sale_delete)

    with atomic(db):
        sale = _lock_sale(db, sale_id)
        ensure_row_access(identity, sale.branch_id)

        tonnage = Decimal(sale.tonnage)
        adjust_stock(db, produce_id=sale.produce_id, branch_id=sale.branch_id, delta=tonnage)

        credit = sale.credit
        if credit is not None:
            db.delete(credit)
        db.delete(sale)

    log.info("sale.deleted", extra={"sale_id": sale_id, "tonnage": tonnage, "user_id": identity.user_id})
