from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gcdl.app.api.deps import get_db, get_identity
from gcdl.app.db.models.core_types import PaymentStatus
from gcdl.app.db.models.models_v1 import CreditSale
from gcdl.app.schemas.credit import CreditPayment
from gcdl.services import credit as credit_service
from gcdl.services.access import Identity

router = APIRouter(prefix="/credit")


def _credit_out(c: CreditSale) -> dict:
    sale = c.sale
    return {
        "id": c.id,
        "sale_id": c.sale_id,
        "buyer_name": sale.buyer_name,
        "buyer_contact": sale.buyer_contact,
        "buyer_national_id": c.buyer_national_id,
        "buyer_location": c.buyer_location,
        "tonnage": sale.tonnage,
        "sale_date": sale.created_at,
        "produce_name": sale.produce.name if sale.produce else None,
        "branch_id": sale.branch_id,
        "branch_name": sale.branch.branch_name if sale.branch else None,
        "amount_due": c.amount_due,
        "amount_paid": c.amount_paid,
        "outstanding": c.amount_due - c.amount_paid,
        "due_date": c.due_date,
        "payment_status": c.payment_status,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


@router.get("")
def list_credits(
    branch_id: int | None = None,
    payment_status: PaymentStatus | None = None,
    overdue: bool = False,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    rows = credit_service.list_credits(
        db, identity, branch_id=branch_id, payment_status=payment_status, overdue=overdue
    )
    return [_credit_out(c) for c in rows]


@router.get("/stats")
def credit_stats(
    branch_id: int | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return credit_service.credit_stats(db, identity, branch_id=branch_id)


@router.get("/{credit_id}")
def get_credit(
    credit_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _credit_out(credit_service.get_credit(db, identity, credit_id))


@router.put("/{credit_id}/payment")
def record_payment(
    credit_id: int,
    payload: CreditPayment,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    credit = credit_service.record_payment(db, identity, credit_id, payload.amount_paid)
    return _credit_out(credit)
