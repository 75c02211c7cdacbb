from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gcdl.app.api.deps import get_db, get_identity
from gcdl.app.db.models.core_types import PaymentType
from gcdl.app.db.models.models_v1 import CreditSale, Sale
from gcdl.app.schemas.sale import SaleCreate, SaleUpdate
from gcdl.services import sales as sales_service
from gcdl.services.access import Identity

router = APIRouter(prefix="/sales")


def _credit_info(c: CreditSale | None) -> dict | None:
    if c is None:
        return None
    return {
        "id": c.id,
        "buyer_national_id": c.buyer_national_id,
        "buyer_location": c.buyer_location,
        "amount_due": c.amount_due,
        "amount_paid": c.amount_paid,
        "due_date": c.due_date,
        "payment_status": c.payment_status,
    }


def _sale_out(s: Sale, with_credit: bool = False) -> dict:
    out = {
        "id": s.id,
        "produce_id": s.produce_id,
        "produce_name": s.produce.name if s.produce else None,
        "produce_type": s.produce.type if s.produce else None,
        "branch_id": s.branch_id,
        "branch_name": s.branch.branch_name if s.branch else None,
        "buyer_name": s.buyer_name,
        "buyer_contact": s.buyer_contact,
        "tonnage": s.tonnage,
        "amount_paid": s.amount_paid,
        "payment_type": s.payment_type,
        "sales_agent_id": s.sales_agent_id,
        "sales_agent_name": s.sales_agent.name if s.sales_agent else None,
        "created_at": s.created_at,
    }
    if with_credit:
        out["credit_info"] = _credit_info(s.credit)
    return out


@router.get("")
def list_sales(
    branch_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_type: PaymentType | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    rows = sales_service.list_sales(
        db,
        identity,
        branch_id=branch_id,
        start_date=start_date,
        end_date=end_date,
        payment_type=payment_type,
    )
    return [_sale_out(s) for s in rows]


@router.get("/{sale_id}")
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _sale_out(sales_service.get_sale(db, identity, sale_id), with_credit=True)


@router.post("", status_code=201)
def create_sale(
    payload: SaleCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    sale = sales_service.create_sale(db, identity, **payload.model_dump())
    return _sale_out(sale, with_credit=True)


@router.put("/{sale_id}")
def update_sale(
    sale_id: int,
    payload: SaleUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    sale = sales_service.update_sale(db, identity, sale_id, payload.model_dump(exclude_unset=True))
    return _sale_out(sale, with_credit=True)


@router.delete("/{sale_id}")
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    sales_service.delete_sale(db, identity, sale_id)
    return {"ok": True}
