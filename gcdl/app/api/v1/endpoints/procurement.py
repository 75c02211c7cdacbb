from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gcdl.app.api.deps import get_db, get_identity
from gcdl.app.db.models.models_v1 import Procurement
from gcdl.app.schemas.procurement import ProcurementCreate, ProcurementUpdate
from gcdl.services import procurement as procurement_service
from gcdl.services.access import Identity

router = APIRouter(prefix="/procurement")


def _procurement_out(p: Procurement) -> dict:
    return {
        "id": p.id,
        "produce_id": p.produce_id,
        "produce_name": p.produce.name if p.produce else None,
        "produce_type": p.produce.type if p.produce else None,
        "branch_id": p.branch_id,
        "branch_name": p.branch.branch_name if p.branch else None,
        "dealer_name": p.dealer_name,
        "dealer_contact": p.dealer_contact,
        "dealer_type": p.dealer_type,
        "tonnage": p.tonnage,
        "cost_per_ton": p.cost_per_ton,
        "total_cost": p.total_cost,
        "selling_price_per_ton": p.selling_price_per_ton,
        "recorded_by": p.recorded_by,
        "recorded_by_name": p.recorder.name if p.recorder else None,
        "created_at": p.created_at,
    }


@router.get("")
def list_procurements(
    branch_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    rows = procurement_service.list_procurements(
        db, identity, branch_id=branch_id, start_date=start_date, end_date=end_date
    )
    return [_procurement_out(p) for p in rows]


@router.get("/{procurement_id}")
def get_procurement(
    procurement_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _procurement_out(procurement_service.get_procurement(db, identity, procurement_id))


@router.post("", status_code=201)
def create_procurement(
    payload: ProcurementCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    proc = procurement_service.create_procurement(db, identity, **payload.model_dump())
    return _procurement_out(proc)


@router.put("/{procurement_id}")
def update_procurement(
    procurement_id: int,
    payload: ProcurementUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    proc = procurement_service.update_procurement(
        db, identity, procurement_id, payload.model_dump(exclude_unset=True)
    )
    return _procurement_out(proc)


@router.delete("/{procurement_id}")
def delete_procurement(
    procurement_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    procurement_service.delete_procurement(db, identity, procurement_id)
    return {"ok": True}
