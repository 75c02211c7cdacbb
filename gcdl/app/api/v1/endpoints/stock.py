from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from gcdl.app.api.deps import get_db, get_identity
from gcdl.app.db.models.models_v1 import Produce
from gcdl.app.schemas.produce import ProduceCreate, ProduceUpdate
from gcdl.services import inventory
from gcdl.services.access import Identity

router = APIRouter(prefix="/stock")


def _produce_out(p: Produce) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "type": p.type,
        "branch_id": p.branch_id,
        "branch_name": p.branch.branch_name if p.branch else None,
        "location": p.branch.location if p.branch else None,
        "current_stock": p.current_stock,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


@router.get("")
def list_stock(
    branch_id: int | None = None,
    produce_type: str | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    rows = inventory.list_produce(db, identity, branch_id=branch_id, produce_type=produce_type)
    return [_produce_out(p) for p in rows]


@router.get("/alerts")
def stock_alerts(
    threshold: Decimal | None = Query(default=None, ge=0),
    branch_id: int | None = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    """Produce at or below the low-stock threshold (default 10 tons)."""
    rows = inventory.low_stock_alerts(db, identity, threshold=threshold, branch_id=branch_id)
    return [_produce_out(p) for p in rows]


@router.get("/{produce_id}")
def get_stock(
    produce_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _produce_out(inventory.get_produce(db, identity, produce_id))


@router.post("", status_code=201)
def create_stock(
    payload: ProduceCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    produce = inventory.create_produce(
        db,
        identity,
        name=payload.name,
        type=payload.type,
        branch_id=payload.branch_id,
        current_stock=payload.current_stock,
    )
    return _produce_out(produce)


@router.put("/{produce_id}")
def update_stock(
    produce_id: int,
    payload: ProduceUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    produce = inventory.update_produce(db, identity, produce_id, payload.model_dump(exclude_unset=True))
    return _produce_out(produce)


@router.delete("/{produce_id}")
def delete_stock(
    produce_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    inventory.delete_produce(db, identity, produce_id)
    return {"ok": True}
