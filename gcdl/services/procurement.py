"""
Procurement service.

A procurement row and its ``+tonnage`` stock credit are written in the same
unit of work. Updates re-apply the tonnage difference, deletes reverse the
original credit; both go through ``gcdl.services.inventory.adjust_stock``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gcdl.app.db.models.core_types import DealerType
from gcdl.app.db.models.models_v1 import Procurement
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
from gcdl.services.errors import NotFound, ValidationError
from gcdl.services.filters import FilterColumns, ListFilters, apply_filters
from gcdl.services.inventory import adjust_stock, lock_produce

log = get_logger("procurement")

PROCUREMENT_UPDATABLE_FIELDS = (
    "dealer_name",
    "dealer_contact",
    "dealer_type",
    "tonnage",
    "cost_per_ton",
    "total_cost",
    "selling_price_per_ton",
)


def create_procurement(
    db: Session,
    identity: Identity,
    *,
    produce_id: int,
    branch_id: int,
    dealer_name: str,
    dealer_type: DealerType,
    tonnage: Decimal,
    cost_per_ton: Decimal,
    total_cost: Decimal,
    selling_price_per_ton: Decimal,
    dealer_contact: str | None = None,
) -> Procurement:
    authorize(identity, Operation.procurement_create)
    branch_id = require_branch(identity, branch_id)

    tonnage = Decimal(tonnage)
    if tonnage <= 0:
        raise ValidationError("Tonnage must be greater than 0")

    with atomic(db):
        # produce must exist in the claimed branch before anything references it
        lock_produce(db, produce_id=produce_id, branch_id=branch_id)

        proc = Procurement(
            produce_id=produce_id,
            branch_id=branch_id,
            dealer_name=dealer_name,
            dealer_contact=dealer_contact,
            dealer_type=dealer_type,
            tonnage=tonnage,
            cost_per_ton=cost_per_ton,
            total_cost=total_cost,
            selling_price_per_ton=selling_price_per_ton,
            recorded_by=identity.user_id,
        )
        db.add(proc)
        db.flush()

        produce = adjust_stock(db, produce_id=produce_id, branch_id=branch_id, delta=tonnage)

    log.info(
        "procurement.created",
        extra={
            "procurement_id": proc.id,
            "produce_id": produce_id,
            "branch_id": branch_id,
            "tonnage": tonnage,
            "current_stock": produce.current_stock,
            "user_id": identity.user_id,
        },
    )
    return proc


def get_procurement(db: Session, identity: Identity, procurement_id: int) -> Procurement:
    authorize(identity, Operation.read)
    proc = db.get(Procurement, procurement_id)
    if not proc:
        raise NotFound("Procurement not found")
    ensure_row_access(identity, proc.branch_id)
    return proc


def list_procurements(
    db: Session,
    identity: Identity,
    *,
    branch_id: int | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[Procurement]:
    authorize(identity, Operation.read)
    filters = ListFilters(
        branch_id=resolve_branch_scope(identity, branch_id),
        start_date=start_date,
        end_date=end_date,
    )
    stmt = apply_filters(
        select(Procurement).order_by(Procurement.created_at.desc(), Procurement.id.desc()),
        FilterColumns(branch=Procurement.branch_id, created_at=Procurement.created_at),
        filters,
    )
    return list(db.execute(stmt).scalars().all())


def _lock_procurement(db: Session, procurement_id: int) -> Procurement:
    proc = db.execute(
        select(Procurement)
        .where(Procurement.id == procurement_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not proc:
        raise NotFound("Procurement not found")
    return proc


def update_procurement(
    db: Session,
    identity: Identity,
    procurement_id: int,
    changes: dict[str, Any],
) -> Procurement:
    """
    Partial update. A tonnage change moves stock by exactly ``new - old``;
    lowering tonnage below what is still on hand fails with InsufficientStock.
    """
    authorize(identity, Operation.procurement_update)
    fields = {k: v for k, v in changes.items() if k in PROCUREMENT_UPDATABLE_FIELDS and v is not None}
    if not fields:
        raise ValidationError("No valid fields to update")
    if "tonnage" in fields and Decimal(fields["tonnage"]) <= 0:
        raise ValidationError("Tonnage must be greater than 0")

    delta = Decimal("0")
    with atomic(db):
        proc = _lock_procurement(db, procurement_id)
        ensure_row_access(identity, proc.branch_id)

        if "tonnage" in fields:
            fields["tonnage"] = Decimal(fields["tonnage"])
            delta = fields["tonnage"] - Decimal(proc.tonnage)
            if delta != 0:
                adjust_stock(db, produce_id=proc.produce_id, branch_id=proc.branch_id, delta=delta)

        for key, value in fields.items():
            setattr(proc, key, value)
        db.flush()

    log.info(
        "procurement.updated",
        extra={
            "procurement_id": proc.id,
            "fields": sorted(fields),
            "stock_delta": delta,
            "user_id": identity.user_id,
        },
    )
    return proc


def delete_procurement(db: Session, identity: Identity, procurement_id: int) -> None:
    """Reverse the original credit, then drop the record."""
    authorize(identity, Operation.procurement_delete)

    with atomic(db):
        proc = _lock_procurement(db, procurement_id)
        ensure_row_access(identity, proc.branch_id)

        tonnage = Decimal(proc.tonnage)
        adjust_stock(db, produce_id=proc.produce_id, branch_id=proc.branch_id, delta=-tonnage)
        db.delete(proc)

    log.info(
        "procurement.deleted",
        extra={"procurement_id": procurement_id, "tonnage": tonnage, "user_id": identity.user_id},
    )
