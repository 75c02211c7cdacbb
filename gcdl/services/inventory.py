"""
Stock ledger.

``adjust_stock`` is the only code path that moves ``produce.current_stock`` as the
side effect of a business record. It is a single conditional UPDATE:

    UPDATE produce
    SET current_stock = current_stock + :delta
    WHERE id = :produce_id AND branch_id = :branch_id
      [AND current_stock >= -:delta]       -- debits only

so two concurrent debits on the same row serialize on the row lock and the
second one re-evaluates the guard against the committed value. Zero affected
rows is either NotFound (wrong branch / unknown produce) or InsufficientStock.

The function never commits: it joins the caller's unit of work.

Direct produce CRUD (administrative corrections) also lives here.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from gcdl.app.db.models.models_v1 import Branch, Produce, Procurement, Sale
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
from gcdl.services.errors import (
    ConflictAlreadyExists,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from gcdl.services.filters import FilterColumns, ListFilters, apply_filters

log = get_logger("inventory")

DEFAULT_LOW_STOCK_THRESHOLD = Decimal("10")

PRODUCE_UPDATABLE_FIELDS = ("name", "type", "current_stock")


# ---------- LEDGER ----------
def adjust_stock(
    db: Session,
    *,
    produce_id: int,
    branch_id: int,
    delta: Decimal,
) -> Produce:
    """
    Apply ``delta`` tons to (produce_id, branch_id) inside the current transaction.

    Returns the produce row refreshed from the database.
    Raises NotFound / InsufficientStock; the caller's unit of work rolls back.
    """
    delta = Decimal(delta)

    stmt = (
        update(Produce)
        .where(Produce.id == produce_id)
        .where(Produce.branch_id == branch_id)
        .values(current_stock=Produce.current_stock + delta)
        .execution_options(synchronize_session=False)
    )
    if delta < 0:
        stmt = stmt.where(Produce.current_stock >= -delta)

    result = db.execute(stmt)

    if result.rowcount != 1:
        available = db.execute(
            select(Produce.current_stock)
            .where(Produce.id == produce_id)
            .where(Produce.branch_id == branch_id)
        ).scalar_one_or_none()
        if available is None:
            raise NotFound("Produce not found in this branch")
        log.warning(
            "stock.insufficient",
            extra={
                "produce_id": produce_id,
                "branch_id": branch_id,
                "available": available,
                "requested": -delta,
            },
        )
        raise InsufficientStock(available=available, requested=-delta)

    return db.execute(
        select(Produce)
        .where(Produce.id == produce_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


def lock_produce(db: Session, *, produce_id: int, branch_id: int) -> Produce:
    """Locking read of a produce row scoped to its branch (FOR UPDATE)."""
    produce = (
        db.execute(
            select(Produce)
            .where(Produce.id == produce_id)
            .where(Produce.branch_id == branch_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not produce:
        raise NotFound("Produce not found in this branch")
    return produce


# ---------- PRODUCE CRUD ----------
def get_produce(db: Session, identity: Identity, produce_id: int) -> Produce:
    authorize(identity, Operation.read)
    produce = db.get(Produce, produce_id)
    if not produce:
        raise NotFound("Stock not found")
    ensure_row_access(identity, produce.branch_id)
    return produce


def list_produce(
    db: Session,
    identity: Identity,
    *,
    branch_id: int | None = None,
    produce_type: str | None = None,
) -> list[Produce]:
    authorize(identity, Operation.read)
    filters = ListFilters(
        branch_id=resolve_branch_scope(identity, branch_id),
        produce_type=produce_type,
    )
    stmt = apply_filters(
        select(Produce).order_by(Produce.name.asc(), Produce.id.asc()),
        FilterColumns(branch=Produce.branch_id, produce_type=Produce.type),
        filters,
    )
    return list(db.execute(stmt).scalars().all())


def low_stock_alerts(
    db: Session,
    identity: Identity,
    *,
    threshold: Decimal | None = None,
    branch_id: int | None = None,
) -> list[Produce]:
    authorize(identity, Operation.read)
    threshold = DEFAULT_LOW_STOCK_THRESHOLD if threshold is None else Decimal(threshold)
    stmt = apply_filters(
        select(Produce)
        .where(Produce.current_stock <= threshold)
        .order_by(Produce.current_stock.asc(), Produce.id.asc()),
        FilterColumns(branch=Produce.branch_id),
        ListFilters(branch_id=resolve_branch_scope(identity, branch_id)),
    )
    return list(db.execute(stmt).scalars().all())


def _name_taken(db: Session, *, name: str, branch_id: int, exclude_id: int | None = None) -> bool:
    stmt = select(Produce.id).where(Produce.name == name).where(Produce.branch_id == branch_id)
    if exclude_id is not None:
        stmt = stmt.where(Produce.id != exclude_id)
    return db.execute(stmt).first() is not None


def create_produce(
    db: Session,
    identity: Identity,
    *,
    name: str,
    type: str,
    branch_id: int,
    current_stock: Decimal | None = None,
) -> Produce:
    authorize(identity, Operation.stock_create)
    branch_id = require_branch(identity, branch_id)

    initial = Decimal("0") if current_stock is None else Decimal(current_stock)
    if initial < 0:
        raise ValidationError("current_stock must be 0 or greater")

    with atomic(db):
        if not db.get(Branch, branch_id):
            raise NotFound("Branch not found")
        if _name_taken(db, name=name, branch_id=branch_id):
            raise ConflictAlreadyExists("This produce already exists in this branch")

        produce = Produce(name=name, type=type, branch_id=branch_id, current_stock=initial)
        db.add(produce)
        db.flush()

    log.info(
        "stock.created",
        extra={"produce_id": produce.id, "branch_id": branch_id, "current_stock": initial, "user_id": identity.user_id},
    )
    return produce


def update_produce(
    db: Session,
    identity: Identity,
    produce_id: int,
    changes: dict[str, Any],
) -> Produce:
    """
    Edit name/type, or free-set current_stock (administrative correction).

    A free-set bypasses the ledger but still cannot go negative.
    """
    authorize(identity, Operation.stock_update)
    fields = {k: v for k, v in changes.items() if k in PRODUCE_UPDATABLE_FIELDS and v is not None}
    if not fields:
        raise ValidationError("No valid fields to update")
    if "current_stock" in fields:
        fields["current_stock"] = Decimal(fields["current_stock"])
        if fields["current_stock"] < 0:
            raise ValidationError("current_stock must be 0 or greater")

    with atomic(db):
        produce = db.execute(
            select(Produce).where(Produce.id == produce_id).with_for_update()
        ).scalar_one_or_none()
        if not produce:
            raise NotFound("Stock not found")
        ensure_row_access(identity, produce.branch_id)

        if "name" in fields and _name_taken(
            db, name=fields["name"], branch_id=produce.branch_id, exclude_id=produce.id
        ):
            raise ConflictAlreadyExists("This produce already exists in this branch")

        for key, value in fields.items():
            setattr(produce, key, value)
        db.flush()

    log.info(
        "stock.updated",
        extra={"produce_id": produce.id, "fields": sorted(fields), "user_id": identity.user_id},
    )
    return produce


def delete_produce(db: Session, identity: Identity, produce_id: int) -> None:
    authorize(identity, Operation.stock_delete)

    with atomic(db):
        produce = db.execute(
            select(Produce).where(Produce.id == produce_id).with_for_update()
        ).scalar_one_or_none()
        if not produce:
            raise NotFound("Stock not found")
        ensure_row_access(identity, produce.branch_id)

        if Decimal(produce.current_stock) > 0:
            raise ValidationError("Cannot delete stock with remaining inventory")

        referenced = db.execute(
            select(
                exists().where(Procurement.produce_id == produce.id)
                | exists().where(Sale.produce_id == produce.id)
            )
        ).scalar()
        if referenced:
            raise ValidationError("Cannot delete stock with recorded procurements or sales")

        db.delete(produce)

    log.info("stock.deleted", extra={"produce_id": produce_id, "user_id": identity.user_id})
