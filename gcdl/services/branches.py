from __future__ import annotations

from typing import Any

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from gcdl.app.db.models.models_v1 import Branch, Produce, User
from gcdl.app.db.session import atomic
from gcdl.app.logging_config import get_logger
from gcdl.services.access import Identity, Operation, authorize, ensure_row_access
from gcdl.services.errors import ConflictAlreadyExists, NotFound, ValidationError

log = get_logger("branches")

BRANCH_UPDATABLE_FIELDS = ("branch_name", "location", "manager_id")


def list_branches(db: Session, identity: Identity) -> list[Branch]:
    authorize(identity, Operation.read)
    stmt = select(Branch).order_by(Branch.branch_name.asc())
    if not identity.is_ceo:
        stmt = stmt.where(Branch.id == identity.branch_id)
    return list(db.execute(stmt).scalars().all())


def get_branch(db: Session, identity: Identity, branch_id: int) -> Branch:
    authorize(identity, Operation.read)
    branch = db.get(Branch, branch_id)
    if not branch:
        raise NotFound("Branch not found")
    ensure_row_access(identity, branch.id)
    return branch


def _check_manager(db: Session, manager_id: int | None) -> None:
    if manager_id is not None and not db.get(User, manager_id):
        raise ValidationError("Invalid manager_id")


def create_branch(
    db: Session,
    identity: Identity,
    *,
    branch_name: str,
    location: str,
    manager_id: int | None = None,
) -> Branch:
    authorize(identity, Operation.branch_create)

    with atomic(db):
        exists_ = db.execute(select(Branch.id).where(Branch.branch_name == branch_name)).first()
        if exists_:
            raise ConflictAlreadyExists("Branch with this name already exists")
        _check_manager(db, manager_id)

        branch = Branch(branch_name=branch_name, location=location, manager_id=manager_id)
        db.add(branch)
        db.flush()

    log.info("branch.created", extra={"branch_id": branch.id, "user_id": identity.user_id})
    return branch


def update_branch(db: Session, identity: Identity, branch_id: int, changes: dict[str, Any]) -> Branch:
    authorize(identity, Operation.branch_update)
    fields = {k: v for k, v in changes.items() if k in BRANCH_UPDATABLE_FIELDS}
    if not fields:
        raise ValidationError("No valid fields to update")

    with atomic(db):
        branch = db.get(Branch, branch_id)
        if not branch:
            raise NotFound("Branch not found")

        if fields.get("branch_name") is not None:
            taken = db.execute(
                select(Branch.id)
                .where(Branch.branch_name == fields["branch_name"])
                .where(Branch.id != branch.id)
            ).first()
            if taken:
                raise ConflictAlreadyExists("Branch with this name already exists")
        if "manager_id" in fields:
            _check_manager(db, fields["manager_id"])

        for key, value in fields.items():
            if value is None and key != "manager_id":
                continue
            setattr(branch, key, value)
        db.flush()

    log.info("branch.updated", extra={"branch_id": branch.id, "fields": sorted(fields), "user_id": identity.user_id})
    return branch


def delete_branch(db: Session, identity: Identity, branch_id: int) -> None:
    authorize(identity, Operation.branch_delete)

    with atomic(db):
        branch = db.get(Branch, branch_id)
        if not branch:
            raise NotFound("Branch not found")

        has_produce = db.execute(select(exists().where(Produce.branch_id == branch.id))).scalar()
        if has_produce:
            raise ValidationError(
                "Cannot delete branch with associated produce. Please remove all produce first."
            )
        db.delete(branch)

    log.info("branch.deleted", extra={"branch_id": branch_id, "user_id": identity.user_id})
