from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gcdl.app.api.deps import get_db, get_identity
from gcdl.app.db.models.models_v1 import Branch
from gcdl.app.schemas.branch import BranchCreate, BranchUpdate
from gcdl.services import branches as branch_service
from gcdl.services.access import Identity

router = APIRouter(prefix="/branches")


def _branch_out(b: Branch) -> dict:
    return {
        "id": b.id,
        "branch_name": b.branch_name,
        "location": b.location,
        "manager_id": b.manager_id,
        "manager_name": b.manager.name if b.manager else None,
        "created_at": b.created_at,
    }


@router.get("")
def list_branches(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return [_branch_out(b) for b in branch_service.list_branches(db, identity)]


@router.get("/{branch_id}")
def get_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _branch_out(branch_service.get_branch(db, identity, branch_id))


@router.post("", status_code=201)
def create_branch(
    payload: BranchCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    return _branch_out(branch_service.create_branch(db, identity, **payload.model_dump()))


@router.put("/{branch_id}")
def update_branch(
    branch_id: int,
    payload: BranchUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    branch = branch_service.update_branch(db, identity, branch_id, payload.model_dump(exclude_unset=True))
    return _branch_out(branch)


@router.delete("/{branch_id}")
def delete_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    branch_service.delete_branch(db, identity, branch_id)
    return {"ok": True}
