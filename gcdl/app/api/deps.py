from __future__ import annotations

from typing import Generator

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from gcdl.app.db.models.models_v1 import User
from gcdl.app.db.session import Database
from gcdl.services.access import Identity


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)) -> Generator:
    with database.session() as db:
        yield db


def get_identity(
    x_user_id: int | None = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> Identity:
    # The user id is attached upstream once the token has been verified;
    # role and home branch always come from the users table.
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="No identity provided, authorization denied")

    user = db.get(User, x_user_id)
    if not user or not user.active:
        raise HTTPException(status_code=401, detail="User not found")

    return Identity(user_id=int(user.id), role=user.role, branch_id=user.branch_id)
