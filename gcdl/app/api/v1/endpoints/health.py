from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from gcdl.app.api.deps import get_database
from gcdl.app.config import settings
from gcdl.app.db.session import Database
from gcdl.app.logging_config import get_logger

router = APIRouter()

log = get_logger("health")


@router.get("/health")
def health(database: Database = Depends(get_database)):
    try:
        database.ping()
        db_status = "ok"
    except SQLAlchemyError:
        log.exception("health.db_unreachable")
        db_status = "unavailable"
    return {"status": "ok", "db": db_status, "version": settings.api_version}
