from __future__ import annotations

import os

from sqlalchemy import select

from gcdl.app.config import settings
from gcdl.app.db.models.core_types import Role
from gcdl.app.db.models.models_v1 import Branch, User
from gcdl.app.db.session import Database
from gcdl.app.logging_config import configure_logging, get_logger

log = get_logger("seed")

HEAD_OFFICE = "Head Office"


def run_seed(database: Database | None = None) -> None:
    database = database or Database.from_settings()
    opened_here = not database.is_open
    database.open()
    try:
        with database.session() as db:
            # 1) Head office branch
            branch = db.scalar(select(Branch).where(Branch.branch_name == HEAD_OFFICE))
            if not branch:
                branch = Branch(branch_name=HEAD_OFFICE, location=os.getenv("SEED_LOCATION", "Kampala"))
                db.add(branch)
                db.flush()

            # 2) CEO account; identity is resolved by user id, credentials live upstream
            email = os.getenv("SEED_CEO_EMAIL", "ceo@gcdl.local")
            user = db.scalar(select(User).where(User.email == email))
            if not user:
                user = User(name="CEO", email=email, role=Role.ceo, branch_id=branch.id, active=True)
                db.add(user)
                db.flush()

            db.commit()
            log.info("seed.ok", extra={"branch_id": branch.id, "ceo_user_id": user.id})
    finally:
        if opened_here:
            database.close()


if __name__ == "__main__":
    configure_logging(settings.log_level)
    run_seed()
