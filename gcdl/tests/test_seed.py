from sqlalchemy import select

from gcdl.app.db.models.core_types import Role
from gcdl.app.db.models.models_v1 import Branch, User
from gcdl.app.db.seed import HEAD_OFFICE, run_seed


def test_seed_is_idempotent(database):
    run_seed(database)
    run_seed(database)

    with database.session() as s:
        branches = s.execute(select(Branch).where(Branch.branch_name == HEAD_OFFICE)).scalars().all()
        ceos = s.execute(select(User).where(User.role == Role.ceo)).scalars().all()

    assert len(branches) == 1
    assert len(ceos) == 1
    assert ceos[0].branch_id == branches[0].id
