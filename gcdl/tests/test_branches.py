from decimal import Decimal

import pytest

from gcdl.services import branches, inventory
from gcdl.services.errors import AccessDenied, ConflictAlreadyExists, NotFound, ValidationError


def test_list_branches_scope(db_session, world):
    assert {b.id for b in branches.list_branches(db_session, world.ceo)} == {world.branch_a, world.branch_b}
    assert [b.id for b in branches.list_branches(db_session, world.agent_b)] == [world.branch_b]

    with pytest.raises(AccessDenied):
        branches.get_branch(db_session, world.agent_b, world.branch_a)


def test_create_update_branch(db_session, world):
    b = branches.create_branch(
        db_session, world.ceo, branch_name="Kasubi", location="Kampala", manager_id=world.users.manager_a
    )
    assert b.manager.name == "Mgr A"

    with pytest.raises(ConflictAlreadyExists):
        branches.create_branch(db_session, world.ceo, branch_name="Kasubi", location="Elsewhere")
    with pytest.raises(ValidationError):
        branches.create_branch(db_session, world.ceo, branch_name="Nakawa", location="Kampala", manager_id=999_999)

    b = branches.update_branch(db_session, world.ceo, b.id, {"location": "Kasubi, Kampala", "manager_id": None})
    assert b.location == "Kasubi, Kampala"
    assert b.manager_id is None

    with pytest.raises(ConflictAlreadyExists):
        branches.update_branch(db_session, world.ceo, b.id, {"branch_name": "Maganjo"})


def test_branch_admin_is_ceo_only(db_session, world):
    with pytest.raises(AccessDenied):
        branches.create_branch(db_session, world.manager_a, branch_name="Kasubi", location="Kampala")
    with pytest.raises(AccessDenied):
        branches.update_branch(db_session, world.manager_a, world.branch_a, {"location": "X"})
    with pytest.raises(AccessDenied):
        branches.delete_branch(db_session, world.manager_a, world.branch_a)


def test_delete_branch_requires_no_produce(db_session, world):
    with pytest.raises(ValidationError):
        branches.delete_branch(db_session, world.ceo, world.branch_b)

    inventory.update_produce(db_session, world.ceo, world.maize_b, {"current_stock": Decimal("0")})
    inventory.delete_produce(db_session, world.ceo, world.maize_b)
    branches.delete_branch(db_session, world.ceo, world.branch_b)

    with pytest.raises(NotFound):
        branches.get_branch(db_session, world.ceo, world.branch_b)
