import pytest

from gcdl.app.db.models.core_types import Role
from gcdl.services.access import (
    PERMISSIONS,
    Identity,
    Operation,
    authorize,
    ensure_row_access,
    is_allowed,
    require_branch,
    resolve_branch_scope,
)
from gcdl.services.errors import AccessDenied

CEO = Identity(user_id=1, role=Role.ceo, branch_id=None)
MANAGER = Identity(user_id=2, role=Role.manager, branch_id=10)
AGENT = Identity(user_id=3, role=Role.sales_agent, branch_id=10)


def test_every_operation_has_a_permission_entry():
    assert set(PERMISSIONS) == set(Operation)


@pytest.mark.parametrize(
    "role, operation, allowed",
    [
        (Role.sales_agent, Operation.read, True),
        (Role.sales_agent, Operation.procurement_create, True),
        (Role.sales_agent, Operation.sale_create, True),
        (Role.sales_agent, Operation.procurement_update, False),
        (Role.sales_agent, Operation.sale_delete, False),
        (Role.sales_agent, Operation.credit_record_payment, False),
        (Role.sales_agent, Operation.stock_create, False),
        (Role.manager, Operation.procurement_update, True),
        (Role.manager, Operation.sale_update, True),
        (Role.manager, Operation.credit_record_payment, True),
        (Role.manager, Operation.stock_update, True),
        (Role.manager, Operation.procurement_delete, False),
        (Role.manager, Operation.stock_delete, False),
        (Role.manager, Operation.branch_create, False),
        (Role.ceo, Operation.procurement_delete, True),
        (Role.ceo, Operation.sale_delete, True),
        (Role.ceo, Operation.branch_delete, True),
    ],
)
def test_permission_table(role, operation, allowed):
    assert is_allowed(role, operation) is allowed


def test_authorize_raises_access_denied():
    with pytest.raises(AccessDenied) as exc:
        authorize(AGENT, Operation.sale_delete)
    assert exc.value.status_code == 403
    assert exc.value.message == "Access denied. Insufficient permissions."


def test_ceo_scope_is_the_requested_branch_or_everything():
    assert resolve_branch_scope(CEO, None) is None
    assert resolve_branch_scope(CEO, 42) == 42


def test_non_ceo_scope_is_forced_to_home_branch():
    assert resolve_branch_scope(MANAGER, None) == 10
    assert resolve_branch_scope(AGENT, 10) == 10


def test_non_ceo_asking_for_another_branch_is_denied():
    with pytest.raises(AccessDenied):
        resolve_branch_scope(MANAGER, 11)
    with pytest.raises(AccessDenied):
        require_branch(AGENT, 11)


def test_non_ceo_without_home_branch_is_denied():
    orphan = Identity(user_id=9, role=Role.manager, branch_id=None)
    with pytest.raises(AccessDenied):
        resolve_branch_scope(orphan, None)


def test_require_branch_keeps_ceo_target():
    assert require_branch(CEO, 7) == 7


def test_row_access_rechecks_owning_branch():
    ensure_row_access(CEO, 99)
    ensure_row_access(AGENT, 10)
    with pytest.raises(AccessDenied):
        ensure_row_access(AGENT, 11)
