"""
Access scope resolution.

Two questions are answered here, both as pure functions of the acting identity:

- may this role run this operation at all? (``authorize``, one table lookup)
- which branch does the operation apply to? (``resolve_branch_scope`` before the
  lookup, ``ensure_row_access`` after fetching a row by id)

CEO is unrestricted. Every other role is pinned to its home branch.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from gcdl.app.db.models.core_types import Role
from gcdl.app.logging_config import get_logger
from gcdl.services.errors import AccessDenied

log = get_logger("access")


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role
    branch_id: int | None = None

    @property
    def is_ceo(self) -> bool:
        return self.role == Role.ceo


class Operation(str, enum.Enum):
    read = "read"
    procurement_create = "procurement.create"
    procurement_update = "procurement.update"
    procurement_delete = "procurement.delete"
    sale_create = "sale.create"
    sale_update = "sale.update"
    sale_delete = "sale.delete"
    credit_record_payment = "credit.record_payment"
    stock_create = "stock.create"
    stock_update = "stock.update"
    stock_delete = "stock.delete"
    branch_create = "branch.create"
    branch_update = "branch.update"
    branch_delete = "branch.delete"


_ALL = frozenset(Role)
_CEO_MANAGER = frozenset({Role.ceo, Role.manager})
_CEO = frozenset({Role.ceo})

PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.read: _ALL,
    Operation.procurement_create: _ALL,
    Operation.procurement_update: _CEO_MANAGER,
    Operation.procurement_delete: _CEO,
    Operation.sale_create: _ALL,
    Operation.sale_update: _CEO_MANAGER,
    Operation.sale_delete: _CEO,
    Operation.credit_record_payment: _CEO_MANAGER,
    Operation.stock_create: _CEO_MANAGER,
    Operation.stock_update: _CEO_MANAGER,
    Operation.stock_delete: _CEO,
    Operation.branch_create: _CEO,
    Operation.branch_update: _CEO,
    Operation.branch_delete: _CEO,
}


def is_allowed(role: Role, operation: Operation) -> bool:
    return role in PERMISSIONS.get(operation, frozenset())


def authorize(identity: Identity, operation: Operation) -> None:
    if not is_allowed(identity.role, operation):
        log.warning(
            "access.denied",
            extra={"user_id": identity.user_id, "role": identity.role, "operation": operation},
        )
        raise AccessDenied("Access denied. Insufficient permissions.")


def resolve_branch_scope(identity: Identity, requested_branch_id: int | None) -> int | None:
    """
    Effective branch filter for the request.

    CEO: the requested branch (None means all branches).
    Others: always the home branch; asking for another one is denied.
    """
    if identity.is_ceo:
        return requested_branch_id

    if identity.branch_id is None:
        raise AccessDenied("Access denied. No branch assigned to this user.")

    if requested_branch_id is not None and int(requested_branch_id) != identity.branch_id:
        log.warning(
            "access.branch_denied",
            extra={
                "user_id": identity.user_id,
                "home_branch_id": identity.branch_id,
                "requested_branch_id": requested_branch_id,
            },
        )
        raise AccessDenied("Access denied. You can only access your branch data.")

    return identity.branch_id


def require_branch(identity: Identity, branch_id: int) -> int:
    """Write variant: the target branch is mandatory and must be in scope."""
    scoped = resolve_branch_scope(identity, branch_id)
    return branch_id if scoped is None else scoped


def ensure_row_access(identity: Identity, row_branch_id: int) -> None:
    if identity.is_ceo:
        return
    if identity.branch_id is None or row_branch_id != identity.branch_id:
        raise AccessDenied("Access denied")
