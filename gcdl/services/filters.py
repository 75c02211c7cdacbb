"""
Listing filters.

A listing declares which columns back each named predicate (branch, date range,
payment type/status, produce type, overdue); ``apply_filters`` adds a ``WHERE``
for every predicate that has both a column and a value. Values are always bound
parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import Select

from gcdl.app.db.models.core_types import PaymentStatus, PaymentType


@dataclass
class ListFilters:
    branch_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    payment_type: PaymentType | None = None
    payment_status: PaymentStatus | None = None
    produce_type: str | None = None
    overdue: bool = False
    today: date | None = None


@dataclass
class FilterColumns:
    branch: object | None = None
    created_at: object | None = None
    payment_type: object | None = None
    payment_status: object | None = None
    produce_type: object | None = None
    due_date: object | None = None


def apply_filters(stmt: Select, columns: FilterColumns, filters: ListFilters) -> Select:
    if columns.branch is not None and filters.branch_id is not None:
        stmt = stmt.where(columns.branch == filters.branch_id)

    if columns.created_at is not None:
        if filters.start_date is not None:
            stmt = stmt.where(columns.created_at >= datetime.combine(filters.start_date, time.min))
        if filters.end_date is not None:
            # inclusive end date
            upper = datetime.combine(filters.end_date + timedelta(days=1), time.min)
            stmt = stmt.where(columns.created_at < upper)

    if columns.payment_type is not None and filters.payment_type is not None:
        stmt = stmt.where(columns.payment_type == filters.payment_type)

    if columns.payment_status is not None and filters.payment_status is not None:
        stmt = stmt.where(columns.payment_status == filters.payment_status)

    if columns.produce_type is not None and filters.produce_type:
        stmt = stmt.where(columns.produce_type == filters.produce_type)

    if filters.overdue and columns.due_date is not None and columns.payment_status is not None:
        today = filters.today or date.today()
        stmt = stmt.where(columns.due_date < today).where(columns.payment_status != PaymentStatus.paid)

    return stmt
