"""initial gcdl schema

Revision ID: 3f2a9c1d7b40
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum columns store member names, matching SQLAlchemy's default for Enum(PyEnum)
ROLE = sa.Enum("ceo", "manager", "sales_agent", name="role")
DEALER_TYPE = sa.Enum("individual", "company", "farm", name="dealer_type")
PAYMENT_TYPE = sa.Enum("cash", "credit", name="payment_type")
PAYMENT_STATUS = sa.Enum("pending", "partial", "paid", name="payment_status")

TONS = sa.Numeric(12, 2)
MONEY = sa.Numeric(14, 2)


def _ts(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("branch_name", sa.String(200), nullable=False, unique=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("manager_id", sa.BigInteger(), nullable=True),
        _ts("created_at"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("branch_id", sa.BigInteger(), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )

    # branches <-> users cycle
    op.create_foreign_key(
        "fk_branches_manager_id",
        "branches",
        "users",
        ["manager_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "produce",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("branch_id", sa.BigInteger(), sa.ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("current_stock", TONS, nullable=False, server_default="0"),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("name", "branch_id", name="uq_produce_name_branch"),
        sa.CheckConstraint("current_stock >= 0", name="ck_produce_stock_nonneg"),
    )
    op.create_index("ix_produce_branch_id", "produce", ["branch_id"])

    op.create_table(
        "procurement",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("produce_id", sa.BigInteger(), sa.ForeignKey("produce.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("branch_id", sa.BigInteger(), sa.ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("dealer_name", sa.String(200), nullable=False),
        sa.Column("dealer_contact", sa.String(64), nullable=True),
        sa.Column("dealer_type", DEALER_TYPE, nullable=False),
        sa.Column("tonnage", TONS, nullable=False),
        sa.Column("cost_per_ton", MONEY, nullable=False),
        sa.Column("total_cost", MONEY, nullable=False),
        sa.Column("selling_price_per_ton", MONEY, nullable=False),
        sa.Column("recorded_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _ts("created_at"),
        sa.CheckConstraint("tonnage > 0", name="ck_procurement_tonnage_pos"),
        sa.CheckConstraint("cost_per_ton >= 0", name="ck_procurement_cost_nonneg"),
        sa.CheckConstraint("total_cost >= 0", name="ck_procurement_total_nonneg"),
        sa.CheckConstraint("selling_price_per_ton >= 0", name="ck_procurement_price_nonneg"),
    )
    op.create_index("ix_procurement_branch_time", "procurement", ["branch_id", "created_at"])

    op.create_table(
        "sales",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("produce_id", sa.BigInteger(), sa.ForeignKey("produce.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("branch_id", sa.BigInteger(), sa.ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("buyer_name", sa.String(200), nullable=False),
        sa.Column("buyer_contact", sa.String(64), nullable=True),
        sa.Column("tonnage", TONS, nullable=False),
        sa.Column("amount_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("payment_type", PAYMENT_TYPE, nullable=False),
        sa.Column("sales_agent_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        _ts("created_at"),
        sa.CheckConstraint("tonnage > 0", name="ck_sale_tonnage_pos"),
        sa.CheckConstraint("amount_paid >= 0", name="ck_sale_amount_paid_nonneg"),
    )
    op.create_index("ix_sales_branch_time", "sales", ["branch_id", "created_at"])

    op.create_table(
        "credit_sales",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column(
            "sale_id",
            sa.BigInteger(),
            sa.ForeignKey("sales.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("buyer_national_id", sa.String(64), nullable=True),
        sa.Column("buyer_location", sa.String(255), nullable=True),
        sa.Column("amount_due", MONEY, nullable=False),
        sa.Column("amount_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False, server_default="pending"),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint("amount_due > 0", name="ck_credit_amount_due_pos"),
        sa.CheckConstraint("amount_paid >= 0", name="ck_credit_amount_paid_nonneg"),
    )
    op.create_index("ix_credit_sales_status_due", "credit_sales", ["payment_status", "due_date"])


def downgrade() -> None:
    op.drop_index("ix_credit_sales_status_due", table_name="credit_sales")
    op.drop_table("credit_sales")
    op.drop_index("ix_sales_branch_time", table_name="sales")
    op.drop_table("sales")
    op.drop_index("ix_procurement_branch_time", table_name="procurement")
    op.drop_table("procurement")
    op.drop_index("ix_produce_branch_id", table_name="produce")
    op.drop_table("produce")
    op.drop_constraint("fk_branches_manager_id", "branches", type_="foreignkey")
    op.drop_table("users")
    op.drop_table("branches")

    bind = op.get_bind()
    for enum_type in (PAYMENT_STATUS, PAYMENT_TYPE, DEALER_TYPE, ROLE):
        enum_type.drop(bind, checkfirst=True)
