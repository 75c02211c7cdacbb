from __future__ import annotations

from datetime import datetime, date, timezone
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Enum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gcdl.app.db.base import Base
from gcdl.app.db.models.core_types import (
    Role,
    DealerType,
    PaymentType,
    PaymentStatus,
)

# SQLite only autoincrements INTEGER PRIMARY KEY
PK = BigInteger().with_variant(Integer, "sqlite")
TONS = Numeric(12, 2)
MONEY = Numeric(14, 2)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- MASTER DATA ----------
class Branch(Base):
    __tablename__ = "branches"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    branch_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_branches_manager_id")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    manager: Mapped[User | None] = relationship(foreign_keys=[manager_id])


# ---------- AUTH ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role, name="role"), nullable=False)
    branch_id: Mapped[int | None] = mapped_column(ForeignKey("branches.id", ondelete="SET NULL"))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    branch: Mapped[Branch | None] = relationship(foreign_keys=[branch_id])


# ---------- INVENTORY ----------
class Produce(Base):
    __tablename__ = "produce"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    branch_id: Mapped[int] = mapped_column(
        ForeignKey("branches.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    current_stock: Mapped[Decimal] = mapped_column(TONS, default=Decimal("0"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    branch: Mapped[Branch] = relationship()

    __table_args__ = (
        UniqueConstraint("name", "branch_id", name="uq_produce_name_branch"),
        CheckConstraint("current_stock >= 0", name="ck_produce_stock_nonneg"),
    )


# ---------- PROCUREMENT ----------
class Procurement(Base):
    __tablename__ = "procurement"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    produce_id: Mapped[int] = mapped_column(ForeignKey("produce.id", ondelete="RESTRICT"), nullable=False)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False)

    dealer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    dealer_contact: Mapped[str | None] = mapped_column(String(64))
    dealer_type: Mapped[DealerType] = mapped_column(Enum(DealerType, name="dealer_type"), nullable=False)

    tonnage: Mapped[Decimal] = mapped_column(TONS, nullable=False)
    cost_per_ton: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    selling_price_per_ton: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    recorded_by: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    produce: Mapped[Produce] = relationship()
    branch: Mapped[Branch] = relationship()
    recorder: Mapped[User] = relationship()

    __table_args__ = (
        CheckConstraint("tonnage > 0", name="ck_procurement_tonnage_pos"),
        CheckConstraint("cost_per_ton >= 0", name="ck_procurement_cost_nonneg"),
        CheckConstraint("total_cost >= 0", name="ck_procurement_total_nonneg"),
        CheckConstraint("selling_price_per_ton >= 0", name="ck_procurement_price_nonneg"),
        Index("ix_procurement_branch_time", "branch_id", "created_at"),
    )


# ---------- SALES ----------
class Sale(Base):
    __tablename__ = "sales"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    produce_id: Mapped[int] = mapped_column(ForeignKey("produce.id", ondelete="RESTRICT"), nullable=False)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False)

    buyer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    buyer_contact: Mapped[str | None] = mapped_column(String(64))

    tonnage: Mapped[Decimal] = mapped_column(TONS, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(Enum(PaymentType, name="payment_type"), nullable=False)

    sales_agent_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    produce: Mapped[Produce] = relationship()
    branch: Mapped[Branch] = relationship()
    sales_agent: Mapped[User] = relationship()
    credit: Mapped[CreditSale | None] = relationship(
        back_populates="sale",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("tonnage > 0", name="ck_sale_tonnage_pos"),
        CheckConstraint("amount_paid >= 0", name="ck_sale_amount_paid_nonneg"),
        Index("ix_sales_branch_time", "branch_id", "created_at"),
    )


class CreditSale(Base):
    __tablename__ = "credit_sales"
    id: Mapped[int] = mapped_column(PK, primary_key=True)
    sale_id: Mapped[int] = mapped_column(
        ForeignKey("sales.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    buyer_national_id: Mapped[str | None] = mapped_column(String(64))
    buyer_location: Mapped[str | None] = mapped_column(String(255))

    amount_due: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.pending,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    sale: Mapped[Sale] = relationship(back_populates="credit")

    __table_args__ = (
        CheckConstraint("amount_due > 0", name="ck_credit_amount_due_pos"),
        CheckConstraint("amount_paid >= 0", name="ck_credit_amount_paid_nonneg"),
        Index("ix_credit_sales_status_due", "payment_status", "due_date"),
    )
