import threading
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from gcdl.app.db.models.core_types import PaymentStatus, PaymentType
from gcdl.app.db.models.models_v1 import CreditSale, Sale
from gcdl.services import sales
from gcdl.services.errors import AccessDenied, InsufficientStock, NotFound, ValidationError


def _sell(db, identity, produce_id, branch_id, tonnage, **kw):
    kw.setdefault("payment_type", PaymentType.cash)
    kw.setdefault("amount_paid", Decimal(tonnage) * 1300)
    return sales.create_sale(
        db,
        identity,
        produce_id=produce_id,
        branch_id=branch_id,
        buyer_name="Mukasa Stores",
        tonnage=Decimal(tonnage),
        **kw,
    )


def test_cash_sale_debits_stock(db_session, world, stock_of):
    sale = _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "30")

    assert sale.sales_agent_id == world.users.agent_a
    assert sale.credit is None
    assert stock_of(world.beans_a) == Decimal("70")


def test_oversell_writes_nothing(db_session, world, stock_of):
    _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "30")

    with pytest.raises(InsufficientStock) as exc:
        _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "80")

    assert exc.value.available == Decimal("70")
    assert "available=70" in exc.value.message
    assert stock_of(world.beans_a) == Decimal("70")
    assert db_session.query(Sale).count() == 1


def test_sale_for_other_branch_is_denied(db_session, world, stock_of):
    with pytest.raises(AccessDenied):
        _sell(db_session, world.agent_a, world.maize_b, world.branch_b, "1")
    assert stock_of(world.maize_b) == Decimal("50")


def test_sale_of_produce_from_another_branch_is_not_found(db_session, world):
    with pytest.raises(NotFound):
        _sell(db_session, world.ceo, world.maize_b, world.branch_a, "1")


def test_credit_sale_opens_a_pending_credit(db_session, world, stock_of):
    due = date.today() + timedelta(days=30)
    sale = _sell(
        db_session,
        world.agent_a,
        world.beans_a,
        world.branch_a,
        "40",
        payment_type=PaymentType.credit,
        amount_paid=Decimal("0"),
        amount_due=Decimal("4000"),
        due_date=due,
        buyer_national_id="CM900000000XYZ",
        buyer_location="Wakiso",
    )

    credit = sale.credit
    assert credit is not None
    assert credit.payment_status == PaymentStatus.pending
    assert credit.amount_paid == Decimal("0")
    assert credit.amount_due == Decimal("4000")
    assert credit.due_date == due
    assert stock_of(world.beans_a) == Decimal("60")


@pytest.mark.parametrize(
    "extra",
    [
        {"amount_due": None, "due_date": date(2030, 1, 1)},
        {"amount_due": Decimal("0"), "due_date": date(2030, 1, 1)},
        {"amount_due": Decimal("100"), "due_date": None},
    ],
)
def test_credit_sale_requires_amount_due_and_due_date(db_session, world, stock_of, extra):
    with pytest.raises(ValidationError):
        _sell(
            db_session,
            world.agent_a,
            world.beans_a,
            world.branch_a,
            "10",
            payment_type=PaymentType.credit,
            amount_paid=Decimal("0"),
            **extra,
        )
    assert stock_of(world.beans_a) == Decimal("100")


def test_update_sale_tonnage_is_settled_against_stock(db_session, world, stock_of):
    sale = _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "30")

    sales.update_sale(db_session, world.manager_a, sale.id, {"tonnage": Decimal("50")})
    assert stock_of(world.beans_a) == Decimal("50")

    sales.update_sale(db_session, world.manager_a, sale.id, {"tonnage": Decimal("10")})
    assert stock_of(world.beans_a) == Decimal("90")

    with pytest.raises(InsufficientStock):
        sales.update_sale(db_session, world.manager_a, sale.id, {"tonnage": Decimal("101")})
    assert stock_of(world.beans_a) == Decimal("90")


def test_update_sale_buyer_fields(db_session, world, stock_of):
    sale = _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "30")
    updated = sales.update_sale(
        db_session, world.ceo, sale.id, {"buyer_name": "Mukasa & Sons", "amount_paid": Decimal("1000")}
    )
    assert updated.buyer_name == "Mukasa & Sons"
    assert updated.amount_paid == Decimal("1000")
    assert stock_of(world.beans_a) == Decimal("70")

    with pytest.raises(AccessDenied):
        sales.update_sale(db_session, world.agent_a, sale.id, {"buyer_name": "X"})


def test_delete_sale_restores_stock_and_drops_credit(db_session, world, stock_of):
    sale = _sell(
        db_session,
        world.agent_a,
        world.beans_a,
        world.branch_a,
        "40",
        payment_type=PaymentType.credit,
        amount_paid=Decimal("0"),
        amount_due=Decimal("4000"),
        due_date=date.today() + timedelta(days=7),
    )
    credit_id = sale.credit.id
    assert stock_of(world.beans_a) == Decimal("60")

    with pytest.raises(AccessDenied):
        sales.delete_sale(db_session, world.manager_a, sale.id)

    sales.delete_sale(db_session, world.ceo, sale.id)

    assert stock_of(world.beans_a) == Decimal("100")
    assert db_session.get(Sale, sale.id) is None
    assert db_session.get(CreditSale, credit_id) is None


def test_list_sales_filters(db_session, world):
    cash = _sell(db_session, world.agent_a, world.beans_a, world.branch_a, "5")
    credit = _sell(
        db_session,
        world.agent_a,
        world.beans_a,
        world.branch_a,
        "5",
        payment_type=PaymentType.credit,
        amount_paid=Decimal("0"),
        amount_due=Decimal("500"),
        due_date=date.today() + timedelta(days=7),
    )
    other = _sell(db_session, world.agent_b, world.maize_b, world.branch_b, "5")

    assert {s.id for s in sales.list_sales(db_session, world.ceo)} == {cash.id, credit.id, other.id}
    assert {s.id for s in sales.list_sales(db_session, world.agent_a)} == {cash.id, credit.id}
    assert [s.id for s in sales.list_sales(db_session, world.ceo, payment_type=PaymentType.credit)] == [credit.id]

    today = datetime.now(timezone.utc).date()
    assert len(sales.list_sales(db_session, world.ceo, start_date=today, end_date=today)) == 3
    assert sales.list_sales(db_session, world.ceo, end_date=today - timedelta(days=1)) == []


def test_concurrent_sales_never_overdraw(database, world, stock_of):
    """
    GIVEN beans at 100
    WHEN two sales of 60 tons run at the same time on separate connections
    THEN exactly one succeeds, the other fails with InsufficientStock, stock ends at 40
    """
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def sell():
        barrier.wait()
        with database.session() as db:
            try:
                _sell(db, world.agent_a, world.beans_a, world.branch_a, "60")
                result = "ok"
            except InsufficientStock:
                result = "insufficient"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=sell) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["insufficient", "ok"]
    assert stock_of(world.beans_a) == Decimal("40")
