import os
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from gcdl.app.db.base import Base
from gcdl.app.db.models.core_types import Role
from gcdl.app.db.models.models_v1 import Branch, Produce, User
from gcdl.app.db.session import Database
from gcdl.app.main import create_app
from gcdl.services.access import Identity


@pytest.fixture(scope="function")
def database(tmp_path) -> Database:
    """
    Fresh schema per test.

    SQLite file in tmp_path by default (a file, not :memory:, so that several
    connections see the same data); set TEST_DATABASE_URL to run against Postgres.
    """
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite:///{tmp_path / 'gcdl.db'}"
    database = Database(url, pool_size=5, max_overflow=5)
    database.open()
    Base.metadata.drop_all(bind=database.engine)
    Base.metadata.create_all(bind=database.engine)
    try:
        yield database
    finally:
        Base.metadata.drop_all(bind=database.engine)
        database.close()


@pytest.fixture(scope="function")
def db_session(database) -> Session:
    with database.session() as session:
        yield session


def _identity(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role, branch_id=user.branch_id)


@pytest.fixture(scope="function")
def world(database):
    """
    Two branches, one user per role, one produce line per branch.

    Branch A: Maganjo, beans at 100 tons.
    Branch B: Matugga, maize at 50 tons.
    """
    with database.session() as s:
        branch_a = Branch(branch_name="Maganjo", location="Maganjo, Kampala")
        branch_b = Branch(branch_name="Matugga", location="Matugga, Wakiso")
        s.add_all([branch_a, branch_b])
        s.flush()

        ceo = User(name="Orban", email="ceo@gcdl.test", role=Role.ceo, branch_id=None)
        manager_a = User(name="Mgr A", email="mgr.a@gcdl.test", role=Role.manager, branch_id=branch_a.id)
        agent_a = User(name="Agent A", email="agent.a@gcdl.test", role=Role.sales_agent, branch_id=branch_a.id)
        manager_b = User(name="Mgr B", email="mgr.b@gcdl.test", role=Role.manager, branch_id=branch_b.id)
        agent_b = User(name="Agent B", email="agent.b@gcdl.test", role=Role.sales_agent, branch_id=branch_b.id)
        s.add_all([ceo, manager_a, agent_a, manager_b, agent_b])
        s.flush()

        beans_a = Produce(name="Beans", type="Legume", branch_id=branch_a.id, current_stock=Decimal("100"))
        maize_b = Produce(name="Maize", type="Grain", branch_id=branch_b.id, current_stock=Decimal("50"))
        s.add_all([beans_a, maize_b])
        s.commit()

        return SimpleNamespace(
            branch_a=branch_a.id,
            branch_b=branch_b.id,
            beans_a=beans_a.id,
            maize_b=maize_b.id,
            users=SimpleNamespace(
                ceo=ceo.id,
                manager_a=manager_a.id,
                agent_a=agent_a.id,
                manager_b=manager_b.id,
                agent_b=agent_b.id,
            ),
            ceo=_identity(ceo),
            manager_a=_identity(manager_a),
            agent_a=_identity(agent_a),
            manager_b=_identity(manager_b),
            agent_b=_identity(agent_b),
        )


@pytest.fixture(scope="function")
def client(database):
    with TestClient(create_app(database)) as client:
        yield client


@pytest.fixture(scope="function")
def stock_of(database):
    """Committed current_stock of a produce row, read on a fresh session."""

    def _read(produce_id: int) -> Decimal:
        with database.session() as s:
            return Decimal(s.get(Produce, produce_id).current_stock)

    return _read
