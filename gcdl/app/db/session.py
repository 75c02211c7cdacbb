from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gcdl.app.config import settings
from gcdl.services.errors import GCDLError, PersistenceFailure


def _sqlite_foreign_keys(dbapi_connection, _record) -> None:
    # SQLite ships with foreign keys off; enforce them like PostgreSQL does
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Engine + session factory with an explicit lifecycle.

    open() at startup, close() at shutdown, session() per unit of work.
    The pool is bounded by pool_size + max_overflow.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: int = 30,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.echo = echo
        self._engine: Engine | None = None
        self._factory: sessionmaker[Session] | None = None

    @classmethod
    def from_settings(cls) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> None:
        if self._engine is not None:
            return
        if self.url.startswith("sqlite"):
            engine = create_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _sqlite_foreign_keys)
        else:
            engine = create_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
            )
        self._engine = engine
        self._factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._factory = None

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    @contextmanager
    def session(self) -> Iterator[Session]:
        if self._factory is None:
            raise RuntimeError("Database is not open")
        db = self._factory()
        try:
            yield db
        finally:
            # returns the connection to the pool, rolling back anything uncommitted
            db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    One unit of work: commit on success, rollback everything on any failure.

    Domain errors propagate unchanged; storage errors surface as PersistenceFailure.
    """
    try:
        yield db
        db.commit()
    except GCDLError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceFailure(str(e.__class__.__name__)) from e
    except Exception:
        db.rollback()
        raise
