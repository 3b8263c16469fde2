from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from placemap.core.config import settings
from placemap.db.base import Base


def _make_engine() -> Engine:
    if not settings.database_url.startswith("sqlite"):
        return create_engine(settings.database_url, echo=False, future=True)

    eng = create_engine(
        settings.database_url,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
    )

    # SQLite ignores ON DELETE / FK checks unless asked per connection.
    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_conn, _record) -> None:
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    return eng


engine = _make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db() -> None:
    import placemap.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    import placemap.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
