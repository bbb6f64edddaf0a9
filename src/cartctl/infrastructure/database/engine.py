"""Database engine setup for SQLite with WAL mode.

The cart backup lives at ``{data_dir}/.cartctl/{db_name}``. SQLAlchemy
Core (not ORM) is used: the persistence contract is three whole-list
operations with no identity tracking to manage.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from cartctl.infrastructure.database.schema import metadata

DATA_DIRNAME = ".cartctl"


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode enabled."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


def init_database(data_dir: Path, db_name: str = "cart.db") -> Engine:
    """Initialize the cart database at ``{data_dir}/.cartctl/{db_name}``.

    Creates the directory and all tables. Idempotent; safe to call on an
    existing database.

    Returns the engine ready for use.
    """
    cart_dir = data_dir / DATA_DIRNAME
    cart_dir.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(cart_dir / db_name)
    metadata.create_all(engine)
    return engine
