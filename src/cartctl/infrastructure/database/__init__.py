"""SQLite database engine and schema via SQLAlchemy Core."""

from cartctl.infrastructure.database.engine import create_db_engine, init_database
from cartctl.infrastructure.database.schema import cart_coupon, cart_items, metadata

__all__ = [
    "cart_coupon",
    "cart_items",
    "create_db_engine",
    "init_database",
    "metadata",
]
