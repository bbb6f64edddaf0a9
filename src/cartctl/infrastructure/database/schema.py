"""SQLAlchemy Core table definitions for the cart database."""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, Table, Text

metadata = MetaData()

# One row per line item. Money is stored as TEXT to keep Decimal precision;
# position preserves insertion order across restarts.
cart_items = Table(
    "cart_items",
    metadata,
    Column("product_ref", Text, primary_key=True),
    Column("position", Integer, nullable=False),
    Column("unit_price", Text, nullable=False),
    Column("category_ref", Text, nullable=False, default="", server_default=""),
    Column("quantity", Integer, nullable=False),
    Column("notes", Text, nullable=False, default="", server_default=""),
    Column("name", Text, nullable=False, default="", server_default=""),
    Column("saved", Text, nullable=False),
)

# At most one row (id = 1): the code of the applied checkout coupon.
cart_coupon = Table(
    "cart_coupon",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("code", Text, nullable=False),
    Column("saved", Text, nullable=False),
)
