"""Database setup utilities for the Haul Ledger web app."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

metadata = MetaData()

# Each row holds one record document; the indexed columns duplicate fields
# from ``document`` so listings can filter and sort without decoding JSON.
records = Table(
    "records",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("kind", String(16), nullable=False),
    Column("truck_id", String(64), nullable=False),
    Column("record_date", Date, nullable=False),
    Column("timestamp", BigInteger, nullable=False),
    Column("document", Text, nullable=False),
    Column(
        "created_at", DateTime(timezone=True), server_default=func.now(), nullable=False
    ),
)

rate_settings = Table(
    "rate_settings",
    metadata,
    Column("user_id", String(64), primary_key=True),
    Column("fuel_price_per_liter", String(32), nullable=False),
    Column("revenue_per_ton", String(32), nullable=False),
    Column("labor_cost_per_ton", String(32), nullable=False),
    Column(
        "updated_at",
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    ),
)


def create_db_engine(database_url: str) -> Engine:
    """Return a SQLAlchemy engine for the provided URL."""

    return create_engine(database_url, future=True)


def init_schema(engine: Engine) -> None:
    """Create database tables if they do not exist."""

    metadata.create_all(engine)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Context manager that yields a SQLAlchemy :class:`Session`."""

    with Session(engine, future=True) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
