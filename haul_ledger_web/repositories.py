"""Database access layer for the Haul Ledger web app."""

from __future__ import annotations

import json
from dataclasses import replace
from typing import List
from uuid import uuid4

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoResultFound

from haul_common import (
    FinancialRecord,
    RateConfig,
    record_from_document,
    record_to_document,
)

from .database import rate_settings, records, session_scope


class RecordsRepository:
    """Stores trip and expense records per anonymous user."""

    def __init__(self, engine: Engine, default_rates: RateConfig | None = None):
        self._engine = engine
        self._default_rates = default_rates or RateConfig()

    def create_record(self, user_id: str, record: FinancialRecord) -> FinancialRecord:
        """Persist a new record and return it with its generated ID."""

        record_id = uuid4().hex
        saved = replace(record, id=record_id)
        document = record_to_document(saved)
        with session_scope(self._engine) as session:
            session.execute(
                insert(records).values(
                    id=record_id,
                    user_id=user_id,
                    kind=saved.kind.value,
                    truck_id=saved.truck_id,
                    record_date=saved.date,
                    timestamp=saved.timestamp,
                    document=json.dumps(document),
                )
            )
        return saved

    def list_records(self, user_id: str) -> List[FinancialRecord]:
        """Return every record owned by ``user_id``, newest first."""

        with session_scope(self._engine) as session:
            rows = session.execute(
                select(records.c.id, records.c.document)
                .where(records.c.user_id == user_id)
                .order_by(records.c.timestamp.desc(), records.c.created_at.desc())
            ).all()
        return [self._row_to_record(row) for row in rows]

    def get_record(self, user_id: str, record_id: str) -> FinancialRecord:
        """Fetch a single record or raise :class:`NoResultFound`."""

        with session_scope(self._engine) as session:
            row = session.execute(
                select(records.c.id, records.c.document).where(
                    records.c.id == record_id, records.c.user_id == user_id
                )
            ).one_or_none()
        if row is None:
            raise NoResultFound(f"Record {record_id} not found")
        return self._row_to_record(row)

    def delete_record(self, user_id: str, record_id: str) -> None:
        """Remove a record; raises :class:`NoResultFound` for unknown IDs."""

        with session_scope(self._engine) as session:
            result = session.execute(
                delete(records).where(
                    records.c.id == record_id, records.c.user_id == user_id
                )
            )
            if result.rowcount == 0:
                raise NoResultFound(f"Record {record_id} not found")

    def get_rates(self, user_id: str) -> RateConfig:
        """Return the user's active rates, falling back to the defaults."""

        with session_scope(self._engine) as session:
            row = session.execute(
                select(rate_settings).where(rate_settings.c.user_id == user_id)
            ).one_or_none()
        if row is None:
            return self._default_rates
        return RateConfig.from_dict(row._mapping)

    def save_rates(self, user_id: str, rates: RateConfig) -> RateConfig:
        """Store ``rates`` for future trips; existing records are untouched."""

        values = rates.to_dict()
        with session_scope(self._engine) as session:
            exists = session.execute(
                select(rate_settings.c.user_id).where(
                    rate_settings.c.user_id == user_id
                )
            ).one_or_none()
            if exists is None:
                session.execute(insert(rate_settings).values(user_id=user_id, **values))
            else:
                session.execute(
                    update(rate_settings)
                    .where(rate_settings.c.user_id == user_id)
                    .values(**values)
                )
        return rates

    @staticmethod
    def _row_to_record(row) -> FinancialRecord:
        """Convert a SQLAlchemy row to a financial record."""

        values = row._mapping
        return record_from_document(json.loads(values["document"]), values["id"])
