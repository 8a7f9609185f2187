"""Error translation and id handling of the SQLAlchemy store."""

from __future__ import annotations

import asyncio
import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from voiceflow.services.relational_store import (
    ConnectivityError,
    RecordNotFoundError,
    RelationalStoreError,
    SqlAlchemyRelationalStore,
    _parse_id,
    _translate,
)


def test_operational_errors_mean_the_database_is_unreachable():
    exc = OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    translated = _translate(exc, "insert")

    assert isinstance(translated, ConnectivityError)
    assert "insert" in str(translated)


def test_constraint_violations_are_plain_store_errors():
    exc = IntegrityError("INSERT", {}, ValueError("duplicate key value"))

    translated = _translate(exc, "insert")

    assert type(translated) is RelationalStoreError


def test_malformed_ids_are_reported_as_missing_rows():
    with pytest.raises(RecordNotFoundError):
        _parse_id("not-a-uuid")


class EmptySession:
    def __init__(self) -> None:
        self.deleted: list = []
        self.commits = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def get(self, model, key):
        return None

    async def delete(self, entity):
        self.deleted.append(entity)

    async def commit(self):
        self.commits += 1


def test_deleting_a_missing_row_is_reported():
    session = EmptySession()
    store = SqlAlchemyRelationalStore(lambda: session)

    with pytest.raises(RecordNotFoundError):
        asyncio.run(store.delete("recordings", str(uuid.uuid4())))

    assert session.deleted == []
    assert session.commits == 0
