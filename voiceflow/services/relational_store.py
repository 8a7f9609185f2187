"""Table-level persistence contract and its SQLAlchemy implementation."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voiceflow.models import Recording


class RelationalStoreError(RuntimeError):
    """Raised when a write or read against the relational store fails."""


class ConnectivityError(RelationalStoreError):
    """Raised when the store cannot be reached at all."""


class RecordNotFoundError(RelationalStoreError):
    """Raised when the addressed row does not exist."""


class RelationalStoreInterface(ABC):
    """Persistence contract used by the pipeline and the offline queue."""

    @abstractmethod
    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def get(self, table: str, record_id: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    async def update(
        self, table: str, record_id: str, changes: Mapping[str, Any]
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        ...


_MODELS = {
    "recordings": Recording,
}


def _model_for(table: str):
    try:
        return _MODELS[table]
    except KeyError:
        raise RelationalStoreError(f"Unknown table '{table}'") from None


def _to_dict(entity: Any) -> dict[str, Any]:
    mapper = sa_inspect(entity).mapper
    data = {column.key: getattr(entity, column.key) for column in mapper.column_attrs}
    if isinstance(data.get("id"), uuid.UUID):
        data["id"] = str(data["id"])
    return data


def _parse_id(record_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise RecordNotFoundError(f"Invalid record id '{record_id}'") from None


def _translate(exc: SQLAlchemyError, action: str) -> RelationalStoreError:
    if isinstance(exc, (OperationalError, InterfaceError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        return ConnectivityError(f"Database unreachable during {action}: {exc}")
    return RelationalStoreError(f"Database {action} failed: {exc}")


class SqlAlchemyRelationalStore(RelationalStoreInterface):
    """SQLAlchemy implementation of the relational store."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, table: str, record: Mapping[str, Any]) -> dict[str, Any]:
        model = _model_for(table)
        try:
            async with self._session_factory() as session:
                entity = model(**dict(record))
                session.add(entity)
                await session.commit()
                await session.refresh(entity)
                return _to_dict(entity)
        except OSError as exc:
            raise ConnectivityError(f"Database unreachable during insert: {exc}") from exc
        except SQLAlchemyError as exc:
            raise _translate(exc, "insert") from exc

    async def get(self, table: str, record_id: str) -> Optional[dict[str, Any]]:
        model = _model_for(table)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(model).where(model.id == _parse_id(record_id))
                )
                entity = result.scalar_one_or_none()
                return _to_dict(entity) if entity else None
        except OSError as exc:
            raise ConnectivityError(f"Database unreachable during get: {exc}") from exc
        except SQLAlchemyError as exc:
            raise _translate(exc, "get") from exc

    async def update(
        self, table: str, record_id: str, changes: Mapping[str, Any]
    ) -> dict[str, Any]:
        model = _model_for(table)
        try:
            async with self._session_factory() as session:
                entity = await session.get(model, _parse_id(record_id))
                if entity is None:
                    raise RecordNotFoundError(f"{table} record {record_id} not found")
                for key, value in changes.items():
                    setattr(entity, key, value)
                await session.commit()
                await session.refresh(entity)
                return _to_dict(entity)
        except OSError as exc:
            raise ConnectivityError(f"Database unreachable during update: {exc}") from exc
        except SQLAlchemyError as exc:
            raise _translate(exc, "update") from exc

    async def delete(self, table: str, record_id: str) -> None:
        model = _model_for(table)
        try:
            async with self._session_factory() as session:
                entity = await session.get(model, _parse_id(record_id))
                if entity is None:
                    raise RecordNotFoundError(f"{table} record {record_id} not found")
                await session.delete(entity)
                await session.commit()
        except OSError as exc:
            raise ConnectivityError(f"Database unreachable during delete: {exc}") from exc
        except SQLAlchemyError as exc:
            raise _translate(exc, "delete") from exc


__all__ = [
    "ConnectivityError",
    "RecordNotFoundError",
    "RelationalStoreError",
    "RelationalStoreInterface",
    "SqlAlchemyRelationalStore",
]
