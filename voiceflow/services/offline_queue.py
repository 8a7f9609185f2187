"""Durable queue of relational-store mutations made while the database is unreachable."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from voiceflow.services.relational_store import (
    ConnectivityError,
    RelationalStoreError,
    RelationalStoreInterface,
)
from voiceflow.telemetry import metrics

logger = logging.getLogger(__name__)


class OperationType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def _operation_id() -> str:
    return f"op_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class QueuedOperation(BaseModel):
    id: str = Field(default_factory=_operation_id)
    type: OperationType
    target_table: str
    payload: dict[str, Any] = Field(default_factory=dict)
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = Field(default=0, ge=0)


_OPERATIONS = TypeAdapter(list[QueuedOperation])


class QueueStoreError(RuntimeError):
    """Raised when the persisted queue cannot be read or written."""


class QueueStore(ABC):
    @abstractmethod
    async def load(self) -> list[QueuedOperation]:
        ...

    @abstractmethod
    async def save(self, operations: list[QueuedOperation]) -> None:
        ...


class InMemoryQueueStore(QueueStore):
    def __init__(self, operations: Optional[list[QueuedOperation]] = None) -> None:
        self._operations = list(operations or [])

    async def load(self) -> list[QueuedOperation]:
        return [op.model_copy() for op in self._operations]

    async def save(self, operations: list[QueuedOperation]) -> None:
        self._operations = [op.model_copy() for op in operations]


class JsonFileQueueStore(QueueStore):
    """Queue persisted as a JSON array; writes go through a temp file and rename."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load_sync(self) -> list[QueuedOperation]:
        if not self._path.exists():
            return []
        raw = self._path.read_bytes()
        if not raw.strip():
            return []
        try:
            return _OPERATIONS.validate_json(raw)
        except ValidationError as exc:
            raise QueueStoreError(f"Corrupt offline queue at {self._path}: {exc}") from exc

    def _save_sync(self, operations: list[QueuedOperation]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=".queue-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(_OPERATIONS.dump_json(operations, indent=2))
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def load(self) -> list[QueuedOperation]:
        try:
            return await run_in_threadpool(self._load_sync)
        except OSError as exc:
            raise QueueStoreError(f"Failed to read offline queue: {exc}") from exc

    async def save(self, operations: list[QueuedOperation]) -> None:
        try:
            await run_in_threadpool(self._save_sync, operations)
        except OSError as exc:
            raise QueueStoreError(f"Failed to write offline queue: {exc}") from exc


OperationExecutor = Callable[[QueuedOperation], Awaitable[Optional[dict[str, Any]]]]


def validate_payload(op_type: OperationType, payload: dict[str, Any]) -> None:
    """Reject update/delete payloads that do not name the row they target."""

    if op_type is not OperationType.CREATE and payload.get("id") in (None, ""):
        raise ValueError(f"{op_type.value} operation requires an 'id' in its payload")


def store_executor(store: RelationalStoreInterface) -> OperationExecutor:
    """Apply queued operations to ``store``.

    ``update`` and ``delete`` payloads carry the row ``id``; ``update`` puts
    the new values under ``changes``.
    """

    async def execute(operation: QueuedOperation) -> Optional[dict[str, Any]]:
        payload = operation.payload
        validate_payload(operation.type, payload)
        if operation.type is OperationType.CREATE:
            return await store.insert(operation.target_table, payload)
        if operation.type is OperationType.UPDATE:
            return await store.update(
                operation.target_table, str(payload["id"]), payload.get("changes") or {}
            )
        await store.delete(operation.target_table, str(payload["id"]))
        return None

    return execute


@dataclass(frozen=True)
class ReplayReport:
    replayed: int = 0
    retained: int = 0
    dropped: int = 0
    skipped: bool = False


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of :meth:`OfflineQueue.execute_or_enqueue`."""

    applied: bool
    result: Optional[dict[str, Any]] = None
    operation: Optional[QueuedOperation] = None


class OfflineQueue:
    """Replay mutations in order once connectivity returns.

    A replayed operation that fails again has ``retry_count`` incremented and
    is dropped once it reaches ``max_retries``. Drops are logged, counted in
    ``dropped_total`` and exported as a metric.
    """

    def __init__(
        self,
        store: QueueStore,
        executor: OperationExecutor,
        *,
        max_retries: int = 3,
        online: bool = True,
    ) -> None:
        self._store = store
        self._execute = executor
        self._max_retries = max_retries
        self._online = online
        self._replaying = False
        self._lock = asyncio.Lock()
        self._dropped_total = 0

    @property
    def online(self) -> bool:
        return self._online

    @property
    def replaying(self) -> bool:
        return self._replaying

    @property
    def dropped_total(self) -> int:
        return self._dropped_total

    async def pending(self) -> list[QueuedOperation]:
        return await self._store.load()

    async def enqueue(
        self,
        op_type: OperationType | str,
        target_table: str,
        payload: dict[str, Any],
    ) -> QueuedOperation:
        op_type = OperationType(op_type)
        validate_payload(op_type, payload)
        operation = QueuedOperation(
            type=op_type,
            target_table=target_table,
            payload=dict(payload),
        )
        async with self._lock:
            operations = await self._store.load()
            operations.append(operation)
            await self._store.save(operations)
        logger.info(
            "Queued %s on %s id=%s (pending=%s)",
            operation.type.value,
            target_table,
            operation.id,
            len(operations),
        )
        return operation

    async def execute_or_enqueue(
        self,
        op_type: OperationType | str,
        target_table: str,
        payload: dict[str, Any],
    ) -> ExecutionResult:
        """Apply the mutation now, or queue it when the store is unreachable."""

        op_type = OperationType(op_type)
        validate_payload(op_type, payload)
        if not self._online:
            return ExecutionResult(
                applied=False,
                operation=await self.enqueue(op_type, target_table, payload),
            )

        candidate = QueuedOperation(
            type=op_type, target_table=target_table, payload=dict(payload)
        )
        try:
            result = await self._execute(candidate)
        except ConnectivityError as exc:
            logger.warning("Store unreachable, going offline: %s", exc)
            self._online = False
            return ExecutionResult(
                applied=False,
                operation=await self.enqueue(op_type, target_table, payload),
            )
        return ExecutionResult(applied=True, result=result)

    async def set_online(self, online: bool) -> Optional[ReplayReport]:
        """Record connectivity; an offline to online transition replays once."""

        was_offline = not self._online
        self._online = online
        if was_offline and online:
            logger.info("Back online, replaying offline queue")
            return await self.replay()
        return None

    async def replay(self) -> ReplayReport:
        if self._replaying:
            logger.info("Offline queue replay already running; skipping")
            return ReplayReport(skipped=True)

        self._replaying = True
        try:
            async with self._lock:
                snapshot = await self._store.load()

            replayed = 0
            dropped = 0
            remaining: list[QueuedOperation] = []
            for operation in snapshot:
                try:
                    await self._execute(operation)
                except Exception as exc:
                    if not isinstance(exc, RelationalStoreError):
                        logger.exception("Unexpected error replaying %s", operation.id)
                    retries = operation.retry_count + 1
                    if retries < self._max_retries:
                        remaining.append(operation.model_copy(update={"retry_count": retries}))
                        logger.warning(
                            "Replay of %s failed (attempt %s/%s): %s",
                            operation.id,
                            retries,
                            self._max_retries,
                            exc,
                        )
                    else:
                        dropped += 1
                        self._dropped_total += 1
                        metrics.record_dropped_operation(operation.target_table)
                        logger.warning(
                            "Dropping %s on %s id=%s after %s failed replays: %s",
                            operation.type.value,
                            operation.target_table,
                            operation.id,
                            retries,
                            exc,
                        )
                    continue
                replayed += 1
                logger.info(
                    "Replayed %s on %s id=%s",
                    operation.type.value,
                    operation.target_table,
                    operation.id,
                )

            async with self._lock:
                seen = {op.id for op in snapshot}
                # Keep anything enqueued while the replay was running.
                current = await self._store.load()
                arrived = [op for op in current if op.id not in seen]
                await self._store.save(remaining + arrived)
        finally:
            self._replaying = False

        return ReplayReport(replayed=replayed, retained=len(remaining), dropped=dropped)


__all__ = [
    "ExecutionResult",
    "InMemoryQueueStore",
    "JsonFileQueueStore",
    "OfflineQueue",
    "OperationExecutor",
    "OperationType",
    "QueueStore",
    "QueueStoreError",
    "QueuedOperation",
    "ReplayReport",
    "store_executor",
    "validate_payload",
]
