from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete, func
from sqlmodel import Session, select

from models.sync_operation import SyncOperationRow
from services.errors import StorageError
from storage.db import get_session, run_in_session


VALID_TYPES = {"create", "update", "delete"}


@dataclass
class SyncOperation:
    id: str
    type: str
    table: str
    data: Dict[str, Any]
    timestamp: int
    retries: int = 0
    last_error: Optional[str] = field(default=None, compare=False)

    @property
    def record_id(self) -> Any:
        return self.data.get("id")


def _to_row(operation: SyncOperation) -> SyncOperationRow:
    return SyncOperationRow(
        id=operation.id,
        type=operation.type,
        table_name=operation.table,
        data=json.dumps(operation.data, ensure_ascii=False, default=str),
        timestamp=operation.timestamp,
        retries=operation.retries,
        last_error=operation.last_error,
    )


def _from_row(row: SyncOperationRow) -> SyncOperation:
    try:
        data = json.loads(row.data)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Corrupted payload for queued operation {row.id}") from exc
    if not isinstance(data, dict):
        raise StorageError(f"Corrupted payload for queued operation {row.id}")
    return SyncOperation(
        id=row.id,
        type=row.type,
        table=row.table_name,
        data=data,
        timestamp=row.timestamp,
        retries=row.retries,
        last_error=row.last_error,
    )


class SyncQueue:
    """Durable FIFO of pending remote mutations, ordered by enqueue time."""

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    async def enqueue(self, operation: SyncOperation) -> None:
        """Insert ``operation``, overwriting any entry with the same id."""

        def _put(session: Session) -> None:
            session.merge(_to_row(operation))
            session.commit()

        await run_in_session(self._session_factory, _put)

    async def drain_order(self) -> List[SyncOperation]:
        def _read(session: Session) -> List[SyncOperationRow]:
            stmt = select(SyncOperationRow).order_by(
                SyncOperationRow.timestamp.asc(), SyncOperationRow.id.asc()
            )
            return list(session.exec(stmt))

        rows = await run_in_session(self._session_factory, _read)
        return [_from_row(row) for row in rows]

    async def get(self, op_id: str) -> Optional[SyncOperation]:
        def _read(session: Session) -> Optional[SyncOperationRow]:
            return session.get(SyncOperationRow, op_id)

        row = await run_in_session(self._session_factory, _read)
        return _from_row(row) if row else None

    async def remove(self, op_id: str) -> None:
        def _delete(session: Session) -> None:
            row = session.get(SyncOperationRow, op_id)
            if row:
                session.delete(row)
                session.commit()

        await run_in_session(self._session_factory, _delete)

    async def record_failure(self, op_id: str, retries: int, error: str) -> None:
        def _update(session: Session) -> None:
            row = session.get(SyncOperationRow, op_id)
            if not row:
                return
            row.retries = retries
            row.last_error = error[:1000]
            session.add(row)
            session.commit()

        await run_in_session(self._session_factory, _update)

    async def clear(self) -> None:
        def _clear(session: Session) -> None:
            session.execute(delete(SyncOperationRow))
            session.commit()

        await run_in_session(self._session_factory, _clear)

    async def count(self) -> int:
        def _count(session: Session) -> int:
            return int(session.exec(select(func.count()).select_from(SyncOperationRow)).one())

        return await run_in_session(self._session_factory, _count)


__all__ = ["SyncQueue", "SyncOperation", "VALID_TYPES"]
