"""Local caches of remote rows so reads keep working offline."""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from models.user_profile import UserProfileRow
from models.workout import WorkoutRow
from storage.db import get_session, run_in_session


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)


def _load(payload: Optional[str]) -> Any:
    if not payload:
        return None
    try:
        return json.loads(payload)
    except json.JSONDecodeError:
        return None


def _to_dict(row: WorkoutRow) -> Dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "workout_type": row.workout_type,
        "data": _load(row.data),
        "input": _load(row.input),
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


class LocalMirror:
    """Async accessor for the ``workouts`` mirror table.

    Rows go in and come out as plain dicts shaped like the remote rows.
    """

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    async def save(self, row: Dict[str, Any]) -> None:
        def _put(session: Session) -> None:
            session.merge(
                WorkoutRow(
                    id=str(row["id"]),
                    user_id=str(row["user_id"]),
                    workout_type=row["workout_type"],
                    data=_dump(row.get("data")),
                    input=_dump(row.get("input")),
                    created_at=row["created_at"],
                    updated_at=row.get("updated_at") or row["created_at"],
                )
            )
            session.commit()

        await run_in_session(self._session_factory, _put)

    async def get(self, workout_id: str) -> Optional[Dict[str, Any]]:
        def _read(session: Session) -> Optional[Dict[str, Any]]:
            row = session.get(WorkoutRow, workout_id)
            return _to_dict(row) if row else None

        return await run_in_session(self._session_factory, _read)

    async def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        def _read(session: Session) -> List[Dict[str, Any]]:
            stmt = (
                select(WorkoutRow)
                .where(WorkoutRow.user_id == user_id)
                .order_by(WorkoutRow.created_at.desc())
            )
            return [_to_dict(row) for row in session.exec(stmt)]

        return await run_in_session(self._session_factory, _read)

    async def update(self, workout_id: str, **changes: Any) -> bool:
        def _update(session: Session) -> bool:
            row = session.get(WorkoutRow, workout_id)
            if row is None:
                return False
            for key, value in changes.items():
                if key in ("data", "input"):
                    value = _dump(value)
                if hasattr(row, key):
                    setattr(row, key, value)
            session.add(row)
            session.commit()
            return True

        return await run_in_session(self._session_factory, _update)

    async def delete(self, workout_id: str) -> None:
        def _delete(session: Session) -> None:
            row = session.get(WorkoutRow, workout_id)
            if row:
                session.delete(row)
                session.commit()

        await run_in_session(self._session_factory, _delete)

    async def clear(self) -> None:
        def _clear(session: Session) -> None:
            session.execute(delete(WorkoutRow))
            session.commit()

        await run_in_session(self._session_factory, _clear)


_PROFILE_FIELDS = (
    "user_age",
    "user_weight",
    "user_weight_unit",
    "user_fitness_level",
    "user_physical_limitations",
    "updated_at",
)


class ProfileMirror:
    """Single-row-per-user cache of ``user_profiles``."""

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    async def save(self, row: Dict[str, Any]) -> None:
        def _put(session: Session) -> None:
            values = {key: row[key] for key in _PROFILE_FIELDS if key in row}
            session.merge(UserProfileRow(user_id=str(row["user_id"]), **values))
            session.commit()

        await run_in_session(self._session_factory, _put)

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        def _read(session: Session) -> Optional[Dict[str, Any]]:
            row = session.get(UserProfileRow, user_id)
            if row is None:
                return None
            data = {key: getattr(row, key) for key in _PROFILE_FIELDS}
            data["user_id"] = row.user_id
            return data

        return await run_in_session(self._session_factory, _read)

    async def clear(self) -> None:
        def _clear(session: Session) -> None:
            session.execute(delete(UserProfileRow))
            session.commit()

        await run_in_session(self._session_factory, _clear)


__all__ = ["LocalMirror", "ProfileMirror"]
