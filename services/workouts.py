# trakn/services/workouts.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from datetime_utils import to_rfc3339_utc, utc_now
from services.errors import RemoteOperationError
from services.local_mirror import LocalMirror
from services.remote_store import PostgrestStore
from services.sync_coordinator import SyncCoordinator


WORKOUTS_TABLE = "workouts"

logger = logging.getLogger("trakn.sync")


def _now_iso() -> str:
    return to_rfc3339_utc(utc_now())


class WorkoutRepository:
    """Remote-first workout persistence with an offline fallback.

    Every write first goes to the remote store. When that fails, or the
    coordinator already knows we are offline, the change lands in the local
    mirror and a matching operation is queued for replay.
    """

    def __init__(self, remote: PostgrestStore, mirror: LocalMirror, coordinator: SyncCoordinator):
        self.remote = remote
        self.mirror = mirror
        self.coordinator = coordinator

    def _online(self) -> bool:
        return self.coordinator.is_online

    async def save_workout(
        self,
        user_id: str,
        workout: Dict[str, Any],
        workout_input: Dict[str, Any],
    ) -> str:
        if not user_id:
            raise ValueError("No authenticated user")
        if not workout:
            raise ValueError("No workout to save")

        now = _now_iso()
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "workout_type": workout.get("workout_type"),
            "data": workout,
            "input": workout_input,
            "created_at": now,
            "updated_at": now,
        }

        if self._online():
            try:
                await self.remote.insert(WORKOUTS_TABLE, row)
                await self.mirror.save(row)
                return row["id"]
            except RemoteOperationError as exc:
                logger.warning("Workout %s saved offline, will sync when online: %s", row["id"], exc)

        await self.mirror.save(row)
        await self.coordinator.queue_operation("create", WORKOUTS_TABLE, row)
        return row["id"]

    async def update_saved_workout(self, workout_id: str, workout: Dict[str, Any]) -> None:
        now = _now_iso()
        if self._online():
            try:
                await self.remote.update(WORKOUTS_TABLE, workout_id, {"data": workout, "updated_at": now})
                await self.mirror.update(workout_id, data=workout, updated_at=now)
                return
            except RemoteOperationError as exc:
                logger.warning("Workout %s updated offline: %s", workout_id, exc)

        await self.mirror.update(workout_id, data=workout, updated_at=now)
        await self.coordinator.queue_operation(
            "update",
            WORKOUTS_TABLE,
            {"id": workout_id, "data": workout, "updated_at": now},
        )

    async def delete_workout(self, workout_id: str) -> None:
        if self._online():
            try:
                await self.remote.delete(WORKOUTS_TABLE, workout_id)
                await self.mirror.delete(workout_id)
                return
            except RemoteOperationError as exc:
                logger.warning("Workout %s deleted offline: %s", workout_id, exc)

        await self.mirror.delete(workout_id)
        await self.coordinator.queue_operation("delete", WORKOUTS_TABLE, {"id": workout_id})

    async def load_workouts(self, user_id: str) -> List[Dict[str, Any]]:
        if not user_id:
            return []
        if self._online():
            try:
                rows = await self.remote.select(
                    WORKOUTS_TABLE, {"user_id": user_id}, order="created_at", descending=True
                )
            except RemoteOperationError as exc:
                logger.info("Loading workouts from local mirror: %s", exc)
            else:
                for row in rows:
                    await self.mirror.save(row)
                return rows
        return await self.mirror.list_by_user(user_id)

    async def load_workout(self, workout_id: str) -> Optional[Dict[str, Any]]:
        if self._online():
            try:
                rows = await self.remote.select(WORKOUTS_TABLE, {"id": workout_id})
            except RemoteOperationError as exc:
                logger.info("Loading workout %s from local mirror: %s", workout_id, exc)
            else:
                if rows:
                    await self.mirror.save(rows[0])
                    return rows[0]
                return None
        return await self.mirror.get(workout_id)


__all__ = ["WorkoutRepository", "WORKOUTS_TABLE"]
