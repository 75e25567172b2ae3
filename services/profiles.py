# trakn/services/profiles.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from datetime_utils import to_rfc3339_utc, utc_now
from services.errors import RemoteOperationError
from services.local_mirror import ProfileMirror
from services.remote_store import PostgrestStore
from services.sync_coordinator import SyncCoordinator


PROFILES_TABLE = "user_profiles"
PROFILE_KEY = "user_id"
WEIGHT_UNITS = ("lbs", "kg")

logger = logging.getLogger("trakn.sync")


def validate_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
    """Check the user-editable profile fields and return a clean copy."""

    try:
        age = profile["user_age"]
        weight = profile["user_weight"]
        unit = profile["user_weight_unit"]
        level = profile["user_fitness_level"]
    except KeyError as exc:
        raise ValueError(f"Missing profile field: {exc.args[0]}") from None
    limitations = profile.get("user_physical_limitations", "")

    if isinstance(age, bool) or not isinstance(age, int) or age <= 0:
        raise ValueError("user_age must be a positive integer")
    if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight <= 0:
        raise ValueError("user_weight must be a positive number")
    if unit not in WEIGHT_UNITS:
        raise ValueError(f"user_weight_unit must be one of {', '.join(WEIGHT_UNITS)}")
    if isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 5:
        raise ValueError("user_fitness_level must be an integer from 1 to 5")
    if not isinstance(limitations, str):
        raise ValueError("user_physical_limitations must be text")

    return {
        "user_age": age,
        "user_weight": float(weight),
        "user_weight_unit": unit,
        "user_fitness_level": level,
        "user_physical_limitations": limitations,
    }


class ProfileRepository:
    """Remote-first profile persistence sharing the workout offline path."""

    def __init__(self, remote: PostgrestStore, mirror: ProfileMirror, coordinator: SyncCoordinator):
        self.remote = remote
        self.mirror = mirror
        self.coordinator = coordinator

    async def save_profile(self, user_id: str, profile: Dict[str, Any]) -> bool:
        """Store the profile; returns False when it was queued for a later sync."""

        if not user_id:
            raise ValueError("No authenticated user")
        row = {PROFILE_KEY: user_id, **validate_profile(profile), "updated_at": to_rfc3339_utc(utc_now())}

        if self.coordinator.is_online:
            try:
                await self.remote.upsert(PROFILES_TABLE, row, on_conflict=PROFILE_KEY)
                await self.mirror.save(row)
                return True
            except RemoteOperationError as exc:
                logger.warning("Profile for %s saved offline, will sync when online: %s", user_id, exc)

        await self.mirror.save(row)
        await self.coordinator.queue_operation("update", PROFILES_TABLE, {**row, "id": user_id})
        return False

    async def load_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        if self.coordinator.is_online:
            try:
                rows = await self.remote.select(PROFILES_TABLE, {PROFILE_KEY: user_id})
            except RemoteOperationError as exc:
                logger.info("Loading profile from local mirror: %s", exc)
            else:
                if rows:
                    await self.mirror.save(rows[0])
                    return rows[0]
        return await self.mirror.get(user_id)


__all__ = ["PROFILES_TABLE", "PROFILE_KEY", "ProfileRepository", "validate_profile"]
