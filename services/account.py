# trakn/services/account.py
from __future__ import annotations

import logging

from services.sync_coordinator import SyncCoordinator

logger = logging.getLogger("trakn.sync")


async def clear_local_data(coordinator: SyncCoordinator, *caches) -> None:
    """Wipe everything stored locally for the signed-in user (logout).

    Drops queued operations, zeroes the sync status and clears each local
    cache (anything with an async ``clear()``).
    """

    await coordinator.reset()
    for cache in caches:
        await cache.clear()
    logger.info("Local data cleared (%s caches)", len(caches))


__all__ = ["clear_local_data"]
