"""Online/offline detection for hosts without browser connectivity events."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.settings import SYNC


logger = logging.getLogger("trakn.sync")


class ConnectivityMonitor:
    """Polls ``probe`` and reports transitions to ``on_change``.

    The first probe always reports; afterwards only changes are reported.
    A probe that raises counts as offline.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        on_change: Callable[[bool], None],
        *,
        interval_sec: float = SYNC.probe_interval_sec,
    ) -> None:
        self._probe = probe
        self._on_change = on_change
        self.interval_sec = interval_sec
        self._last: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def last_state(self) -> Optional[bool]:
        return self._last

    async def check_now(self) -> bool:
        try:
            online = bool(await self._probe())
        except Exception as exc:
            logger.warning("Connectivity probe failed: %s", exc)
            online = False
        if online != self._last:
            self._last = online
            self._on_change(online)
        return online

    async def _loop(self) -> None:
        while True:
            await self.check_now()
            await asyncio.sleep(self.interval_sec)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="trakn-connectivity")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = ["ConnectivityMonitor"]
