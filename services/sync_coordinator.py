from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Any, Callable, Dict, List, Optional

from core.settings import SYNC, SYNC_LOG_PATH
from datetime_utils import epoch_millis, to_rfc3339_utc, utc_now
from services.errors import OfflineError, StorageError
from services.remote_store import RemoteStore
from services.sync_queue import VALID_TYPES, SyncOperation, SyncQueue


def _ensure_logger() -> logging.Logger:
    logger = logging.getLogger("trakn.sync")
    if not logger.handlers:
        SYNC_LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(SYNC_LOG_PATH, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


@dataclass(frozen=True)
class SyncStatus:
    pending: int = 0
    synced: int = 0
    failed: int = 0
    last_sync_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "pending": self.pending,
            "synced": self.synced,
            "failed": self.failed,
            "lastSyncAt": to_rfc3339_utc(self.last_sync_at),
        }


@dataclass(frozen=True)
class SyncSnapshot:
    is_online: bool
    is_syncing: bool
    status: SyncStatus


@dataclass
class _DrainRequest:
    reason: str
    waiter: Optional[asyncio.Future] = field(default=None, repr=False)


class SyncCoordinator:
    """Replays queued operations against the remote store.

    Triggers are posted to a single-consumer channel; one worker task runs
    drain passes, so at most one pass is ever in flight. Triggers that land
    while a pass is running are folded into it rather than starting another.
    """

    def __init__(
        self,
        queue: SyncQueue,
        remote: RemoteStore,
        *,
        online: bool = True,
        retry_ceiling: int = SYNC.retry_ceiling,
        interval_sec: float = SYNC.interval_sec,
        operation_timeout: Optional[float] = SYNC.operation_timeout_sec,
    ) -> None:
        self.queue = queue
        self.remote = remote
        self.retry_ceiling = retry_ceiling
        self.interval_sec = interval_sec
        self.operation_timeout = operation_timeout
        self.logger = _ensure_logger()

        self._online = online
        self._syncing = False
        self._status = SyncStatus()
        self._requests: asyncio.Queue[_DrainRequest] = asyncio.Queue()
        self._listeners: List[Callable[[SyncSnapshot], None]] = []
        self._worker: Optional[asyncio.Task] = None
        self._ticker: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Observable state
    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def sync_status(self) -> SyncStatus:
        return self._status

    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(is_online=self._online, is_syncing=self._syncing, status=self._status)

    def subscribe(self, callback: Callable[[SyncSnapshot], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[SyncSnapshot], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self.logger.exception("Sync status listener %r failed", listener)

    def _publish(self, status: SyncStatus) -> None:
        self._status = status
        self._emit()

    def _set_syncing(self, value: bool) -> None:
        if self._syncing != value:
            self._syncing = value
            self._emit()

    # ------------------------------------------------------------------
    # Lifecycle
    def start(self) -> None:
        """Start the drain worker and the periodic trigger on the running loop."""

        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_worker(), name="trakn-sync-worker")
        if self._ticker is None or self._ticker.done():
            self._ticker = asyncio.create_task(self._run_ticker(), name="trakn-sync-ticker")
        self.logger.info("Sync coordinator started (online=%s)", self._online)

    async def stop(self) -> None:
        tasks = [task for task in (self._ticker, self._worker) if task is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        while True:
            try:
                request = self._requests.get_nowait()
            except asyncio.QueueEmpty:
                break
            if request.waiter is not None and not request.waiter.done():
                request.waiter.cancel()
            self._requests.task_done()
        self._worker = None
        self._ticker = None
        self.logger.info("Sync coordinator stopped")

    async def wait_idle(self) -> None:
        """Wait until every posted trigger has been handled."""

        await self._requests.join()

    # ------------------------------------------------------------------
    # Triggers
    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        self.logger.info("Connectivity changed: %s", "online" if online else "offline")
        self._emit()
        if online:
            self._post("online")

    def request_sync(self, reason: str = "manual") -> None:
        if self._online:
            self._post(reason)

    def _post(self, reason: str, waiter: Optional[asyncio.Future] = None) -> None:
        self._requests.put_nowait(_DrainRequest(reason, waiter))

    async def queue_operation(self, type: str, table: str, data: Dict[str, Any]) -> None:
        """Persist a remote mutation for later replay and nudge the worker."""

        if type not in VALID_TYPES:
            raise ValueError(f"Unsupported operation type: {type}")
        if not isinstance(data, dict) or data.get("id") in (None, ""):
            raise ValueError("Operation data must carry the target record id")

        operation = SyncOperation(
            id=str(uuid.uuid4()),
            type=type,
            table=table,
            data=dict(data),
            timestamp=epoch_millis(),
            retries=0,
        )
        await self.queue.enqueue(operation)
        self.logger.debug("Queued %s on %s (record %s)", type, table, operation.record_id)

        pending = await self.queue.count()
        self._publish(replace(self._status, pending=pending))

        if self._online:
            self._post("enqueue")

    async def force_sync_now(self) -> SyncStatus:
        if not self._online:
            raise OfflineError()
        if self._worker is None or self._worker.done():
            raise RuntimeError("Sync coordinator is not running; call start() first")
        waiter = asyncio.get_running_loop().create_future()
        self._post("forced", waiter)
        return await waiter

    async def reset(self) -> None:
        """Drop every queued operation and zero the status."""

        await self.queue.clear()
        self._publish(SyncStatus())
        self.logger.info("Sync queue cleared")

    # ------------------------------------------------------------------
    # Worker
    async def _run_ticker(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            if self._online and not self._syncing:
                self._post("periodic")

    async def _run_worker(self) -> None:
        while True:
            request = await self._requests.get()
            batch = [request]
            status: Optional[SyncStatus] = None
            error: Optional[BaseException] = None
            cancelled = False
            try:
                if self._online:
                    self.logger.debug("Drain pass triggered by %s", request.reason)
                    status = await self._drain_pass()
                else:
                    error = OfflineError()
            except StorageError as exc:
                self.logger.error("Drain pass aborted by local storage failure: %s", exc)
                error = exc
            except asyncio.CancelledError:
                cancelled = True
                raise
            except Exception as exc:
                self.logger.exception("Drain pass failed unexpectedly")
                error = exc
            finally:
                # Triggers that arrived mid-pass are satisfied by the pass that just ran
                while True:
                    try:
                        batch.append(self._requests.get_nowait())
                    except asyncio.QueueEmpty:
                        break
                for item in batch:
                    waiter = item.waiter
                    if waiter is not None and not waiter.done():
                        if cancelled:
                            waiter.cancel()
                        elif error is not None:
                            waiter.set_exception(error)
                        else:
                            waiter.set_result(status)
                    self._requests.task_done()

    async def _dispatch(self, operation: SyncOperation) -> None:
        if operation.type == "create":
            call = self.remote.insert(operation.table, operation.data)
        elif operation.type == "update":
            call = self.remote.update(operation.table, operation.record_id, operation.data)
        elif operation.type == "delete":
            call = self.remote.delete(operation.table, operation.record_id)
        else:
            raise ValueError(f"Unsupported operation type: {operation.type}")
        if self.operation_timeout:
            await asyncio.wait_for(call, timeout=self.operation_timeout)
        else:
            await call

    async def _drain_pass(self) -> SyncStatus:
        self._set_syncing(True)
        try:
            operations = await self.queue.drain_order()
            if not operations:
                status = SyncStatus(pending=0, synced=0, failed=0, last_sync_at=utc_now())
                self._publish(status)
                return status

            synced = 0
            failed = 0
            for operation in operations:
                try:
                    await self._dispatch(operation)
                except Exception as exc:
                    failed += 1
                    operation.retries += 1
                    reason = str(exc) or exc.__class__.__name__
                    self.logger.warning(
                        "Sync %s on %s (op %s) failed, attempt %s: %s",
                        operation.type,
                        operation.table,
                        operation.id,
                        operation.retries,
                        reason,
                    )
                    if operation.retries > self.retry_ceiling:
                        self.logger.error(
                            "Dropping op %s (%s on %s) after %s failed attempts",
                            operation.id,
                            operation.type,
                            operation.table,
                            operation.retries,
                        )
                        await self.queue.remove(operation.id)
                    else:
                        await self.queue.record_failure(operation.id, operation.retries, reason)
                    continue

                await self.queue.remove(operation.id)
                synced += 1

            pending = await self.queue.count()
            status = SyncStatus(pending=pending, synced=synced, failed=failed, last_sync_at=utc_now())
            self.logger.info("Drain pass finished: %s", status.as_dict())
            self._publish(status)
            return status
        finally:
            self._set_syncing(False)


__all__ = ["SyncCoordinator", "SyncSnapshot", "SyncStatus"]
