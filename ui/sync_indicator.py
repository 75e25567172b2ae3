# ui/sync_indicator.py
from __future__ import annotations

from datetime import timezone

import flet as ft

from core.settings import UI
from datetime_utils import parse_rfc3339
from services.errors import OfflineError, SyncError
from services.sync_coordinator import SyncSnapshot


def format_timestamp(value) -> str:
    if isinstance(value, str):
        value = parse_rfc3339(value)
    if not value:
        return "never"
    if getattr(value, "tzinfo", None) is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def describe_snapshot(snapshot: SyncSnapshot) -> str:
    """One-line human summary of the sync state."""

    if snapshot.is_syncing:
        head = "Syncing…"
    elif snapshot.is_online:
        head = "Online"
    else:
        head = "Offline"
    status = snapshot.status
    parts = [head, f"{status.pending} pending"]
    if status.failed:
        parts.append(f"{status.failed} failed")
    parts.append(f"last sync {format_timestamp(status.last_sync_at)}")
    return " · ".join(parts)


class SyncIndicator:
    def __init__(self, app):
        self.app = app
        self.icon = ft.Icon(ft.Icons.CLOUD_OFF)
        self.label = ft.Text("", size=12)
        self.sync_btn = ft.TextButton("Sync now", icon=ft.Icons.SYNC, on_click=self.sync_now)
        self.view = ft.Row([self.icon, self.label, self.sync_btn], spacing=8)
        self.render(app.coordinator.snapshot())
        app.coordinator.subscribe(self.on_snapshot)

    def render(self, snapshot: SyncSnapshot) -> None:
        if snapshot.is_online:
            self.icon.name = ft.Icons.CLOUD_SYNC if snapshot.is_syncing else ft.Icons.CLOUD_DONE
            self.icon.color = UI.online_color
        else:
            self.icon.name = ft.Icons.CLOUD_OFF
            self.icon.color = UI.offline_color
        self.label.value = describe_snapshot(snapshot)
        self.sync_btn.disabled = snapshot.is_syncing

    def on_snapshot(self, snapshot: SyncSnapshot) -> None:
        self.render(snapshot)
        self.app.page.update()

    async def sync_now(self, _):
        try:
            await self.app.coordinator.force_sync_now()
        except OfflineError as exc:
            self.app.show_message(str(exc))
        except (SyncError, RuntimeError) as exc:
            self.app.show_message(f"Sync failed: {exc}")


__all__ = ["SyncIndicator", "describe_snapshot", "format_timestamp"]
