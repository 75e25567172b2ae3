# ui/app_shell.py
from __future__ import annotations

import os

import flet as ft

from core.settings import UI
from services.account import clear_local_data
from services.connectivity import ConnectivityMonitor
from services.local_mirror import LocalMirror, ProfileMirror
from services.profiles import PROFILE_KEY, PROFILES_TABLE, ProfileRepository
from services.remote_store import PostgrestStore
from services.sync_coordinator import SyncCoordinator
from services.sync_queue import SyncQueue
from services.workouts import WorkoutRepository

from .sync_indicator import SyncIndicator, format_timestamp


def _describe_profile(profile) -> str:
    if not profile:
        return "No profile saved"
    return (
        f"Age {profile['user_age']} · {profile['user_weight']:g} {profile['user_weight_unit']}"
        f" · fitness level {profile['user_fitness_level']}"
    )


class AppShell:
    def __init__(self, page: ft.Page):
        self.page = page
        self.page.title = UI.app_title
        self.page.horizontal_alignment = ft.CrossAxisAlignment.STRETCH
        self.page.vertical_alignment = ft.MainAxisAlignment.START

        self.user_id = os.environ.get("TRAKN_USER_ID", "")

        self.remote = PostgrestStore(
            access_token=os.environ.get("TRAKN_ACCESS_TOKEN") or None,
            key_columns={PROFILES_TABLE: PROFILE_KEY},
        )
        self.coordinator = SyncCoordinator(SyncQueue(), self.remote, online=False)
        self.mirror = LocalMirror()
        self.profile_mirror = ProfileMirror()
        self.workouts = WorkoutRepository(self.remote, self.mirror, self.coordinator)
        self.profiles = ProfileRepository(self.remote, self.profile_mirror, self.coordinator)
        self.monitor = ConnectivityMonitor(self.remote.health, self.coordinator.set_online)

        self.indicator = SyncIndicator(self)
        self.workout_list = ft.ListView(expand=True, spacing=8)
        self.refresh_btn = ft.IconButton(icon=ft.Icons.REFRESH, on_click=self.refresh)
        self.logout_btn = ft.IconButton(icon=ft.Icons.LOGOUT, tooltip="Log out", on_click=self.logout)
        self.profile_text = ft.Text("", size=12)

        self.root = ft.Column(
            controls=[
                ft.Row(
                    [
                        ft.Text("Saved workouts", size=22, weight=ft.FontWeight.BOLD),
                        ft.Row([self.refresh_btn, self.logout_btn], spacing=4),
                    ],
                    alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                ),
                self.indicator.view,
                self.profile_text,
                ft.Divider(height=1),
                self.workout_list,
            ],
            expand=True,
            spacing=12,
        )

    # ---------- mount ----------
    def mount(self):
        self.page.controls.clear()
        self.page.add(ft.Container(self.root, expand=True, padding=20))
        self.page.update()
        self.page.run_task(self._start)

    async def _start(self):
        self.coordinator.start()
        await self.monitor.check_now()
        self.monitor.start()
        await self.load()

    # ---------- data ----------
    async def load(self):
        profile = await self.profiles.load_profile(self.user_id)
        self.profile_text.value = _describe_profile(profile)
        rows = await self.workouts.load_workouts(self.user_id)
        self.workout_list.controls = [self._workout_tile(row) for row in rows]
        if not rows:
            self.workout_list.controls = [ft.Text("No saved workouts yet.")]
        self.page.update()

    async def refresh(self, _):
        await self.load()

    async def logout(self, _):
        await clear_local_data(self.coordinator, self.mirror, self.profile_mirror)
        self.user_id = ""
        await self.load()
        self.show_message("Signed out; local data cleared")

    def _workout_tile(self, row: dict) -> ft.Control:
        data = row.get("data") or {}
        title = data.get("name") or data.get("title") or row.get("workout_type") or "Workout"

        async def _delete(_):
            await self.workouts.delete_workout(row["id"])
            await self.load()

        return ft.ListTile(
            title=ft.Text(title),
            subtitle=ft.Text(f"{row.get('workout_type') or ''} · {format_timestamp(row.get('created_at'))}"),
            trailing=ft.IconButton(icon=ft.Icons.DELETE_OUTLINE, on_click=_delete),
        )

    # ---------- helpers ----------
    def show_message(self, text: str) -> None:
        self.page.snack_bar = ft.SnackBar(ft.Text(text))
        self.page.snack_bar.open = True
        self.page.update()
