"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "Trakn"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "trakn.db"
SYNC_LOG_PATH = LOG_DIR / "sync.log"


@dataclass(frozen=True)
class SyncSettings:
    retry_ceiling: int = 5
    interval_sec: int = 30
    operation_timeout_sec: float = 15.0
    probe_interval_sec: int = 10


SYNC = SyncSettings()


@dataclass(frozen=True)
class RemoteSettings:
    url: str = field(default_factory=lambda: os.environ.get("SUPABASE_URL", "").rstrip("/"))
    anon_key: str = field(default_factory=lambda: os.environ.get("SUPABASE_ANON_KEY", ""))
    timeout_sec: float = 20.0

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)


REMOTE = RemoteSettings()


@dataclass(frozen=True)
class UISettings:
    app_title: str = APP_NAME
    theme_mode: str = "system"
    color_scheme_seed: str = "#0EA5E9"
    window_min_width: int = 720
    window_min_height: int = 520
    online_color: str = "#16A34A"
    offline_color: str = "#DC2626"


UI = UISettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "LOG_DIR",
    "DB_PATH",
    "SYNC_LOG_PATH",
    "SYNC",
    "REMOTE",
    "UI",
    "RemoteSettings",
    "SyncSettings",
    "get_default_data_dir",
]
