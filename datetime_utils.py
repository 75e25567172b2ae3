from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional


UTC = timezone.utc


def utc_now() -> datetime:
    return datetime.now(UTC)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch for ``dt`` (defaults to now)."""

    value = ensure_utc(dt) or utc_now()
    return int(value.timestamp() * 1000)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


_FRACTION = re.compile(r"\.(\d+)")


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp as stored in remote and mirror rows; UTC-aware or None."""

    if not value or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    # fromisoformat on 3.10 wants exactly 3 or 6 fractional digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_rfc3339_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to RFC3339 in UTC."""

    if dt is None:
        return None
    value = ensure_utc(dt)
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat().replace("+00:00", "Z")


__all__ = [
    "UTC",
    "ensure_utc",
    "epoch_millis",
    "parse_rfc3339",
    "to_rfc3339_utc",
    "utc_now",
]
