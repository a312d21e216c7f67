"""Local store of unread GitHub notifications."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable

DEFAULT_MAX_ENTRIES = 500
MAX_AGE = timedelta(days=30)
CACHE_VERSION = "1.0"
CACHE_FILE_NAME = "notifications.json"
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def _aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, raising ValueError when it is malformed."""
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset)
    return datetime(
        int(year),
        int(month),
        int(day),
        int(hour),
        int(minute),
        int(second),
        microsecond,
        tzinfo=tz,
    )


def _format_timestamp(moment: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fractional zeros removed."""
    moment = _aware(moment)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


def _text_field(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _time_field(data: dict, key: str) -> datetime:
    value = data.get(key)
    if value is None:
        return ZERO_TIME
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a timestamp string")
    return _parse_timestamp(value)


@dataclass(frozen=True)
class CacheEntry:
    """One unread notification as stored in the cache."""

    id: str
    repository: str = ""
    title: str = ""
    reason: str = ""
    type: str = ""
    url: str = ""
    web_url: str = ""
    timestamp: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "repository": self.repository,
            "title": self.title,
            "reason": self.reason,
            "type": self.type,
            "url": self.url,
            "web_url": self.web_url,
            "timestamp": _format_timestamp(self.timestamp),
            "updated_at": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        if not isinstance(data, dict):
            raise ValueError("cache entry must be a JSON object")
        return cls(
            id=_text_field(data, "id"),
            repository=_text_field(data, "repository"),
            title=_text_field(data, "title"),
            reason=_text_field(data, "reason"),
            type=_text_field(data, "type"),
            url=_text_field(data, "url"),
            web_url=_text_field(data, "web_url"),
            timestamp=_time_field(data, "timestamp"),
            updated_at=_time_field(data, "updated_at"),
        )


@dataclass
class Cache:
    """Unread notifications plus the time of the last sync."""

    version: str = CACHE_VERSION
    last_sync: datetime = ZERO_TIME
    notifications: list[CacheEntry] = field(default_factory=list)
    max_entries: int = DEFAULT_MAX_ENTRIES

    def load(self, cache_dir: str | Path) -> None:
        """Read the cache file; a missing file leaves the cache empty."""
        directory = Path(cache_dir)
        directory.mkdir(parents=True, exist_ok=True)
        try:
            raw = (directory / CACHE_FILE_NAME).read_text(encoding="utf-8")
        except FileNotFoundError:
            return

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"failed to unmarshal cache: {exc}") from exc
        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError("failed to unmarshal cache: expected a JSON object")

        try:
            if "version" in data:
                self.version = _text_field(data, "version")
            if "last_sync" in data:
                self.last_sync = _time_field(data, "last_sync")
            if "notifications" in data:
                items = data["notifications"] or []
                if not isinstance(items, list):
                    raise ValueError("notifications must be a list")
                self.notifications = [CacheEntry.from_dict(item) for item in items]
            if "max_entries" in data:
                value = data["max_entries"]
                if value is not None and (
                    not isinstance(value, int) or isinstance(value, bool)
                ):
                    raise ValueError("max_entries must be an integer")
                self.max_entries = value or 0
        except ValueError as exc:
            raise ValueError(f"failed to unmarshal cache: {exc}") from exc

        if self.max_entries == 0:
            self.max_entries = DEFAULT_MAX_ENTRIES

    def save(self, cache_dir: str | Path) -> None:
        """Prune stale entries and write the cache file."""
        directory = Path(cache_dir)
        directory.mkdir(parents=True, exist_ok=True)
        self._cleanup()
        document = {
            "version": self.version,
            "last_sync": _format_timestamp(self.last_sync),
            "notifications": [entry.to_dict() for entry in self.notifications],
            "max_entries": self.max_entries,
        }
        (directory / CACHE_FILE_NAME).write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )

    def add_notifications(self, notifications: Iterable[CacheEntry]) -> list[CacheEntry]:
        """Replace the cached entries and return those not seen before."""
        incoming = list(notifications)
        self.last_sync = datetime.now(timezone.utc)
        known = {entry.id for entry in self.notifications}
        fresh = [entry for entry in incoming if entry.id not in known]
        self.notifications = incoming
        return fresh

    def entries(self) -> list[CacheEntry]:
        """Return a copy of the cached entries."""
        return list(self.notifications)

    def clear(self) -> None:
        self.notifications = []
        self.last_sync = ZERO_TIME

    def _cleanup(self) -> None:
        now = datetime.now(timezone.utc)
        valid = [
            entry
            for entry in self.notifications
            if now - _aware(entry.timestamp) <= MAX_AGE
        ]
        valid.sort(key=lambda entry: _aware(entry.updated_at), reverse=True)
        self.notifications = valid[: max(self.max_entries, 0)]


def default_cache_dir() -> Path:
    """Return the default cache directory under the user's home."""
    return Path.home() / ".cache" / "gh-notify"