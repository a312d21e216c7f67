"""Text shown by the commands: tables, ages, service status and waybar output."""

from __future__ import annotations

import json
import string
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Sequence

from . import symbols
from .cache import CacheEntry, _aware

LIST_HEADER = ("#", "REPOSITORY", "TYPE", "REASON", "AGE", "TITLE", "URL")
LIST_SEPARATOR = ("-", "----------", "----", "------", "---", "-----", "---")
TABLE_PADDING = 2
MAX_LOG_LINES = 5

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

_REASON_ICONS = {
    "review_requested": symbols.REVIEW_REQUESTED,
    "assign": symbols.ASSIGN,
    "mention": symbols.MENTION,
    "author": symbols.AUTHOR,
    "state_change": symbols.STATE_CHANGE,
}
_TYPE_ICONS = {
    "PullRequest": symbols.PULL_REQUEST,
    "Issue": symbols.ISSUE,
    "Release": symbols.RELEASE,
}


def format_age(duration: timedelta) -> str:
    """Compact age such as 42s, 7m, 3h or 12d."""
    seconds = duration.total_seconds()
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds / 60)}m"
    if seconds < 24 * 3600:
        return f"{int(seconds / 3600)}h"
    return f"{int(seconds / 3600 / 24)}d"


def truncate(text: str, max_len: int) -> str:
    """Cut text to max_len characters, ending it with an ellipsis when cut."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def contains_ignore_case(text: str, substr: str) -> bool:
    """Substring test that ignores the case of ASCII letters only."""
    if not substr:
        return True
    return substr.translate(_ASCII_LOWER) in text.translate(_ASCII_LOWER)


def render_table(rows: Iterable[Sequence[str]]) -> str:
    """Align cells into columns two spaces apart; the last cell of a row is not padded."""
    table = [[str(cell) for cell in row] for row in rows]
    widths: dict[int, int] = {}
    for row in table:
        for column, cell in enumerate(row[:-1]):
            widths[column] = max(widths.get(column, 0), len(cell) + TABLE_PADDING)
    lines = []
    for row in table:
        padded = [cell.ljust(widths[column]) for column, cell in enumerate(row[:-1])]
        padded.extend(row[-1:])
        lines.append("".join(padded) + "\n")
    return "".join(lines)


@dataclass
class StatusSummary:
    """The parts of systemctl status output that are shown to the user."""

    active: str = ""
    enabled: str = ""
    trigger: str = ""
    logs: list[str] = field(default_factory=list)


def parse_status(output: str) -> StatusSummary:
    """Pick the timer state, enablement, next trigger and recent logs from systemctl output."""
    summary = StatusSummary()
    in_logs = False
    for raw in output.split("\n"):
        line = raw.strip()
        if "Active:" in line:
            summary.active = line
        elif "Loaded:" in line and "enabled" in line:
            summary.enabled = "enabled"
        elif "Loaded:" in line and "disabled" in line:
            summary.enabled = "disabled"
        elif "Trigger:" in line or "Triggered:" in line:
            summary.trigger = line

        if in_logs and line and len(summary.logs) < MAX_LOG_LINES:
            summary.logs.append(line)

        if "Journal begins" in line or "Logs begin" in line:
            in_logs = True
    return summary


def format_status(summary: StatusSummary) -> str:
    """Render a status summary as the lines shown by the status command."""
    lines = []
    if summary.active:
        if "active (waiting)" in summary.active:
            lines.append(f"✓ Timer status: {summary.active}\n")
        elif "inactive" in summary.active:
            lines.append(f"⚠️  Timer status: {summary.active}\n")
        else:
            lines.append(f"Timer status: {summary.active}\n")
    if summary.enabled:
        if summary.enabled == "enabled":
            lines.append(f"✓ Timer enabled: {summary.enabled}\n")
        else:
            lines.append(f"⚠️  Timer enabled: {summary.enabled}\n")
    if summary.trigger:
        lines.append(f"Next run: {summary.trigger.removeprefix('Trigger: ')}\n")
    if summary.logs:
        lines.append("\nRecent logs:\n")
        lines.extend(f"  {log}\n" for log in summary.logs)
    return "".join(lines)


def notification_icon(reason: str, notif_type: str) -> str:
    """Glyph for a notification, chosen by reason first and then by type."""
    if reason in _REASON_ICONS:
        return _REASON_ICONS[reason]
    return _TYPE_ICONS.get(notif_type, symbols.DEFAULT_NOTIF)


def build_tooltip(notifications: Sequence[CacheEntry]) -> str:
    """Notifications grouped by repository, newest first within each group."""
    if not notifications:
        return "No pending notifications"

    ordered = sorted(notifications, key=lambda entry: _aware(entry.updated_at), reverse=True)
    ordered.sort(key=lambda entry: entry.repository)

    parts = ["GitHub Notifications:\n"]
    current = ""
    for entry in ordered:
        if entry.repository != current:
            if current:
                parts.append("\n")
            parts.append(f"{symbols.REPOSITORY} {entry.repository}:\n")
            current = entry.repository
        icon = notification_icon(entry.reason, entry.type)
        parts.append(f"  {icon} {entry.title} ({entry.reason})\n")
    return "".join(parts)


def waybar_output(notifications: Sequence[CacheEntry]) -> str:
    """JSON object with text and tooltip for a waybar custom module."""
    if notifications:
        payload = {
            "text": f"{symbols.GITHUB} ({len(notifications)})",
            "tooltip": build_tooltip(notifications),
        }
    else:
        payload = {"text": f"{symbols.GITHUB} (0)", "tooltip": "No notifications"}
    encoded = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    for char, escape in _JSON_ESCAPES.items():
        encoded = encoded.replace(char, escape)
    return encoded