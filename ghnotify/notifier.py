"""Desktop alerts for new GitHub notifications via notify-send."""

from __future__ import annotations

import subprocess
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

from .cache import CacheEntry

APP_NAME = "GitHub Notify"
NOTIFICATIONS_PAGE = "https://github.com/notifications"
MAX_BULK_REPOSITORIES = 5

_REASONS = {
    "assign": "Assigned",
    "author": "Author update",
    "comment": "New comment",
    "invitation": "Invitation",
    "manual": "Manual subscription",
    "mention": "Mentioned",
    "review_requested": "Review requested",
    "security_alert": "Security alert",
    "state_change": "State changed",
    "subscribed": "Subscribed",
    "team_mention": "Team mentioned",
}


class NotifierError(Exception):
    """Raised when a desktop notification cannot be shown."""


def format_title(entry: CacheEntry) -> str:
    """Title of a single-notification alert."""
    return f"GitHub - {entry.repository}"


def format_reason(reason: str) -> str:
    """Human-readable text for a notification reason."""
    return _REASONS.get(reason, "Notification")


def format_message(entry: CacheEntry) -> str:
    """Body of a single-notification alert."""
    reason_text = format_reason(entry.reason)
    if entry.type:
        return f"{reason_text} [{entry.type}]: {entry.title}"
    return f"{reason_text}: {entry.title}"


def format_bulk_message(entries: Sequence[CacheEntry]) -> str:
    """Summary body listing repositories with their notification counts."""
    counts = Counter(entry.repository for entry in entries)
    lines = []
    for index, (repo, num) in enumerate(counts.items()):
        if index >= MAX_BULK_REPOSITORIES:
            lines.append(f"... and {len(counts) - index} more repositories")
            break
        lines.append(f"• {repo}" if num == 1 else f"• {repo} ({num})")
    return "\n".join(lines)


def urgency_for(reason: str) -> str:
    """notify-send urgency level for a notification reason."""
    return "critical" if reason == "security_alert" else "normal"


def _handle_action(response: str) -> None:
    if response == "default":
        try:
            subprocess.run(["xdg-open", NOTIFICATIONS_PAGE], check=False)
        except OSError:
            pass


@dataclass
class Notifier:
    """Sends desktop notifications when enabled."""

    enabled: bool = True

    def send_notification(self, entry: CacheEntry) -> None:
        if not self.enabled:
            return
        self._send(format_title(entry), format_message(entry), urgency_for(entry.reason))

    def send_bulk_notification(self, entries: Sequence[CacheEntry]) -> None:
        if not self.enabled or not entries:
            return
        if len(entries) == 1:
            self.send_notification(entries[0])
            return
        title = f"GitHub - {len(entries)} new notifications"
        self._send(title, format_bulk_message(entries), "normal")

    def _send(self, title: str, message: str, urgency: str) -> None:
        args = [
            "notify-send",
            f"--app-name={APP_NAME}",
            f"--urgency={urgency}",
            "--action",
            "default=Open GitHub Notifications",
            "--wait",
            title,
            message,
        ]
        try:
            result = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise NotifierError(f"notify-send failed: {exc}, output: ") from exc
        output = result.stdout or ""
        if result.returncode != 0:
            raise NotifierError(
                f"notify-send failed: exit status {result.returncode}, output: {output}"
            )
        response = output.strip()
        if response == "default":
            threading.Thread(target=_handle_action, args=(response,), daemon=True).start()