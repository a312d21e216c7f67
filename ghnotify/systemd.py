"""Installation of a systemd user timer that runs the sync command."""

from __future__ import annotations

import shutil
import subprocess
import sys
from datetime import timedelta
from pathlib import Path

SERVICE_FILE = "gh-notify.service"
TIMER_FILE = "gh-notify.timer"


class SystemdError(Exception):
    """Raised when the systemd unit files or systemctl fail."""


def format_duration(interval: timedelta) -> str:
    """Format an interval as whole seconds, minutes or hours for systemd."""
    seconds = interval.total_seconds()
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds / 60)}m"
    return f"{int(seconds / 3600)}h"


def render_service(binary_path: str | Path) -> str:
    """Text of the service unit that runs one sync."""
    return (
        "[Unit]\n"
        "Description=GitHub Notification Monitor\n"
        "After=network-online.target\n"
        "Wants=network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=oneshot\n"
        f"ExecStart={binary_path} sync\n"
        "StandardOutput=journal\n"
        "StandardError=journal\n"
        "# Restart on failure with delay\n"
        "Restart=on-failure\n"
        "RestartSec=30s\n"
        "\n"
        "[Install]\n"
        "WantedBy=default.target"
    )


def render_timer(interval: timedelta) -> str:
    """Text of the timer unit that triggers the service periodically."""
    every = format_duration(interval)
    return (
        "[Unit]\n"
        f"Description=Run GitHub notification sync every {every}\n"
        "Requires=gh-notify.service\n"
        "\n"
        "[Timer]\n"
        "OnBootSec=30s\n"
        f"OnUnitActiveSec={every}\n"
        "AccuracySec=1s\n"
        "Persistent=true\n"
        "\n"
        "[Install]\n"
        "WantedBy=timers.target"
    )


def _default_binary_path() -> str:
    argv0 = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if argv0 is not None and argv0.is_file():
        return str(argv0.resolve())
    found = shutil.which("gh-notify")
    if found:
        return found
    raise SystemdError("failed to get executable path")


class SystemdManager:
    """Manages the gh-notify unit files in the systemd user directory."""

    def __init__(
        self, service_dir: str | Path | None = None, binary_path: str | None = None
    ) -> None:
        if service_dir is None:
            service_dir = Path.home() / ".config" / "systemd" / "user"
        self.service_dir = Path(service_dir)
        self._binary_path = binary_path

    @property
    def service_file(self) -> Path:
        return self.service_dir / SERVICE_FILE

    @property
    def timer_file(self) -> Path:
        return self.service_dir / TIMER_FILE

    def install(self, interval: timedelta, dry_run: bool) -> None:
        """Write the unit files and enable the timer, or only show them."""
        binary_path = self._binary_path or _default_binary_path()
        if dry_run:
            self._show_dry_run(binary_path, interval)
            return
        try:
            self.service_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SystemdError(f"failed to create systemd user directory: {exc}") from exc
        try:
            self.service_file.write_text(render_service(binary_path), encoding="utf-8")
        except OSError as exc:
            raise SystemdError(f"failed to write service file: {exc}") from exc
        try:
            self.timer_file.write_text(render_timer(interval), encoding="utf-8")
        except OSError as exc:
            raise SystemdError(f"failed to write timer file: {exc}") from exc

        for args, what in (
            (("daemon-reload",), "failed to reload systemd daemon"),
            (("enable", TIMER_FILE), "failed to enable timer"),
            (("start", TIMER_FILE), "failed to start timer"),
        ):
            try:
                self._systemctl(*args)
            except SystemdError as exc:
                raise SystemdError(f"{what}: {exc}") from exc

    def uninstall(self) -> None:
        """Stop the timer, remove the unit files and reload systemd."""
        for action in ("stop", "disable"):
            try:
                self._systemctl(action, TIMER_FILE)
            except SystemdError:
                pass
        for path in (self.service_file, self.timer_file):
            try:
                path.unlink(missing_ok=True)
            except OSError:
                pass
        try:
            self._systemctl("daemon-reload")
        except SystemdError as exc:
            raise SystemdError(f"failed to reload systemd daemon: {exc}") from exc

    def status(self) -> str:
        """Output of systemctl status for the timer; a non-zero exit is not an error."""
        try:
            result = subprocess.run(
                ["systemctl", "--user", "status", TIMER_FILE, "--no-pager"],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError:
            return ""
        return result.stdout or ""

    def is_installed(self) -> bool:
        return self.service_file.exists() and self.timer_file.exists()

    def _systemctl(self, *args: str) -> None:
        command = " ".join(args)
        try:
            result = subprocess.run(
                ["systemctl", "--user", *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise SystemdError(f"systemctl {command} failed: {exc}") from exc
        if result.returncode != 0:
            raise SystemdError(f"systemctl {command} failed: {result.stdout or ''}")

    def _show_dry_run(self, binary_path: str, interval: timedelta) -> None:
        print("=== Dry Run: Service Installation ===")
        print(f"Service directory: {self.service_dir}")
        print(f"Binary path: {binary_path}")
        print(f"Sync interval: {format_duration(interval)}")
        print()
        print("--- gh-notify.service ---")
        print(render_service(binary_path))
        print("--- gh-notify.timer ---")
        print(render_timer(interval))
        print("--- Commands to run ---")
        print("systemctl --user daemon-reload")
        print("systemctl --user enable gh-notify.timer")
        print("systemctl --user start gh-notify.timer")