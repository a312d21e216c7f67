"""Command-line interface: sync, list, open, clear, status and service management."""

from __future__ import annotations

import argparse
import re
import subprocess
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Sequence

from .cache import ZERO_TIME, Cache, _aware, default_cache_dir
from .formatting import (
    LIST_HEADER,
    LIST_SEPARATOR,
    contains_ignore_case,
    format_age,
    format_status,
    parse_status,
    render_table,
    truncate,
    waybar_output,
)
from .github import Client, GitHubError
from .notifier import Notifier, NotifierError
from .systemd import SystemdError, SystemdManager

VERSION = "1.0.0"
DEFAULT_INTERVAL = timedelta(seconds=10)
DEFAULT_LIMIT = 20

_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")
_INTEGER = re.compile(r"[+-]?[0-9]+")


class _CommandError(Exception):
    """A command failed; the message is shown to the user."""


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as 10s, 1m30s or 1.5h; raise ValueError if malformed."""
    rest = text
    sign = 1
    if rest[:1] in ("+", "-"):
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None or match.group(1) in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        try:
            total += Decimal(match.group(1)) * _UNIT_NS[match.group(2)]
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        pos = match.end()
    micros = int(total) // 1000
    return timedelta(microseconds=sign * micros)


def _duration_text(duration: timedelta) -> str:
    """Render a duration the way durations are shown to users, e.g. 1m30s."""
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    prefix = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000:
        return f"{prefix}{micros}µs"
    if micros < 1_000_000:
        whole, frac = divmod(micros, 1_000)
        fraction = "." + f"{frac:03d}".rstrip("0") if frac else ""
        return f"{prefix}{whole}{fraction}ms"
    hours, rem = divmod(micros, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    seconds, frac = divmod(rem, 1_000_000)
    fraction = "." + f"{frac:06d}".rstrip("0") if frac else ""
    text = f"{seconds}{fraction}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return prefix + text


def _duration_arg(text: str) -> timedelta:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def open_url(url: str) -> None:
    """Open a URL in the default browser without waiting for it."""
    if sys.platform.startswith("linux"):
        command = ["xdg-open", url]
    elif sys.platform == "darwin":
        command = ["open", url]
    elif sys.platform == "win32":
        command = ["rundll32", "url.dll,FileProtocolHandler", url]
    else:
        raise OSError(f"unsupported operating system: {sys.platform}")
    subprocess.Popen(command)


def _load_cache(cache_dir: Path) -> Cache:
    cache = Cache()
    try:
        cache.load(cache_dir)
    except (OSError, ValueError) as exc:
        raise _CommandError(f"failed to load cache: {exc}") from exc
    return cache


def _systemd_manager() -> SystemdManager:
    try:
        return SystemdManager()
    except (RuntimeError, OSError) as exc:
        raise _CommandError(f"failed to initialize systemd manager: {exc}") from exc


def _run_sync(args: argparse.Namespace) -> None:
    cache_dir = args.cache_dir
    if args.verbose:
        print(f"Starting sync with cache directory: {cache_dir}")

    cache = _load_cache(cache_dir)
    if args.verbose:
        print(f"Loaded cache with {len(cache.entries())} existing notifications")

    try:
        client = Client()
    except GitHubError as exc:
        raise _CommandError(f"failed to create GitHub client: {exc}") from exc
    try:
        client.test_auth()
    except GitHubError as exc:
        raise _CommandError(f"GitHub authentication failed: {exc}") from exc
    if args.verbose:
        print("GitHub authentication successful")

    try:
        notifications = client.fetch_notifications()
    except GitHubError as exc:
        raise _CommandError(f"failed to fetch notifications: {exc}") from exc
    if args.verbose:
        print(f"Fetched {len(notifications)} notifications from GitHub")

    if args.since > timedelta(0):
        cutoff = datetime.now(timezone.utc) - args.since
        notifications = [n for n in notifications if _aware(n.updated_at) > cutoff]
        if args.verbose:
            print(
                f"Filtered to {len(notifications)} notifications updated since "
                f"{_duration_text(args.since)} ago"
            )

    fresh = cache.add_notifications(notifications)
    if args.verbose:
        print(f"Found {len(fresh)} new notifications")

    if not args.no_notify and fresh:
        try:
            Notifier(enabled=True).send_bulk_notification(fresh)
        except NotifierError as exc:
            print(f"Warning: failed to send desktop notification: {exc}", file=sys.stderr)
        else:
            if args.verbose:
                print("Desktop notification sent")

    try:
        cache.save(cache_dir)
    except OSError as exc:
        raise _CommandError(f"failed to save cache: {exc}") from exc
    if args.verbose:
        print("Cache saved successfully")

    if args.waybar_output:
        print(waybar_output(cache.entries()))
        return

    if fresh:
        print(f"✓ {len(fresh)} new notifications found")
        if not args.no_notify:
            print("✓ Desktop notification sent")
    else:
        print("✓ No new notifications")


def _run_list(args: argparse.Namespace) -> None:
    cache = _load_cache(args.cache_dir)
    total = len(cache.entries())
    notifications = cache.entries()

    if args.repository:
        notifications = [
            n for n in notifications if contains_ignore_case(n.repository, args.repository)
        ]
    if args.reason:
        notifications = [n for n in notifications if n.reason == args.reason]

    notifications.sort(key=lambda n: _aware(n.updated_at), reverse=True)
    if args.limit > 0:
        notifications = notifications[: args.limit]

    if not notifications:
        print("No notifications found.")
        return

    now = datetime.now(timezone.utc)
    rows = [LIST_HEADER, LIST_SEPARATOR]
    for number, entry in enumerate(notifications, start=1):
        rows.append(
            (
                str(number),
                entry.repository,
                entry.type or "Unknown",
                entry.reason,
                format_age(now - _aware(entry.updated_at)),
                truncate(entry.title, 40),
                truncate(entry.web_url, 50),
            )
        )
    sys.stdout.write(render_table(rows))

    summary = f"\nShowing {len(notifications)} notifications"
    if args.limit > 0 and total > args.limit:
        summary += f" (limited from {total} total)"
    print(summary)


def _run_open(args: argparse.Namespace) -> None:
    raw = args.number
    if not _INTEGER.fullmatch(raw):
        raise _CommandError(f"invalid notification number: {raw}")
    number = int(raw)
    if number < 1:
        raise _CommandError("notification number must be greater than 0")

    notifications = _load_cache(args.cache_dir).entries()
    if not notifications:
        raise _CommandError("no notifications found. Run 'gh-notify sync' first")
    if number > len(notifications):
        raise _CommandError(
            f"notification number {number} not found. "
            f"Only {len(notifications)} notifications available"
        )

    entry = notifications[number - 1]
    if not entry.web_url:
        raise _CommandError(f"no URL available for notification {number}")
    if args.verbose:
        print(f"Opening: {entry.web_url}")
        print(f"Title: {entry.title}")
    try:
        open_url(entry.web_url)
    except OSError as exc:
        raise _CommandError(f"failed to open URL: {exc}") from exc
    print(f"✓ Opened notification: {entry.title}")


def _run_clear(args: argparse.Namespace) -> None:
    cache = _load_cache(args.cache_dir)
    count = len(cache.entries())
    if count == 0:
        print("Cache is already empty.")
        return

    if not args.force:
        print(f"This will clear {count} cached notifications.")
        print("Are you sure? [y/N]: ", end="", flush=True)
        response = sys.stdin.readline()
        if not response.endswith("\n"):
            raise _CommandError("failed to read input: EOF")
        if response.strip().lower() not in ("y", "yes"):
            print("Cancelled.")
            return

    cache.clear()
    try:
        cache.save(args.cache_dir)
    except OSError as exc:
        raise _CommandError(f"failed to save cleared cache: {exc}") from exc
    print(f"✓ Cache cleared ({count} notifications removed)")
    if args.verbose:
        print(f"Cache file updated: {args.cache_dir}")


def _run_install_service(args: argparse.Namespace) -> None:
    manager = _systemd_manager()
    interval_text = _duration_text(args.interval)
    if args.uninstall:
        if not manager.is_installed():
            print("ℹ️  Service is not installed")
            return
        if args.verbose:
            print("Uninstalling systemd service...")
        try:
            manager.uninstall()
        except SystemdError as exc:
            raise _CommandError(f"failed to uninstall service: {exc}") from exc
        print("✓ Service uninstalled successfully!")
        print("✓ Timer stopped and disabled")
        print("✓ Service files removed")
        return

    if manager.is_installed() and not args.dry_run:
        print("⚠️  Service is already installed")
        print("Use --uninstall first, or check status with: gh-notify status")
        return

    if args.dry_run:
        print(f"Installing gh-notify systemd service (interval: {interval_text})\n")
        try:
            manager.install(args.interval, True)
        except SystemdError as exc:
            raise _CommandError(str(exc)) from exc
        return

    if args.verbose:
        print(f"Installing systemd service with {interval_text} interval...")
    try:
        manager.install(args.interval, False)
    except SystemdError as exc:
        raise _CommandError(f"failed to install service: {exc}") from exc
    print("✓ Service installed successfully!")
    print(f"✓ Timer configured to run every {interval_text}")
    print("✓ Service enabled and started")
    print()
    print("The service will now run automatically on login.")
    print("Check status with: gh-notify status")
    print("View logs with: journalctl --user -u gh-notify.service -f")


def _run_status(args: argparse.Namespace) -> None:
    manager = _systemd_manager()
    print("=== Service Status ===")
    if not manager.is_installed():
        print("✗ Service not installed")
        print("  Install with: gh-notify install-service")
        return
    print("✓ Service installed")
    print()
    sys.stdout.write(format_status(parse_status(manager.status())))

    print("\n=== Cache Status ===")
    cache = Cache()
    try:
        cache.load(args.cache_dir)
    except (OSError, ValueError) as exc:
        print(f"⚠️  Failed to load cache: {exc}")
        return

    notifications = cache.entries()
    print(f"Cached notifications: {len(notifications)}")
    if cache.last_sync != ZERO_TIME:
        print(f"Last sync: {_aware(cache.last_sync).strftime('%Y-%m-%d %H:%M:%S')}")
    else:
        print("Last sync: Never")

    if notifications:
        print("\nRecent notifications:")
        for entry in notifications[:5]:
            print(f"  • {entry.repository}: {truncate(entry.title, 50)}")
        if len(notifications) > 5:
            print(f"  ... and {len(notifications) - 5} more")


def _add_global_options(parser: argparse.ArgumentParser, root: bool) -> None:
    def default(value):
        return value if root else argparse.SUPPRESS

    parser.add_argument(
        "--cache-dir",
        default=default(None),
        help="cache directory (default: ~/.cache/gh-notify)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=default(False), help="verbose output"
    )
    parser.add_argument(
        "--config",
        default=default(None),
        help="config file (default is $HOME/.gh-notify.yaml)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-notify",
        description="GitHub notification monitor with desktop alerts",
    )
    parser.add_argument("--version", action="version", version=f"gh-notify version {VERSION}")
    _add_global_options(parser, root=True)
    commands = parser.add_subparsers(dest="command", required=True)

    def command(name: str, help_text: str, handler: Callable) -> argparse.ArgumentParser:
        sub = commands.add_parser(name, help=help_text, description=help_text)
        _add_global_options(sub, root=False)
        sub.set_defaults(handler=handler)
        return sub

    sync = command("sync", "Sync GitHub notifications and alert on new ones", _run_sync)
    sync.add_argument(
        "--no-notify", action="store_true", help="skip desktop notifications, just update cache"
    )
    sync.add_argument(
        "--since",
        type=_duration_arg,
        default=timedelta(0),
        help="only check notifications updated since duration ago (e.g., 1h, 30m)",
    )
    sync.add_argument(
        "--waybar-output", action="store_true", help="output JSON for waybar integration"
    )

    listing = command("list", "List cached unread notifications", _run_list)
    listing.add_argument(
        "-l", "--limit", type=int, default=DEFAULT_LIMIT,
        help="maximum number of notifications to show",
    )
    listing.add_argument(
        "-r", "--repository", default="",
        help="filter by repository name (supports partial matching)",
    )
    listing.add_argument("--reason", default="", help="filter by notification reason")

    opener = command("open", "Open a notification URL in the browser", _run_open)
    opener.add_argument("number", metavar="notification-number")

    clear = command("clear", "Clear the notification cache", _run_clear)
    clear.add_argument("-f", "--force", action="store_true", help="skip confirmation prompt")

    install = command(
        "install-service",
        "Install and enable systemd user service for automatic syncing",
        _run_install_service,
    )
    install.add_argument(
        "--interval", type=_duration_arg, default=DEFAULT_INTERVAL,
        help="sync interval (e.g., 10s, 1m, 5m)",
    )
    install.add_argument(
        "--uninstall", action="store_true", help="remove the service instead of installing"
    )
    install.add_argument(
        "--dry-run", action="store_true", help="show what would be installed without doing it"
    )

    command("status", "Check the status of the gh-notify systemd service", _run_status)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else (0 if exc.code is None else 1)

    if not args.cache_dir:
        try:
            args.cache_dir = default_cache_dir()
        except RuntimeError as exc:
            print(f"Error getting default cache directory: {exc}", file=sys.stderr)
            return 1
    args.cache_dir = Path(args.cache_dir)

    try:
        args.handler(args)
    except _CommandError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())