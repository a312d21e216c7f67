import io
import json
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import responses

from ghnotify import symbols
from ghnotify.cache import Cache, CacheEntry
from ghnotify.cli import main, open_url, parse_duration


def _entry(ident, repo, title, age, reason="mention", kind="Issue", web_url=None):
    now = datetime.now(timezone.utc)
    return CacheEntry(
        id=ident,
        repository=repo,
        title=title,
        reason=reason,
        type=kind,
        url=f"https://api.github.com/repos/{repo}/issues/{ident}",
        web_url=web_url if web_url is not None else f"https://github.com/{repo}/issues/{ident}",
        timestamp=now,
        updated_at=now - age,
    )


def _seed(cache_dir, entries):
    cache = Cache()
    cache.notifications = list(entries)
    cache.save(cache_dir)


@pytest.fixture
def seeded(tmp_path):
    cache_dir = tmp_path / "cache"
    _seed(
        cache_dir,
        [
            _entry("1", "octo/Alpha", "old issue", timedelta(hours=5)),
            _entry("2", "octo/beta", "newest issue", timedelta(minutes=1)),
            _entry("3", "other/gamma", "middle issue", timedelta(hours=1), reason="assign"),
        ],
    )
    return cache_dir


# --- parse_duration ---------------------------------------------------------


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10s", timedelta(seconds=10)),
        ("1m30s", timedelta(seconds=90)),
        ("1.5h", timedelta(minutes=90)),
        ("250ms", timedelta(milliseconds=250)),
        ("0", timedelta(0)),
        ("-5m", timedelta(minutes=-5)),
    ],
)
def test_parse_duration_values(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "10", "5x", "+", "."])
def test_parse_duration_rejects_malformed(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_parse_duration_combined_equals_parts():
    assert parse_duration("1h0m0s") == parse_duration("60m") == parse_duration("3600s")


# --- open_url ---------------------------------------------------------------


def test_open_url_linux(monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    with patch("ghnotify.cli.subprocess.Popen") as popen:
        result = open_url("https://github.com/octo/beta/issues/2")
    assert result is None
    launched = popen.call_args.args[0]
    assert launched == ["xdg-open", "https://github.com/octo/beta/issues/2"]


def test_open_url_darwin(monkeypatch):
    monkeypatch.setattr(sys, "platform", "darwin")
    with patch("ghnotify.cli.subprocess.Popen") as popen:
        result = open_url("https://github.com/notifications")
    assert result is None
    launched = popen.call_args.args[0]
    assert launched == ["open", "https://github.com/notifications"]


def test_open_url_unsupported_platform(monkeypatch):
    monkeypatch.setattr(sys, "platform", "sunos5")
    with patch("ghnotify.cli.subprocess.Popen") as popen:
        with pytest.raises(OSError, match="unsupported operating system"):
            open_url("https://github.com/notifications")
    assert popen.call_count == 0


# --- root -------------------------------------------------------------------


def test_version_flag(capsys):
    assert main(["--version"]) == 0
    assert "gh-notify version 1.0.0" in capsys.readouterr().out


def test_unknown_command_fails(capsys):
    assert main(["frobnicate"]) == 2


# --- list -------------------------------------------------------------------


def test_list_sorted_newest_first(seeded, capsys):
    assert main(["--cache-dir", str(seeded), "list"]) == 0
    out = capsys.readouterr().out
    assert "REPOSITORY" in out
    assert out.index("newest issue") < out.index("middle issue") < out.index("old issue")
    assert "Showing 3 notifications" in out
    assert "limited from" not in out


def test_list_filters_repository_case_insensitively(seeded, capsys):
    assert main(["--cache-dir", str(seeded), "list", "-r", "OCTO/a"]) == 0
    out = capsys.readouterr().out
    assert "old issue" in out
    assert "newest issue" not in out
    assert "Showing 1 notifications" in out


def test_list_filters_reason(seeded, capsys):
    assert main(["list", "--reason", "assign", "--cache-dir", str(seeded)]) == 0
    out = capsys.readouterr().out
    assert "middle issue" in out
    assert "old issue" not in out


def test_list_limit_summary(seeded, capsys):
    assert main(["--cache-dir", str(seeded), "list", "-l", "2"]) == 0
    out = capsys.readouterr().out
    assert "Showing 2 notifications (limited from 3 total)" in out
    assert "old issue" not in out


def test_list_nothing_found(seeded, capsys):
    assert main(["--cache-dir", str(seeded), "list", "--reason", "comment"]) == 0
    assert capsys.readouterr().out.strip() == "No notifications found."


def test_list_unknown_type_label(tmp_path, capsys):
    cache_dir = tmp_path / "c"
    _seed(cache_dir, [_entry("9", "octo/x", "typeless", timedelta(minutes=2), kind="")])
    assert main(["--cache-dir", str(cache_dir), "list"]) == 0
    assert "Unknown" in capsys.readouterr().out


# --- open -------------------------------------------------------------------


def test_open_first_notification(seeded, capsys, monkeypatch):
    monkeypatch.setattr(sys, "platform", "linux")
    with patch("ghnotify.cli.subprocess.Popen") as popen:
        assert main(["--cache-dir", str(seeded), "open", "1"]) == 0
    assert popen.call_args.args[0] == ["xdg-open", "https://github.com/octo/beta/issues/2"]
    assert "✓ Opened notification: newest issue" in capsys.readouterr().out


@pytest.mark.parametrize(
    "arg, message",
    [
        ("abc", "invalid notification number: abc"),
        ("0", "notification number must be greater than 0"),
        ("5", "notification number 5 not found. Only 3 notifications available"),
    ],
)
def test_open_errors(seeded, capsys, arg, message):
    assert main(["--cache-dir", str(seeded), "open", arg]) == 1
    assert message in capsys.readouterr().err


def test_open_empty_cache(tmp_path, capsys):
    assert main(["--cache-dir", str(tmp_path / "none"), "open", "1"]) == 1
    assert "no notifications found" in capsys.readouterr().err


def test_open_without_url(tmp_path, capsys):
    cache_dir = tmp_path / "c"
    _seed(cache_dir, [_entry("4", "octo/x", "no link", timedelta(minutes=3), web_url="")])
    assert main(["--cache-dir", str(cache_dir), "open", "1"]) == 1
    assert "no URL available for notification 1" in capsys.readouterr().err


# --- clear ------------------------------------------------------------------


def test_clear_force(seeded, capsys):
    assert main(["--cache-dir", str(seeded), "clear", "--force"]) == 0
    assert "✓ Cache cleared (3 notifications removed)" in capsys.readouterr().out
    cache = Cache()
    cache.load(seeded)
    assert cache.entries() == []


def test_clear_confirmed(seeded, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("YES\n"))
    assert main(["--cache-dir", str(seeded), "clear"]) == 0
    out = capsys.readouterr().out
    assert "This will clear 3 cached notifications." in out
    cache = Cache()
    cache.load(seeded)
    assert len(cache.entries()) == 0


def test_clear_cancelled(seeded, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO("n\n"))
    assert main(["--cache-dir", str(seeded), "clear"]) == 0
    assert "Cancelled." in capsys.readouterr().out
    cache = Cache()
    cache.load(seeded)
    assert len(cache.entries()) == 3


def test_clear_eof(seeded, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    assert main(["--cache-dir", str(seeded), "clear"]) == 1
    assert "failed to read input" in capsys.readouterr().err


def test_clear_empty(tmp_path, capsys):
    assert main(["--cache-dir", str(tmp_path / "x"), "clear"]) == 0
    assert capsys.readouterr().out.strip() == "Cache is already empty."


# --- status / install-service -----------------------------------------------


def test_status_not_installed(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    assert main(["--cache-dir", str(tmp_path / "c"), "status"]) == 0
    out = capsys.readouterr().out
    assert "=== Service Status ===" in out
    assert "✗ Service not installed" in out


def test_install_service_dry_run(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    args = ["--cache-dir", str(tmp_path / "c"), "install-service", "--dry-run", "--interval", "5m"]
    assert main(args) == 0
    out = capsys.readouterr().out
    assert "Installing gh-notify systemd service (interval: 5m0s)" in out
    assert "OnUnitActiveSec=5m" in out
    assert not (tmp_path / "home" / ".config" / "systemd" / "user" / "gh-notify.timer").exists()


def test_uninstall_when_not_installed(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    assert main(["--cache-dir", str(tmp_path / "c"), "install-service", "--uninstall"]) == 0
    assert "Service is not installed" in capsys.readouterr().out


def test_install_service_bad_interval(tmp_path):
    assert main(["--cache-dir", str(tmp_path), "install-service", "--interval", "soon"]) == 2


# --- sync -------------------------------------------------------------------


def _api_notifications():
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return [
        {
            "id": "101",
            "reason": "mention",
            "updated_at": stamp,
            "repository": {"full_name": "octo/alpha"},
            "subject": {
                "title": "Fix the build",
                "type": "Issue",
                "url": "https://api.github.com/repos/octo/alpha/issues/7",
            },
        },
        {
            "id": "102",
            "reason": "review_requested",
            "updated_at": stamp,
            "repository": {"full_name": "octo/beta"},
            "subject": {
                "title": "Add feature",
                "type": "PullRequest",
                "url": "https://api.github.com/repos/octo/beta/pulls/3",
            },
        },
    ]


def test_sync_waybar_then_no_new(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "token")
    cache_dir = tmp_path / "cache"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://api.github.com/user", json={"login": "octocat"})
        rsps.add(
            responses.GET, "https://api.github.com/notifications", json=_api_notifications()
        )
        args = ["--cache-dir", str(cache_dir), "sync", "--no-notify", "--waybar-output"]
        assert main(args) == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["text"] == f"{symbols.GITHUB} (2)"
        assert "octo/alpha" in payload["tooltip"]
        assert "Fix the build (mention)" in payload["tooltip"]

        assert main(["--cache-dir", str(cache_dir), "sync", "--no-notify"]) == 0
        assert "✓ No new notifications" in capsys.readouterr().out

    cache = Cache()
    cache.load(cache_dir)
    assert {entry.id for entry in cache.entries()} == {"101", "102"}
    assert {entry.web_url for entry in cache.entries()} == {
        "https://github.com/octo/alpha/issues/7",
        "https://github.com/octo/beta/pull/3",
    }


def test_sync_reports_new(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "token")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://api.github.com/user", json={"login": "octocat"})
        rsps.add(
            responses.GET, "https://api.github.com/notifications", json=_api_notifications()
        )
        assert main(["--cache-dir", str(tmp_path), "sync", "--no-notify"]) == 0
    out = capsys.readouterr().out
    assert "✓ 2 new notifications found" in out
    assert "Desktop notification sent" not in out


def test_sync_auth_failure(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "token")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://api.github.com/user", status=401)
        assert main(["--cache-dir", str(tmp_path), "sync", "--no-notify"]) == 1
    assert "GitHub authentication failed" in capsys.readouterr().err


def test_sync_corrupt_cache(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "token")
    (tmp_path / "notifications.json").write_text("{not json", encoding="utf-8")
    assert main(["--cache-dir", str(tmp_path), "sync"]) == 1
    assert "failed to load cache" in capsys.readouterr().err