# ghnotify

A command-line monitor for GitHub notifications. It fetches your unread
notifications, keeps a local cache of the ones that still need attention, and
sends a desktop alert through `notify-send` when new ones arrive. It can
install a systemd user timer so that syncing happens automatically, and can
print JSON for a waybar custom module.

## Installation

```
pip install .
```

This installs the `gh-notify` command.

## Authentication

Requests to the GitHub API use a token taken from the `GH_TOKEN` or
`GITHUB_TOKEN` environment variable; if neither is set, the token is read
from `gh auth token`, so an existing `gh` CLI login is enough.

## Usage

Fetch notifications, update the cache and alert on new ones:

```
gh-notify sync
gh-notify sync --no-notify        # only update the cache
gh-notify sync --since 1h         # only notifications updated in the last hour
gh-notify sync --waybar-output    # print {"text":...,"tooltip":...} for waybar
```

With one new notification the alert names its repository, reason and title;
with several it lists up to five repositories with their counts. Choosing the
alert's default action opens `https://github.com/notifications` with
`xdg-open`.

Show the cached unread notifications as a table, newest first:

```
gh-notify list
gh-notify list --limit 10 --repository myproject --reason mention
```

`--limit` defaults to 20 (0 or less shows all); `--repository` matches part of
the repository name regardless of ASCII letter case; `--reason` must match
exactly.

Open a notification in the browser by its position in the cache:

```
gh-notify open 1
```

Empty the cache (asks for confirmation unless `--force` is given):

```
gh-notify clear
gh-notify clear --force
```

Run sync on a timer as a systemd user service:

```
gh-notify install-service --interval 1m
gh-notify install-service --dry-run
gh-notify install-service --uninstall
gh-notify status
```

The unit files are written to `~/.config/systemd/user/gh-notify.service` and
`~/.config/systemd/user/gh-notify.timer`, after which the timer is enabled and
started with `systemctl --user`. The interval defaults to `10s` and accepts
durations such as `30s`, `1m30s` or `1.5h`; in the timer unit it is written as
whole seconds, minutes or hours (so `90s` becomes `1m`). `status` shows the
timer state from `systemctl --user status`, then the number of cached
notifications, the last sync time and the five first cached entries.

## Global options

- `--cache-dir DIR` — where the cache lives (default `~/.cache/gh-notify`);
  the cache file is `notifications.json` inside it.
- `-v`, `--verbose` — print progress details.
- `--version` — print the version.

## Cache behaviour

Every sync replaces the cache with the notifications that are currently
unread on GitHub, so anything handled there disappears; only notifications
whose IDs were not cached before count as new. When the cache is saved,
entries fetched more than 30 days ago are dropped and at most 500 entries are
kept, newest update first.

## Library use

The pieces behind the commands can be used directly:

- `ghnotify.cache` — `Cache` (`load`, `save`, `add_notifications`, `entries`,
  `clear`), `CacheEntry` and `default_cache_dir()`.
- `ghnotify.github` — `Client` (`fetch_notifications`, `test_auth`),
  `parse_notifications`, `parse_time`, `convert_api_url_to_web`, `GitHubError`.
- `ghnotify.notifier` — `Notifier` and the message formatting helpers.
- `ghnotify.systemd` — `SystemdManager`, `render_service`, `render_timer`,
  `format_duration`.
- `ghnotify.formatting` — table, age, status and waybar output helpers.

## Limitations

- The `--config` option is accepted but no configuration file is read.
- Notifications are never marked as read; the cache only mirrors GitHub.
- Desktop alerts need `notify-send`, and the service commands need systemd
  user sessions; other platforms are not supported for these.