"""Client for the GitHub notifications REST API."""

from __future__ import annotations

import os
import re
import subprocess
from datetime import datetime, timezone
from typing import Any, Iterable

import requests

from .cache import ZERO_TIME, CacheEntry, _parse_timestamp

API_URL = "https://api.github.com"

_WEB_PATTERNS = [
    (
        re.compile(r"https://api\.github\.com/repos/([^/]+)/([^/]+)/issues/([0-9]+)"),
        r"https://github.com/\1/\2/issues/\3",
    ),
    (
        re.compile(r"https://api\.github\.com/repos/([^/]+)/([^/]+)/pulls/([0-9]+)"),
        r"https://github.com/\1/\2/pull/\3",
    ),
    (
        re.compile(r"https://api\.github\.com/repos/([^/]+)/([^/]+)/releases/([0-9]+)"),
        r"https://github.com/\1/\2/releases/tag/\3",
    ),
    (
        re.compile(
            r"https://api\.github\.com/repos/([^/]+)/([^/]+)/issues/comments/([0-9]+)"
        ),
        r"https://github.com/\1/\2/issues",
    ),
]
_REPO_PREFIX = re.compile(r"https://api\.github\.com/repos/([^/]+)/([^/]+)/")


class GitHubError(Exception):
    """Raised when GitHub cannot be reached or answers unexpectedly."""


def resolve_token() -> str:
    """Find a GitHub token from the environment or the gh CLI."""
    for name in ("GH_TOKEN", "GITHUB_TOKEN"):
        value = os.environ.get(name, "").strip()
        if value:
            return value
    try:
        result = subprocess.run(
            ["gh", "auth", "token"], capture_output=True, text=True, check=False
        )
    except OSError as exc:
        raise GitHubError(
            "failed to create GitHub REST client: gh CLI is not available"
        ) from exc
    token = result.stdout.strip()
    if result.returncode != 0 or not token:
        raise GitHubError(
            "failed to create GitHub REST client: not logged in with gh"
        )
    return token


class Client:
    """Minimal REST client using the gh CLI's authentication."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = API_URL,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._token = token if token is not None else resolve_token()
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout

    def _get(self, path: str) -> Any:
        headers = {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github+json",
        }
        try:
            response = self._session.get(
                f"{self._base_url}/{path}", headers=headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise GitHubError(str(exc)) from exc
        if not response.ok:
            raise GitHubError(f"HTTP {response.status_code}: {response.reason}")
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubError("response is not valid JSON") from exc

    def fetch_notifications(self) -> list[CacheEntry]:
        """Fetch unread notifications."""
        try:
            payload = self._get("notifications")
        except GitHubError as exc:
            raise GitHubError(f"failed to fetch notifications: {exc}") from exc
        if not isinstance(payload, list):
            raise GitHubError("failed to fetch notifications: expected a list")
        return parse_notifications(payload, datetime.now(timezone.utc))

    def test_auth(self) -> None:
        """Check that the token is accepted; raise GitHubError otherwise."""
        try:
            payload = self._get("user")
        except GitHubError as exc:
            raise GitHubError(f"failed to authenticate with GitHub: {exc}") from exc
        if not isinstance(payload, dict) or "login" not in payload:
            raise GitHubError("invalid response from GitHub API")


def _string(mapping: Any, key: str) -> str:
    if isinstance(mapping, dict):
        value = mapping.get(key)
        if isinstance(value, str):
            return value
    return ""


def parse_notifications(response: Iterable[Any], now: datetime) -> list[CacheEntry]:
    """Turn raw API notification objects into cache entries stamped with now."""
    entries = []
    for item in response:
        if not isinstance(item, dict):
            continue
        ident = item.get("id")
        if not isinstance(ident, str) or not ident:
            continue
        subject = item.get("subject")
        api_url = _string(subject, "url")
        updated = _string(item, "updated_at")
        entries.append(
            CacheEntry(
                id=ident,
                repository=_string(item.get("repository"), "full_name"),
                title=_string(subject, "title"),
                reason=_string(item, "reason"),
                type=_string(subject, "type"),
                url=api_url,
                web_url=convert_api_url_to_web(api_url),
                timestamp=now,
                updated_at=parse_time(updated) if updated else ZERO_TIME,
            )
        )
    return entries


def parse_time(text: str) -> datetime:
    """Parse an RFC 3339 time; malformed or empty input gives the zero time."""
    if not text:
        return ZERO_TIME
    try:
        return _parse_timestamp(text)
    except ValueError:
        return ZERO_TIME


def convert_api_url_to_web(api_url: str) -> str:
    """Map a GitHub API URL to the matching web page URL."""
    if not api_url:
        return ""
    for pattern, template in _WEB_PATTERNS:
        match = pattern.fullmatch(api_url)
        if match:
            return match.expand(template)
    match = _REPO_PREFIX.match(api_url)
    if match:
        return f"https://github.com/{match.group(1)}/{match.group(2)}"
    return api_url