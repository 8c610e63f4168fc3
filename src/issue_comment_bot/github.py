"""
Minimal GitHub REST API client using stdlib urllib.

Routes are written the Octokit way, e.g.
``"GET /repos/{owner}/{repo}/issues/{issue_number}"``.
"""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
USER_AGENT = "IssueCommentBot/1.0"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class GitHubError(RuntimeError):
    """Non-2xx response from the GitHub API."""

    def __init__(self, status: int, method: str, url: str, message: str = "") -> None:
        self.status = status
        self.method = method
        self.url = url
        self.message = message
        super().__init__(f"GitHub API {status} on {method} {url}: {message or 'no message'}")


class GitHubClient:
    def __init__(
        self,
        api_url: str,
        token: str | None,
        owner: str,
        repo: str,
        timeout: int = 10,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.owner = owner
        self.repo = repo
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> GitHubClient:
        return cls(
            settings.github_api_url,
            settings.github_token,
            settings.owner,
            settings.repo,
            timeout=settings.http_timeout_seconds,
        )

    # ----- Helpers -----
    def _headers(self, has_body: bool) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _build(self, route: str, params: dict[str, Any]) -> tuple[str, str, bytes | None]:
        method, _, path = route.strip().partition(" ")
        method = method.upper()
        values = {"owner": self.owner, "repo": self.repo, **params}

        def fill(match: re.Match[str]) -> str:
            name = match.group(1)
            if values.get(name) in (None, ""):
                raise ValueError(f"missing route parameter: {name}")
            return urllib.parse.quote(str(values[name]), safe="")

        url = self.api_url + _PLACEHOLDER.sub(fill, path.strip())
        used = set(_PLACEHOLDER.findall(path))
        rest = {k: v for k, v in params.items() if k not in used and k not in ("owner", "repo")}

        if method in ("GET", "HEAD", "DELETE"):
            if rest:
                url += "?" + urllib.parse.urlencode(rest)
            return method, url, None
        return method, url, json.dumps(rest).encode("utf-8")

    def request(self, route: str, **params: Any) -> Any:
        method, url, body = self._build(route, params)
        req = urllib.request.Request(
            url, data=body, method=method, headers=self._headers(body is not None)
        )
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                data = resp.read()
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", "replace") if e.fp else ""
            message = ""
            try:
                message = str(json.loads(raw).get("message") or "")
            except (ValueError, AttributeError):
                message = raw[:200]
            raise GitHubError(e.code, method, url, message) from e
        if not data:
            return {}
        return json.loads(data.decode("utf-8"))

    # ----- Issues -----
    def get_issue(self, issue_number: int) -> dict[str, Any]:
        return self.request(
            "GET /repos/{owner}/{repo}/issues/{issue_number}", issue_number=issue_number
        )

    def update_issue_body(self, issue_number: int, body: str) -> dict[str, Any]:
        return self.request(
            "PATCH /repos/{owner}/{repo}/issues/{issue_number}",
            issue_number=issue_number,
            body=body,
        )

    # ----- Comments -----
    def get_comment(self, comment_id: int) -> dict[str, Any]:
        return self.request(
            "GET /repos/{owner}/{repo}/issues/comments/{comment_id}", comment_id=comment_id
        )

    def create_comment(self, issue_number: int, body: str) -> dict[str, Any]:
        return self.request(
            "POST /repos/{owner}/{repo}/issues/{issue_number}/comments",
            issue_number=issue_number,
            body=body,
        )

    def update_comment(self, comment_id: int, body: str) -> dict[str, Any]:
        return self.request(
            "PATCH /repos/{owner}/{repo}/issues/comments/{comment_id}",
            comment_id=comment_id,
            body=body,
        )
