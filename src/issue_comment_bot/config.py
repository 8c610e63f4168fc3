"""
Configuration helpers and defaults.

Centralize tunables to avoid magic numbers in code/tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_API_URL = "https://api.github.com"


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None else default


@dataclass(frozen=True)
class Settings:
    github_api_url: str
    owner: str
    repo: str
    github_token: str | None
    webhook_shared_secret: str | None
    metadata_backend: str
    metadata_bucket: str | None
    metadata_prefix: str
    http_timeout_seconds: int


def _split_repository(value: str | None) -> tuple[str, str]:
    owner, _, repo = (value or "").strip().partition("/")
    if not owner or not repo or "/" in repo:
        return "", ""
    return owner, repo


def load_settings() -> Settings:
    """Load settings from environment with safe defaults for local tests."""

    owner, repo = _split_repository(_env("GITHUB_REPOSITORY"))

    return Settings(
        github_api_url=(_env("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        owner=owner,
        repo=repo,
        github_token=_env("GITHUB_TOKEN") or None,
        webhook_shared_secret=_env("WEBHOOK_SHARED_SECRET"),
        metadata_backend=(_env("METADATA_BACKEND", "issue-body") or "issue-body").lower(),
        metadata_bucket=_env("METADATA_BUCKET"),
        metadata_prefix=(_env("METADATA_PREFIX", "metadata") or "metadata").strip("/"),
        http_timeout_seconds=int(_env("HTTP_TIMEOUT_SECONDS", "10") or 10),
    )
