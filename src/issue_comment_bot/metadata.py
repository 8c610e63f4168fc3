"""
Per-issue metadata: which bot comment belongs to an issue.

Two stores are provided:
  - S3MetadataStore: one small JSON object per issue in a bucket.
  - IssueBodyMetadataStore: a hidden HTML marker in the issue body.
"""

from __future__ import annotations

import importlib
import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .config import Settings
    from .github import GitHubClient

logger = logging.getLogger(__name__)

MARKER_NAME = "issue-comment-bot"
MARKER_PATTERN = re.compile(
    r"<!--\s*" + re.escape(MARKER_NAME) + r"\s*(\{(?:(?!-->)[^\n])*?\})\s*-->"
)


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


class MetadataStore(Protocol):
    def get_metadata(
        self, issue_number: int, issue: dict[str, Any] | None = None
    ) -> Metadata: ...

    def save(self, metadata: Metadata) -> None: ...


@dataclass
class Metadata:
    issue_number: int
    comment_id: str | None = None
    store: MetadataStore | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {"commentID": self.comment_id} if self.comment_id else {}

    @classmethod
    def from_dict(
        cls, issue_number: int, data: Any, store: MetadataStore | None = None
    ) -> Metadata:
        comment_id = data.get("commentID") if isinstance(data, dict) else None
        return cls(
            issue_number=issue_number,
            comment_id=str(comment_id) if comment_id not in (None, "") else None,
            store=store,
        )

    def set_metadata(self) -> None:
        if self.store is None:
            raise RuntimeError(f"metadata for issue #{self.issue_number} has no store")
        self.store.save(self)


def _is_missing_object(exc: Exception) -> bool:
    code = ((getattr(exc, "response", None) or {}).get("Error") or {}).get("Code")
    return str(code) in ("NoSuchKey", "404", "NotFound")


class S3MetadataStore:
    def __init__(
        self, bucket: str, prefix: str = "metadata", owner: str = "", repo: str = ""
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.owner = owner
        self.repo = repo

    def key(self, issue_number: int) -> str:
        parts = [p for p in (self.prefix, self.owner, self.repo) if p]
        parts.append(f"{int(issue_number)}.json")
        return "/".join(parts)

    def get_metadata(
        self, issue_number: int, issue: dict[str, Any] | None = None
    ) -> Metadata:
        s3 = _boto3().client("s3")
        try:
            obj = s3.get_object(Bucket=self.bucket, Key=self.key(issue_number))
        except Exception as e:
            if not _is_missing_object(e):
                raise
            return Metadata(issue_number, store=self)
        try:
            data = json.loads(obj["Body"].read())
        except ValueError:
            logger.warning("Ignoring malformed metadata object %s", self.key(issue_number))
            data = {}
        return Metadata.from_dict(issue_number, data, store=self)

    def save(self, metadata: Metadata) -> None:
        s3 = _boto3().client("s3")
        s3.put_object(
            Bucket=self.bucket,
            Key=self.key(metadata.issue_number),
            Body=json.dumps(metadata.to_dict()).encode("utf-8"),
            ContentType="application/json",
        )


def extract_marker(body: str | None) -> dict[str, Any]:
    """Return the metadata embedded in an issue body, or {}.

    The marker may sit anywhere in the body; the first one holding a JSON
    object wins.
    """
    for match in MARKER_PATTERN.finditer(body or ""):
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return {}


def embed_marker(body: str | None, data: dict[str, Any]) -> str:
    """Write the hidden metadata marker into a body.

    An existing marker is replaced in place and any duplicates are dropped;
    the surrounding text is left alone. Without one, the marker is appended.
    """
    text = body or ""
    marker = f"<!-- {MARKER_NAME} {json.dumps(data, separators=(',', ':'))} -->"
    if not MARKER_PATTERN.search(text):
        return f"{text.rstrip()}\n\n{marker}" if text.strip() else marker

    seen = []

    def replace(_match: re.Match[str]) -> str:
        if seen:
            return ""
        seen.append(True)
        return marker

    return MARKER_PATTERN.sub(replace, text)


class IssueBodyMetadataStore:
    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    def get_metadata(
        self, issue_number: int, issue: dict[str, Any] | None = None
    ) -> Metadata:
        if issue is None:
            issue = self.client.get_issue(issue_number)
        return Metadata.from_dict(issue_number, extract_marker(issue.get("body")), store=self)

    def save(self, metadata: Metadata) -> None:
        # Re-read so edits made since loading are not clobbered.
        issue = self.client.get_issue(metadata.issue_number)
        current = extract_marker(issue.get("body"))
        current.update(metadata.to_dict())
        self.client.update_issue_body(
            metadata.issue_number, embed_marker(issue.get("body"), current)
        )


def build_store(settings: Settings, client: GitHubClient) -> MetadataStore:
    if settings.metadata_backend == "s3":
        if not settings.metadata_bucket:
            raise ValueError("METADATA_BUCKET is required for the s3 metadata backend")
        return S3MetadataStore(
            settings.metadata_bucket,
            settings.metadata_prefix,
            owner=settings.owner,
            repo=settings.repo,
        )
    if settings.metadata_backend != "issue-body":
        raise ValueError(f"unknown METADATA_BACKEND: {settings.metadata_backend}")
    return IssueBodyMetadataStore(client)
