"""
AWS Lambda handler: publish (create or update) the bot comment on an issue.

Event body: {"issue": <number>, "body": "<markdown>"}
"""

from __future__ import annotations

import base64
import json
import logging
import os
import time
from typing import Any

from .config import load_settings
from .github import GitHubClient, GitHubError
from .issue import Issue
from .metadata import build_store

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level_name = (os.getenv("LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger.setLevel(level)
    root = logging.getLogger()
    if root.level and root.level > level:
        root.setLevel(level)


def _rid(context: Any) -> str | None:
    return getattr(context, "aws_request_id", None)


def _log(msg: str, **fields: Any) -> None:
    try:
        rec = {"msg": msg, **fields}
        logger.info(json.dumps(rec, ensure_ascii=False))
    except (TypeError, ValueError):
        # Fallback to plain log
        logger.info("%s | %s", msg, fields)


def _response(status: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _get_body(event: dict[str, Any]) -> dict[str, Any]:
    if "headers" not in event and "requestContext" not in event:
        # Direct invocation: the event is the payload.
        return event
    body = event.get("body")
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body or b"")
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    try:
        data = json.loads(body or "{}")
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _get_header(event: dict[str, Any], name: str) -> str | None:
    headers = event.get("headers") or {}
    for k, v in headers.items():
        if k.lower() == name.lower():
            return v
    return None


def _get_query_param(event: dict[str, Any], name: str) -> str | None:
    qs = event.get("queryStringParameters") or {}
    if isinstance(qs, dict):
        val = qs.get(name)
        if val is not None:
            return val
    raw = event.get("rawQueryString") or ""
    for part in raw.split("&"):
        if part.startswith(name + "="):
            return part.split("=", 1)[1]
    return None


def _extract_request(payload: dict[str, Any]) -> tuple[int | None, str | None]:
    number = payload.get("issue", payload.get("issue_number"))
    if isinstance(number, dict):
        number = number.get("number")
    if isinstance(number, bool):
        number = None
    try:
        issue_number = int(number) if number is not None else None
    except (TypeError, ValueError):
        issue_number = None
    if issue_number is not None and issue_number <= 0:
        issue_number = None

    # An explicit "" is a real request; a missing field is not.
    content = payload.get("body", payload.get("content"))
    return issue_number, content if isinstance(content, str) else None


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    _configure_logging()
    settings = load_settings()
    start_ts = time.time()

    # 1) Verify shared secret (header or ?token=)
    if settings.webhook_shared_secret:
        supplied = _get_header(event, "X-Webhook-Secret") or _get_query_param(event, "token")
        if supplied != settings.webhook_shared_secret:
            _log("auth_failed", rid=_rid(context), reason="token_mismatch")
            return _response(401, {"error": "unauthorized"})

    # 2) Parse request
    issue_number, content = _extract_request(_get_body(event))
    if issue_number is None:
        _log("bad_request_no_issue", rid=_rid(context))
        return _response(400, {"error": "issue number is required"})
    if content is None:
        _log("bad_request_no_body", rid=_rid(context), issue=issue_number)
        return _response(400, {"error": "body is required"})

    # 3) Configuration
    if not settings.owner or not settings.repo:
        _log("config_error_missing_repository", rid=_rid(context))
        return _response(500, {"error": "GITHUB_REPOSITORY not configured"})
    if not settings.github_token:
        _log("config_error_missing_token", rid=_rid(context))
        return _response(500, {"error": "GITHUB_TOKEN not found"})

    client = GitHubClient.from_settings(settings)

    # 4) Load issue + metadata, publish
    try:
        store = build_store(settings, client)
        issue = Issue.get_issue(client, issue_number, store)
        result = issue.publish_comment(content)
    except GitHubError as e:
        logger.exception("GitHub request failed")
        _log("github_error", rid=_rid(context), issue=issue_number, status=e.status)
        return _response(502, {"error": f"github request failed: {e.status}"})
    except Exception as e:
        logger.exception("Publishing comment failed")
        _log("publish_error", rid=_rid(context), issue=issue_number, error=str(e))
        return _response(500, {"error": f"publish failed: {e}"})

    _log(
        "ok",
        rid=_rid(context),
        issue=issue_number,
        result=result,
        commentId=issue.metadata.comment_id,
        ms_total=int((time.time() - start_ts) * 1000),
    )
    return _response(200, {"result": result, "commentID": issue.metadata.comment_id})
