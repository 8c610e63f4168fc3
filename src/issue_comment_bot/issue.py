"""
Create-or-update of the single bot comment tracked on an issue.
"""

from __future__ import annotations

import json
import logging

from .github import GitHubClient
from .metadata import Metadata, MetadataStore

logger = logging.getLogger(__name__)


class Issue:
    def __init__(self, client: GitHubClient, number: int, metadata: Metadata) -> None:
        self.client = client
        self.number = number
        self.metadata = metadata

    def publish_comment(self, content: str) -> str:
        """Create the tracked comment, or update it when the content changed.

        Returns one of "created", "updated", "unchanged", "skipped", "failed".
        """
        logger.info("Publishing comment to PR #%s", self.number)
        logger.debug("Comment content: %s", json.dumps(content, ensure_ascii=False))

        if self.metadata.comment_id:
            if self.get_comment() == content:
                return "unchanged"
            self.update_comment(content)
            return "updated"

        if not content:
            return "skipped"

        new_comment_id = self.create_comment(content)
        if not new_comment_id:
            logger.warning("Failed to create comment.")
            return "failed"

        self.metadata.comment_id = new_comment_id
        self.metadata.set_metadata()
        return "created"

    def get_comment(self) -> str:
        if not self.metadata.comment_id:
            return ""
        data = self.client.get_comment(int(self.metadata.comment_id))
        return data.get("body") or ""

    def create_comment(self, body: str) -> str | None:
        if not body:
            return None
        data = self.client.create_comment(self.number, body)
        comment_id = (data or {}).get("id")
        return str(comment_id) if comment_id is not None else None

    def update_comment(self, body: str) -> None:
        if not self.metadata.comment_id:
            return
        self.client.update_comment(int(self.metadata.comment_id), body)

    @classmethod
    def get_issue(
        cls, client: GitHubClient, issue_number: int, store: MetadataStore
    ) -> Issue:
        # Raises GitHubError (404) when the issue does not exist.
        data = client.get_issue(issue_number)
        return cls(client, issue_number, store.get_metadata(issue_number, issue=data))
