import logging

import pytest

from issue_comment_bot.github import GitHubError
from issue_comment_bot.issue import Issue
from issue_comment_bot.metadata import Metadata


class FakeStore:
    def __init__(self, comment_id=None):
        self.comment_id = comment_id
        self.saved = []

    def get_metadata(self, issue_number: int, issue=None):
        self.issue_data = issue
        return Metadata(issue_number, self.comment_id, store=self)

    def save(self, metadata):
        self.saved.append((metadata.issue_number, metadata.comment_id))


class FakeGitHub:
    def __init__(self, comments=None, new_id=101):
        self.comments = dict(comments or {})
        self.new_id = new_id
        self.created = []
        self.updated = []
        self.issue_reads = []

    def get_issue(self, issue_number: int):
        self.issue_reads.append(issue_number)
        if issue_number == 404:
            raise GitHubError(404, "GET", "/repos/o/r/issues/404", "Not Found")
        return {"number": issue_number, "body": ""}

    def get_comment(self, comment_id: int):
        return {"id": comment_id, "body": self.comments.get(comment_id)}

    def create_comment(self, issue_number: int, body: str):
        self.created.append((issue_number, body))
        return {"id": self.new_id} if self.new_id is not None else {}

    def update_comment(self, comment_id: int, body: str):
        self.updated.append((comment_id, body))
        self.comments[comment_id] = body
        return {"id": comment_id}


def test_publish_creates_and_persists_comment_id():
    gh = FakeGitHub(new_id=555)
    store = FakeStore()
    issue = Issue.get_issue(gh, 7, store)

    assert issue.publish_comment("hello") == "created"

    assert gh.created == [(7, "hello")]
    assert issue.metadata.comment_id == "555"
    assert store.saved == [(7, "555")]


def test_publish_skips_update_when_body_identical():
    gh = FakeGitHub(comments={42: "same"})
    store = FakeStore(comment_id="42")
    issue = Issue.get_issue(gh, 7, store)

    assert issue.publish_comment("same") == "unchanged"

    assert gh.updated == []
    assert gh.created == []
    assert store.saved == []


def test_publish_updates_when_body_differs():
    gh = FakeGitHub(comments={42: "old"})
    store = FakeStore(comment_id="42")
    issue = Issue.get_issue(gh, 7, store)

    assert issue.publish_comment("new") == "updated"

    assert gh.updated == [(42, "new")]
    assert gh.created == []
    assert store.saved == []


def test_publish_empty_content_without_tracked_comment_does_nothing():
    gh = FakeGitHub()
    store = FakeStore()
    issue = Issue.get_issue(gh, 7, store)

    assert issue.publish_comment("") == "skipped"

    assert gh.created == []
    assert issue.metadata.comment_id is None
    assert store.saved == []


def test_publish_empty_content_clears_tracked_comment_body():
    gh = FakeGitHub(comments={42: "old"})
    issue = Issue.get_issue(gh, 7, FakeStore(comment_id="42"))

    assert issue.publish_comment("") == "updated"
    assert gh.updated == [(42, "")]


def test_publish_warns_when_creation_returns_no_id(caplog):
    gh = FakeGitHub(new_id=None)
    store = FakeStore()
    issue = Issue.get_issue(gh, 7, store)

    with caplog.at_level(logging.WARNING, logger="issue_comment_bot.issue"):
        assert issue.publish_comment("hello") == "failed"

    assert "Failed to create comment." in caplog.text
    assert issue.metadata.comment_id is None
    assert store.saved == []


def test_get_comment_treats_null_body_as_empty():
    gh = FakeGitHub(comments={42: None})
    issue = Issue.get_issue(gh, 7, FakeStore(comment_id="42"))
    assert issue.get_comment() == ""


def test_get_comment_and_update_without_tracked_comment():
    gh = FakeGitHub()
    issue = Issue.get_issue(gh, 7, FakeStore())
    assert issue.get_comment() == ""
    issue.update_comment("x")
    assert gh.updated == []


def test_get_issue_propagates_missing_issue():
    with pytest.raises(GitHubError) as ei:
        Issue.get_issue(FakeGitHub(), 404, FakeStore())
    assert ei.value.status == 404


def test_second_run_updates_the_same_comment():
    gh = FakeGitHub(new_id=9)
    store = FakeStore()

    Issue.get_issue(gh, 3, store).publish_comment("v1")
    gh.comments[9] = "v1"
    store.comment_id = "9"
    Issue.get_issue(gh, 3, store).publish_comment("v2")

    assert len(gh.created) == 1
    assert gh.updated == [(9, "v2")]


def test_get_issue_hands_fetched_issue_to_store():
    gh = FakeGitHub()
    store = FakeStore()

    Issue.get_issue(gh, 7, store)

    assert gh.issue_reads == [7]
    assert store.issue_data == {"number": 7, "body": ""}
