"""Shared test fixtures and configuration."""

import pytest

from pr_threshold.exceptions import UpstreamError
from pr_threshold.github_client import PullRequestSnapshot, SourceControlHost


class FakeHost(SourceControlHost):
    """In-memory host recording every call; operations in ``fail_on`` raise."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.calls: list[tuple] = []
        self.fail_on = set(fail_on)

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if operation in self.fail_on:
            raise UpstreamError(operation, RuntimeError("502 Bad Gateway"))

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    def create_comment(self, owner, repo, number, body):
        self._record("create_comment", owner, repo, number, body)
        return f"https://github.com/{owner}/{repo}/pull/{number}#issuecomment-1"

    def create_status(self, owner, repo, sha, state, description, context):
        self._record("create_status", owner, repo, sha, state, description, context)
        return f"https://api.github.com/repos/{owner}/{repo}/statuses/{sha}"

    def close_pull_request(self, owner, repo, number):
        self._record("close_pull_request", owner, repo, number)
        return f"https://github.com/{owner}/{repo}/pull/{number}"


def make_payload(action: str = "opened", changed_files: int = 5, **pr_fields) -> dict:
    """Build a minimal pull_request webhook payload."""
    pull_request = {
        "number": 7,
        "state": "open",
        "html_url": "https://github.com/octo/widgets/pull/7",
        "changed_files": changed_files,
        "commits": 3,
        "comments": 1,
        "additions": 120,
        "deletions": 40,
        "head": {"sha": "a" * 40},
        "base": {"repo": {"name": "widgets", "owner": {"login": "octo"}}},
    }
    pull_request.update(pr_fields)
    return {
        "action": action,
        "number": 7,
        "pull_request": pull_request,
        "repository": {"name": "widgets", "owner": {"login": "octo"}},
    }


def make_pr(changed_files: int = 5) -> PullRequestSnapshot:
    return PullRequestSnapshot(
        owner="octo",
        repo="widgets",
        number=7,
        head_sha="a" * 40,
        base_owner="octo",
        base_repo="widgets",
        state="open",
        url="https://github.com/octo/widgets/pull/7",
        changed_files=changed_files,
    )


@pytest.fixture
def fake_host():
    """Host that succeeds on every call."""
    return FakeHost()


@pytest.fixture
def pr():
    """Default snapshot with 5 changed files."""
    return make_pr()
