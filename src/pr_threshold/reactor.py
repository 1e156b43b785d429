"""Reactions to a threshold evaluation."""

import logging
from dataclasses import dataclass
from enum import Enum

from pr_threshold.config import ThresholdConfig
from pr_threshold.exceptions import UpstreamError
from pr_threshold.github_client import PullRequestSnapshot, SourceControlHost
from pr_threshold.output.commit_status import create_status
from pr_threshold.output.github_comment import format_violations

logger = logging.getLogger(__name__)


class Action(Enum):
    """Side effect performed for a webhook delivery."""

    IGNORED = "ignored"
    REJECTED = "rejected"
    STATUS_SUCCESS = "status_success"
    STATUS_FAILURE = "status_failure"
    CLOSED = "closed"
    UPSTREAM_FAILURE = "upstream_failure"


@dataclass
class ReactionOutcome:
    """What a webhook delivery did, as reported in the HTTP response."""

    action: Action
    status_code: int
    message: str
    url: str | None = None


def react(
    client: SourceControlHost,
    pr: PullRequestSnapshot,
    violations: list[str],
    thresholds: ThresholdConfig,
) -> ReactionOutcome:
    """Apply the reaction policy for an evaluated pull request.

    - No violations: success status.
    - Violations: comment, then close the PR (strict) or a failure status.

    Side effects that already succeeded are not undone when a later call fails.
    """
    if not violations:
        try:
            url = create_status(client, pr, "success")
        except UpstreamError as e:
            return _upstream_failure(pr, e)
        return ReactionOutcome(
            Action.STATUS_SUCCESS, 200, f"Set success status on {pr.full_name}#{pr.number}: {url}", url
        )

    try:
        comment_url = client.create_comment(pr.owner, pr.repo, pr.number, format_violations(violations))
    except UpstreamError as e:
        return _upstream_failure(pr, e)
    logger.info("Posted threshold comment on %s#%d: %s", pr.full_name, pr.number, comment_url)

    if thresholds.strict:
        try:
            url = client.close_pull_request(pr.owner, pr.repo, pr.number)
        except UpstreamError as e:
            return _upstream_failure(pr, e)
        return ReactionOutcome(Action.CLOSED, 200, f"Closed {pr.full_name}#{pr.number}: {url}", url)

    try:
        url = create_status(client, pr, "failure")
    except UpstreamError as e:
        return _upstream_failure(pr, e)
    return ReactionOutcome(
        Action.STATUS_FAILURE, 200, f"Set failure status on {pr.full_name}#{pr.number}: {url}", url
    )


def _upstream_failure(pr: PullRequestSnapshot, error: UpstreamError) -> ReactionOutcome:
    return ReactionOutcome(
        Action.UPSTREAM_FAILURE, 500, f"{pr.full_name}#{pr.number}: {error}"
    )
