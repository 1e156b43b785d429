"""Commit status reporting."""

import logging

from pr_threshold.exceptions import InvalidStateError
from pr_threshold.github_client import PullRequestSnapshot, SourceControlHost

logger = logging.getLogger(__name__)

STATUS_DESCRIPTION = "Complexity thresholds"
STATUS_CONTEXT = "ci/threshold"
VALID_STATES = ("success", "failure")


def create_status(client: SourceControlHost, pr: PullRequestSnapshot, state: str) -> str:
    """Set the threshold commit status on the PR's head commit.

    The status is created against the base repository, since the head commit may
    live in a fork the client cannot write to.

    Returns:
        URL of the created status

    Raises:
        InvalidStateError: If ``state`` is not "success" or "failure"
        UpstreamError: If the host rejects the request
    """
    if state not in VALID_STATES:
        raise InvalidStateError(state)

    url = client.create_status(
        pr.base_owner,
        pr.base_repo,
        pr.head_sha,
        state,
        description=STATUS_DESCRIPTION,
        context=STATUS_CONTEXT,
    )
    logger.info("Posted %s status for %s#%d: %s", state, pr.full_name, pr.number, url)
    return url
