"""GitHub client for posting threshold results."""

import base64
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import jwt
import requests
from github import Auth, Github, GithubException

from pr_threshold.config import GitHubConfig
from pr_threshold.exceptions import ConfigError, PayloadError, UpstreamError

logger = logging.getLogger(__name__)

PUBLIC_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class PullRequestSnapshot:
    """A pull request as described by a single webhook delivery."""

    owner: str
    repo: str
    number: int
    head_sha: str
    base_owner: str
    base_repo: str
    state: str
    url: str
    changed_files: int
    commits: int = 0
    comments: int = 0
    additions: int = 0
    deletions: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PullRequestSnapshot":
        """Build a snapshot from a ``pull_request`` webhook payload.

        Raises:
            PayloadError: If a field needed for evaluation or reaction is missing
        """
        pr = _mapping(payload, "pull_request")
        repository = _mapping(payload, "repository")
        base_repo = _mapping(_mapping(pr, "base", "pull_request."), "repo", "pull_request.base.")
        head = _mapping(pr, "head", "pull_request.")

        number = payload.get("number", pr.get("number"))
        if not isinstance(number, int) or isinstance(number, bool):
            raise PayloadError("Webhook payload has no pull request number")

        return cls(
            owner=_login(repository, "repository"),
            repo=_string(repository, "name", "repository."),
            number=number,
            head_sha=_string(head, "sha", "pull_request.head."),
            base_owner=_login(base_repo, "pull_request.base.repo"),
            base_repo=_string(base_repo, "name", "pull_request.base.repo."),
            state=pr.get("state") or "open",
            url=pr.get("html_url") or pr.get("url") or "",
            changed_files=_count(pr, "changed_files"),
            commits=_count(pr, "commits"),
            comments=_count(pr, "comments"),
            additions=_count(pr, "additions"),
            deletions=_count(pr, "deletions"),
        )


def _mapping(data: Mapping, key: str, prefix: str = "") -> Mapping:
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise PayloadError(f"Webhook payload is missing '{prefix}{key}'")
    return value


def _string(data: Mapping, key: str, prefix: str = "") -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise PayloadError(f"Webhook payload is missing '{prefix}{key}'")
    return value


def _login(repository: Mapping, where: str) -> str:
    return _string(_mapping(repository, "owner", f"{where}."), "login", f"{where}.owner.")


def _count(pr: Mapping, key: str) -> int:
    value = pr.get(key) or 0
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise PayloadError(f"Webhook payload has an invalid 'pull_request.{key}': {value!r}")
    return value


class SourceControlHost(ABC):
    """The host operations needed to react to a threshold evaluation.

    Each method returns a URL describing what was created or changed, and
    raises ``UpstreamError`` when the host call fails.
    """

    @abstractmethod
    def create_comment(self, owner: str, repo: str, number: int, body: str) -> str:
        """Post an issue comment on a pull request. Returns the comment URL."""

    @abstractmethod
    def create_status(
        self, owner: str, repo: str, sha: str, state: str, description: str, context: str
    ) -> str:
        """Create a commit status on ``sha``. Returns the status URL."""

    @abstractmethod
    def close_pull_request(self, owner: str, repo: str, number: int) -> str:
        """Set a pull request's state to closed. Returns the pull request URL."""


def normalize_base_url(host: str) -> str | None:
    """Turn a configured host into a REST API base URL.

    An empty host means public GitHub. A bare GitHub Enterprise host such as
    ``https://github.example.com`` gets the ``/api/v3`` prefix.
    """
    host = host.strip()
    if not host:
        return None

    parsed = urlparse(host)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"Invalid GitHub host URL: {host!r}")

    base = host.rstrip("/")
    if parsed.path in ("", "/") and parsed.netloc != "api.github.com":
        base += "/api/v3"
    return base


@contextmanager
def _upstream(operation: str) -> Iterator[None]:
    try:
        yield
    except (GithubException, requests.RequestException) as e:
        raise UpstreamError(operation, e) from e


def _sign_app_jwt(app_id: str, private_key: str) -> str:
    """Sign the short-lived JWT GitHub expects before issuing installation tokens."""
    if "-----BEGIN" not in private_key or "-----END" not in private_key:
        raise ValueError(
            "Invalid private key format: expected a PEM key. "
            "Check GITHUB_APP_PRIVATE_KEY_BASE64."
        )

    issued = int(time.time()) - 60
    claims = {"iat": issued, "exp": issued + 660, "iss": app_id}
    try:
        return jwt.encode(claims, private_key, algorithm="RS256")
    except Exception as e:
        raise ValueError(f"Failed to sign JWT for GitHub App {app_id}: {e}") from e


def _fetch_installation_token(
    api_url: str, app_id: str, installation_id: str, app_jwt: str, timeout: int
) -> str:
    """Exchange an App JWT for an installation access token."""
    url = f"{api_url}/app/installations/{installation_id}/access_tokens"
    try:
        response = requests.post(
            url,
            headers={
                "Authorization": f"Bearer {app_jwt}",
                "Accept": "application/vnd.github+json",
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ValueError(f"Could not reach {url}: {e}") from e

    if response.status_code == 401:
        raise ValueError(
            f"GitHub App authentication failed (401 Unauthorized); "
            f"app {app_id} may not match the private key"
        )
    if response.status_code == 404:
        raise ValueError(f"Installation not found (404): {installation_id}")
    if not response.ok:
        raise ValueError(f"GitHub API error ({response.status_code}): {response.text}")

    try:
        return response.json()["token"]
    except (ValueError, KeyError, TypeError) as e:
        raise ValueError(f"No installation token in response from {url}") from e


class GitHubClient(SourceControlHost):
    """Client for interacting with the GitHub API."""

    def __init__(self, token: str = "", base_url: str | None = None, timeout: int = 30):
        """Initialize with an optional token and API base URL."""
        kwargs: dict[str, Any] = {"timeout": timeout}
        if token:
            kwargs["auth"] = Auth.Token(token)
        if base_url:
            kwargs["base_url"] = base_url
        self.base_url = base_url or PUBLIC_API_URL
        self.client = Github(**kwargs)

    @classmethod
    def from_app_credentials(
        cls,
        app_id: str,
        installation_id: str,
        private_key: str,
        base_url: str | None = None,
        timeout: int = 30,
    ) -> "GitHubClient":
        """Authenticate as a GitHub App installation.

        Raises:
            ValueError: If the key cannot sign a JWT or no installation token
                can be obtained from the host
        """
        app_jwt = _sign_app_jwt(app_id, private_key)
        token = _fetch_installation_token(
            base_url or PUBLIC_API_URL, app_id, installation_id, app_jwt, timeout
        )
        return cls(token, base_url=base_url, timeout=timeout)

    def create_comment(self, owner: str, repo: str, number: int, body: str) -> str:
        with _upstream("comment creation"):
            pr = self.client.get_repo(f"{owner}/{repo}", lazy=True).get_pull(number)
            comment = pr.create_issue_comment(body)
        logger.debug("Posted comment on %s/%s#%d", owner, repo, number)
        return comment.html_url

    def create_status(
        self, owner: str, repo: str, sha: str, state: str, description: str, context: str
    ) -> str:
        with _upstream("status creation"):
            commit = self.client.get_repo(f"{owner}/{repo}", lazy=True).get_commit(sha)
            status = commit.create_status(state, description=description, context=context)
        logger.debug("Set %s status on %s/%s@%s", state, owner, repo, sha[:7])
        return status.url

    def close_pull_request(self, owner: str, repo: str, number: int) -> str:
        with _upstream("pull request edit"):
            pr = self.client.get_repo(f"{owner}/{repo}", lazy=True).get_pull(number)
            pr.edit(state="closed")
        logger.debug("Closed %s/%s#%d", owner, repo, number)
        return pr.html_url


def decode_private_key(value: str) -> str:
    """Accept a raw PEM key (possibly with escaped newlines) or a base64-encoded one."""
    value = value.strip()
    if "-----BEGIN" in value:
        return value.replace("\\n", "\n")
    try:
        return base64.b64decode(value).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise ConfigError(f"GITHUB_APP_PRIVATE_KEY_BASE64 is not valid base64: {e}") from e


def build_client(config: GitHubConfig) -> GitHubClient:
    """Create the shared client, preferring App credentials over a token."""
    base_url = normalize_base_url(config.host)

    if config.app_id and config.installation_id and config.private_key:
        logger.info("Authenticating as GitHub App %s", config.app_id)
        return GitHubClient.from_app_credentials(
            config.app_id,
            config.installation_id,
            decode_private_key(config.private_key),
            base_url=base_url,
            timeout=config.timeout,
        )

    if not config.token:
        logger.warning("No GitHub token configured; API calls will be unauthenticated")
    return GitHubClient(config.token, base_url=base_url, timeout=config.timeout)
