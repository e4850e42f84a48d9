"""GitHub client module using PyGithub with token authentication.

This module exposes exactly the remote operations the propagator needs
(read a file, resolve the default branch and its head, create or reset a
ref, write a file, open a pull request, add labels) as async methods.
PyGithub is synchronous, so every call runs in a worker thread.

Errors are translated at this boundary: HTTP 404 becomes
GitHubNotFoundError, HTTP 422 becomes GitHubConflictError, anything else
GitHubError. The original GithubException is kept as ``__cause__``.

Rate limiting is optional and uses aiolimiter. GitHub allows 5000 requests
per hour for authenticated users.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from aiolimiter import AsyncLimiter
from github import Auth, Github, GithubException

from workflow_propagator.exceptions import (
    GitHubConflictError,
    GitHubError,
    GitHubNotFoundError,
    MissingTokenError,
)
from workflow_propagator.logging import get_logger

if TYPE_CHECKING:
    from github.PullRequest import PullRequest
    from github.Repository import Repository

#: Default rate limit for GitHub API (requests per hour)
DEFAULT_GITHUB_RATE_LIMIT: int = 5000

#: Time period for rate limiting in seconds (1 hour)
DEFAULT_GITHUB_RATE_PERIOD: float = 3600.0

__all__ = [
    "get_github_client",
    "GitHubClient",
    "DEFAULT_GITHUB_RATE_LIMIT",
    "DEFAULT_GITHUB_RATE_PERIOD",
]

logger = get_logger(__name__)

T = TypeVar("T")


def get_github_client(token: str, base_url: str | None = None) -> Github:
    """Create a PyGithub client authenticated with a token.

    Args:
        token: Personal access token or app installation token.
        base_url: API root for GitHub Enterprise. None uses github.com.

    Returns:
        Authenticated PyGithub Github instance.
    """
    auth = Auth.Token(token)
    if base_url:
        return Github(auth=auth, base_url=base_url)
    return Github(auth=auth)


def _describe(e: GithubException) -> str:
    """Summarise a GithubException as 'HTTP <status>: <message> (<details>)'."""
    data: Any = e.data
    message = ""
    details: list[str] = []
    if isinstance(data, dict):
        message = str(data.get("message") or "")
        for item in data.get("errors") or []:
            if isinstance(item, dict) and item.get("message"):
                details.append(str(item["message"]))
            elif isinstance(item, str):
                details.append(item)
    elif data:
        message = str(data)

    text = f"HTTP {e.status}"
    if message:
        text += f": {message}"
    if details:
        text += f" ({'; '.join(details)})"
    return text


def _translate(e: GithubException, action: str, repo_name: str) -> GitHubError:
    """Map a GithubException onto the propagator's error hierarchy."""
    message = f"Failed to {action} in {repo_name}: {_describe(e)}"
    logger.debug(
        "github_api_error", repository=repo_name, action=action, status=e.status
    )
    if e.status == 404:
        return GitHubNotFoundError(message, status=e.status, repository=repo_name)
    if e.status == 422:
        return GitHubConflictError(message, status=e.status, repository=repo_name)
    return GitHubError(message, status=e.status, repository=repo_name)


class GitHubClient:
    """Async-friendly wrapper around PyGithub for the propagation contract.

    Attributes:
        github: The underlying PyGithub client instance.
        rate_limiter: Optional AsyncLimiter throttling API calls.
    """

    def __init__(
        self,
        github: Github | None = None,
        token: str | None = None,
        base_url: str | None = None,
        rate_limit: int | None = None,
        rate_period: float | None = None,
    ) -> None:
        """Initialize the GitHubClient.

        Args:
            github: Optional PyGithub client. If not provided, one is created
                lazily from ``token`` on first use.
            token: Token used for lazy client creation.
            base_url: API root for GitHub Enterprise.
            rate_limit: Optional maximum number of requests per rate_period.
                Rate limiting is disabled when None.
            rate_period: Rate limiting window in seconds. Defaults to
                DEFAULT_GITHUB_RATE_PERIOD. Only used if rate_limit is set.
        """
        self._github: Github | None = github
        self._token = token
        self._base_url = base_url

        if rate_limit is not None:
            period = (
                rate_period if rate_period is not None else DEFAULT_GITHUB_RATE_PERIOD
            )
            self._rate_limiter: AsyncLimiter | None = AsyncLimiter(rate_limit, period)
        else:
            self._rate_limiter = None

    @property
    def rate_limiter(self) -> AsyncLimiter | None:
        """Get the rate limiter, if configured."""
        return self._rate_limiter

    @property
    def github(self) -> Github:
        """Get the PyGithub client, initializing lazily if needed.

        Raises:
            MissingTokenError: If no client was injected and no token is set.
        """
        if self._github is None:
            if not self._token:
                raise MissingTokenError()
            self._github = get_github_client(self._token, self._base_url)
        return self._github

    def _get_repo(self, repo_name: str) -> Repository:
        # lazy=True defers the GET until an attribute such as default_branch is read
        return self.github.get_repo(repo_name, lazy=True)

    async def _call(self, func: Callable[[], T]) -> T:
        """Run a blocking PyGithub call in a thread, honouring the rate limiter."""
        if self._rate_limiter is not None:
            async with self._rate_limiter:
                return await asyncio.to_thread(func)
        return await asyncio.to_thread(func)

    # =========================================================================
    # Content Operations
    # =========================================================================

    async def get_file_text(
        self,
        repo_name: str,
        path: str,
        ref: str | None = None,
    ) -> str | None:
        """Read a file's decoded text.

        Args:
            repo_name: Full repository name (owner/repo).
            path: File path inside the repository.
            ref: Branch, tag or SHA. None reads the default branch.

        Returns:
            The file text, or None if the path is a directory.

        Raises:
            GitHubNotFoundError: If the path does not exist.
            GitHubError: On any other API error.
        """

        def _get_text() -> str | None:
            try:
                repo = self._get_repo(repo_name)
                if ref is None:
                    contents = repo.get_contents(path)
                else:
                    contents = repo.get_contents(path, ref=ref)
            except GithubException as e:
                raise _translate(e, f"read {path}", repo_name) from e
            if isinstance(contents, list):
                return None
            return contents.decoded_content.decode("utf-8", errors="replace")

        return await self._call(_get_text)

    async def get_file_sha(self, repo_name: str, path: str, ref: str) -> str | None:
        """Get the blob SHA of an existing file on a ref.

        Returns:
            The blob SHA, or None if the path is a directory.

        Raises:
            GitHubNotFoundError: If the file does not exist on the ref.
            GitHubError: On any other API error.
        """

        def _get_sha() -> str | None:
            try:
                contents = self._get_repo(repo_name).get_contents(path, ref=ref)
            except GithubException as e:
                raise _translate(e, f"read {path}@{ref}", repo_name) from e
            if isinstance(contents, list):
                return None
            return contents.sha

        return await self._call(_get_sha)

    async def put_file(
        self,
        repo_name: str,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: str | None = None,
    ) -> str:
        """Create a file, or update it in place when its blob SHA is given.

        Args:
            repo_name: Full repository name (owner/repo).
            path: File path inside the repository.
            content: New file text.
            message: Commit message.
            branch: Branch receiving the commit.
            sha: Blob SHA of the existing file. None creates the file.

        Returns:
            SHA of the resulting commit.

        Raises:
            GitHubError: On API errors.
        """

        def _put() -> str:
            try:
                repo = self._get_repo(repo_name)
                if sha is None:
                    result = repo.create_file(path, message, content, branch=branch)
                else:
                    result = repo.update_file(
                        path, message, content, sha, branch=branch
                    )
            except GithubException as e:
                raise _translate(e, f"write {path}", repo_name) from e
            return result["commit"].sha

        return await self._call(_put)

    # =========================================================================
    # Branch Operations
    # =========================================================================

    async def get_default_branch(self, repo_name: str) -> str:
        """Get the repository's default branch name.

        Raises:
            GitHubNotFoundError: If the repository does not exist.
            GitHubError: On any other API error.
        """

        def _default_branch() -> str:
            try:
                return self._get_repo(repo_name).default_branch
            except GithubException as e:
                raise _translate(e, "get repository", repo_name) from e

        return await self._call(_default_branch)

    async def get_branch_sha(self, repo_name: str, branch: str) -> str:
        """Get the head commit SHA of a branch.

        Raises:
            GitHubNotFoundError: If the branch does not exist.
            GitHubError: On any other API error.
        """

        def _branch_sha() -> str:
            try:
                return self._get_repo(repo_name).get_branch(branch).commit.sha
            except GithubException as e:
                raise _translate(e, f"get branch {branch}", repo_name) from e

        return await self._call(_branch_sha)

    async def create_branch(self, repo_name: str, branch: str, sha: str) -> None:
        """Create ``refs/heads/<branch>`` pointing at ``sha``.

        Raises:
            GitHubConflictError: If the branch already exists.
            GitHubError: On any other API error.
        """

        def _create() -> None:
            try:
                self._get_repo(repo_name).create_git_ref(
                    ref=f"refs/heads/{branch}", sha=sha
                )
            except GithubException as e:
                raise _translate(e, f"create branch {branch}", repo_name) from e

        await self._call(_create)

    async def reset_branch(self, repo_name: str, branch: str, sha: str) -> None:
        """Force-move an existing branch to ``sha`` (no merge).

        Raises:
            GitHubError: On API errors.
        """

        def _reset() -> None:
            try:
                ref = self._get_repo(repo_name).get_git_ref(f"heads/{branch}")
                ref.edit(sha=sha, force=True)
            except GithubException as e:
                raise _translate(e, f"reset branch {branch}", repo_name) from e

        await self._call(_reset)

    # =========================================================================
    # Pull Request Operations
    # =========================================================================

    async def create_pr(
        self,
        repo_name: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> PullRequest:
        """Create a new pull request.

        Raises:
            GitHubConflictError: If a pull request for ``head`` already exists.
            GitHubError: On any other API error.
        """

        def _create_pr() -> PullRequest:
            try:
                return self._get_repo(repo_name).create_pull(
                    title=title,
                    body=body,
                    head=head,
                    base=base,
                )
            except GithubException as e:
                raise _translate(e, "create pull request", repo_name) from e

        return await self._call(_create_pr)

    async def add_labels(
        self,
        repo_name: str,
        number: int,
        labels: Sequence[str],
    ) -> None:
        """Attach labels to an issue or pull request.

        Raises:
            GitHubError: On API errors.
        """

        def _add_labels() -> None:
            try:
                issue = self._get_repo(repo_name).get_issue(number)
                issue.add_to_labels(*labels)
            except GithubException as e:
                raise _translate(e, f"label #{number}", repo_name) from e

        await self._call(_add_labels)

    def close(self) -> None:
        """Close the underlying GitHub client connection."""
        if self._github is not None:
            self._github.close()
            self._github = None
