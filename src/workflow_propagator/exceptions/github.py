from __future__ import annotations

from workflow_propagator.exceptions.base import PropagatorError


class GitHubError(PropagatorError):
    """Exception for GitHub API failures.

    Raised by the client wrapper whenever PyGithub reports an error. The
    original ``GithubException`` is kept as ``__cause__``.

    Attributes:
        message: Human-readable error message.
        status: HTTP status reported by the API (if any).
        repository: Full repository name the call targeted (if any).
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        repository: str | None = None,
    ) -> None:
        """Initialize the GitHubError.

        Args:
            message: Human-readable error message.
            status: HTTP status reported by the API.
            repository: Full repository name (owner/repo).
        """
        self.status = status
        self.repository = repository
        super().__init__(message)


class GitHubNotFoundError(GitHubError):
    """The requested object (file, branch, repository) does not exist (HTTP 404)."""


class GitHubConflictError(GitHubError):
    """The object already exists (HTTP 422).

    GitHub reports both "Reference already exists" and "A pull request
    already exists" this way.
    """
