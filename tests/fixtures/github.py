"""Mock GitHub client fixtures.

``mock_client`` is a MagicMock shaped like GitHubClient whose async methods
are AsyncMocks preloaded with a "stale repository, nothing on the branch yet"
scenario. Tests override individual methods via ``side_effect`` or
``return_value``.
"""

from __future__ import annotations

import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from workflow_propagator.exceptions import GitHubNotFoundError
from workflow_propagator.github_client import GitHubClient

#: Client methods that change remote state
MUTATING_METHODS = (
    "create_branch",
    "reset_branch",
    "put_file",
    "create_pr",
    "add_labels",
)

#: Client methods that only read
READ_METHODS = (
    "get_file_text",
    "get_file_sha",
    "get_default_branch",
    "get_branch_sha",
)

STALE_WORKFLOW = (
    "jobs:\n  ai-review:\n    uses: ethereumfollowprotocol/workflow-automation"
    "/.github/workflows/pr-review.yml@v2.2.0\n"
)

FRESH_WORKFLOW = STALE_WORKFLOW.replace("@v2.2.0", "@v2.3.0")

HEAD_SHA = "0123456789abcdef0123456789abcdef01234567"

PR_URL = "https://github.com/acme/api/pull/7"


def not_found(path: str = ".github/workflows/ai-review.yml") -> GitHubNotFoundError:
    return GitHubNotFoundError(f"Failed to read {path}: HTTP 404", status=404)


def assert_no_mutations(client: MagicMock) -> None:
    for name in MUTATING_METHODS:
        getattr(client, name).assert_not_awaited()


def assert_untouched(client: MagicMock) -> None:
    for name in (*READ_METHODS, *MUTATING_METHODS):
        getattr(client, name).assert_not_awaited()


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock(spec=GitHubClient)
    client.get_file_text = AsyncMock(return_value=STALE_WORKFLOW)
    client.get_file_sha = AsyncMock(side_effect=not_found())
    client.get_default_branch = AsyncMock(return_value="main")
    client.get_branch_sha = AsyncMock(return_value=HEAD_SHA)
    client.create_branch = AsyncMock(return_value=None)
    client.reset_branch = AsyncMock(return_value=None)
    client.put_file = AsyncMock(return_value="c0ffee")
    client.create_pr = AsyncMock(return_value=MagicMock(html_url=PR_URL, number=7))
    client.add_labels = AsyncMock(return_value=None)
    return client


@pytest.fixture
def console() -> Console:
    """Non-interactive console capturing output in a StringIO."""
    return Console(
        file=io.StringIO(),
        width=200,
        force_terminal=False,
        color_system=None,
    )


def console_text(console: Console) -> str:
    file = console.file
    assert isinstance(file, io.StringIO)
    return file.getvalue()
