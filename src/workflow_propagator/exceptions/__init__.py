"""Workflow propagator exception hierarchy.

All exceptions can be imported from this package:
    from workflow_propagator.exceptions import ConfigError, GitHubError
"""

from __future__ import annotations

from workflow_propagator.exceptions.base import PropagatorError
from workflow_propagator.exceptions.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    MissingTokenError,
)
from workflow_propagator.exceptions.github import (
    GitHubConflictError,
    GitHubError,
    GitHubNotFoundError,
)

__all__ = [
    "PropagatorError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "MissingTokenError",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubConflictError",
]
