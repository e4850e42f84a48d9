from __future__ import annotations

from pathlib import Path
from typing import Any

from workflow_propagator.exceptions.base import PropagatorError


class ConfigError(PropagatorError):
    """Exception for configuration loading, parsing, and validation errors.

    Raised before any repository is processed. The CLI turns it into a
    non-zero exit.

    Attributes:
        message: Human-readable error message describing the configuration issue.
        field: Optional dotted field name that caused the error
            (e.g., "repositories.0.workflowPath").
        value: Optional value that failed validation (for debugging).
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize the ConfigError.

        Args:
            message: Human-readable error message.
            field: Optional field name that caused the error.
            value: Optional value that failed validation.
        """
        self.field = field
        self.value = value
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """The configuration document does not exist.

    Attributes:
        path: Path that was looked up.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigParseError(ConfigError):
    """The configuration document is not valid JSON or has the wrong shape."""


class MissingTokenError(ConfigError):
    """No GitHub token was found in the environment."""

    def __init__(self, env_var: str = "GITHUB_TOKEN") -> None:
        super().__init__(
            f"{env_var} environment variable is required",
            field=env_var,
        )
