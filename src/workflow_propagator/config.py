from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_propagator.constants import (
    CENTRAL_REPOSITORY,
    DEFAULT_CONFIG_PROFILE,
    DEFAULT_PR_LABELS,
    ENV_PREFIX,
    TOKEN_ENV_VAR,
)
from workflow_propagator.exceptions import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    MissingTokenError,
)
from workflow_propagator.logging import get_logger

__all__ = [
    "RepositoryTarget",
    "RunConfig",
    "PropagatorSettings",
    "load_config",
    "load_settings",
    "require_token",
]

logger = get_logger(__name__)

#: Default rate limiting window in seconds (GitHub's hourly budget)
DEFAULT_RATE_PERIOD: float = 3600.0


class _DocumentModel(BaseModel):
    """Base for models read from the camelCase JSON configuration document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class RepositoryTarget(_DocumentModel):
    """One satellite repository managed by the propagator.

    Attributes:
        owner: Repository owner (user or organization).
        repo: Repository name.
        workflow_path: Path of the caller workflow inside the repository.
        config_profile: Review profile rendered into the workflows.
        enabled: Whether the propagator may write to this repository.
        last_updated: Free-form note of the last update; never read.
    """

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    workflow_path: str = Field(min_length=1)
    config_profile: str = DEFAULT_CONFIG_PROFILE
    enabled: bool
    last_updated: str | None = None

    @field_validator("config_profile", mode="before")
    @classmethod
    def default_missing_profile(cls, v: Any) -> Any:
        """Treat null or empty profiles as the default profile."""
        if v is None or v == "":
            return DEFAULT_CONFIG_PROFILE
        return v

    @property
    def full_name(self) -> str:
        """Repository coordinate in owner/repo form."""
        return f"{self.owner}/{self.repo}"


class RunConfig(_DocumentModel):
    """The whole configuration document for one propagation pass."""

    repositories: tuple[RepositoryTarget, ...]
    workflow_version: str = Field(min_length=1)
    update_message: str
    dry_run: bool

    @field_validator("workflow_version")
    @classmethod
    def check_version_fragment(cls, v: str) -> str:
        if v != v.strip() or any(ch.isspace() for ch in v):
            raise ValueError("workflowVersion must not contain whitespace")
        if v.startswith(("v", "V")):
            raise ValueError(
                f"workflowVersion must not carry a leading 'v' (got {v!r})"
            )
        return v

    @model_validator(mode="after")
    def check_unique_repositories(self) -> Self:
        seen: set[tuple[str, str]] = set()
        for target in self.repositories:
            key = (target.owner.lower(), target.repo.lower())
            if key in seen:
                raise ValueError(f"Duplicate repository entry: {target.full_name}")
            seen.add(key)
        return self


class PropagatorSettings(BaseSettings):
    """Settings taken from the process environment (and ``.env``).

    The token is read from ``GITHUB_TOKEN``; everything else uses the
    ``PROPAGATOR_`` prefix, e.g. ``PROPAGATOR_CENTRAL_REPOSITORY``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        populate_by_name=True,
        extra="ignore",
    )

    github_token: SecretStr | None = Field(
        default=None, validation_alias=TOKEN_ENV_VAR
    )
    central_repository: str = CENTRAL_REPOSITORY
    github_api_url: str | None = None
    pr_labels: list[str] = Field(default_factory=lambda: list(DEFAULT_PR_LABELS))
    rate_limit: int | None = Field(default=None, gt=0)
    rate_period: float = Field(default=DEFAULT_RATE_PERIOD, gt=0)

    @field_validator("central_repository")
    @classmethod
    def check_central_repository(cls, v: str) -> str:
        owner, sep, repo = v.partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"central_repository must be owner/repo (got {v!r})")
        return v


def _config_error_from_validation(
    e: ValidationError, error_cls: type[ConfigError], source: str
) -> ConfigError:
    """Build a ConfigError describing the first pydantic validation failure."""
    first_error = e.errors()[0]
    field = ".".join(str(loc) for loc in first_error["loc"]) or None
    return error_cls(
        f"Invalid configuration in {source}: {first_error['msg']}",
        field=field,
        value=first_error.get("input"),
    )


def load_config(config_path: Path | str) -> RunConfig:
    """Load and validate the JSON configuration document.

    Args:
        config_path: Path to the configuration document.

    Returns:
        The validated RunConfig.

    Raises:
        ConfigNotFoundError: If the path does not exist or is not a file.
        ConfigParseError: If the content is not JSON or does not match
            the RunConfig shape.
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigNotFoundError(path)

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(f"Failed to read {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigParseError(
            f"Invalid JSON in {path}: {e.msg} (line {e.lineno}, column {e.colno})"
        ) from e

    try:
        config = RunConfig.model_validate(data)
    except ValidationError as e:
        raise _config_error_from_validation(e, ConfigParseError, str(path)) from e

    logger.debug(
        "config_loaded",
        path=str(path),
        repositories=len(config.repositories),
        workflow_version=config.workflow_version,
        dry_run=config.dry_run,
    )
    return config


def load_settings() -> PropagatorSettings:
    """Read PropagatorSettings from the environment.

    Raises:
        ConfigError: If an environment value is invalid.
    """
    try:
        return PropagatorSettings()
    except ValidationError as e:
        raise _config_error_from_validation(e, ConfigError, "environment") from e


def require_token(settings: PropagatorSettings) -> str:
    """Return the GitHub token or fail before anything else happens.

    Raises:
        MissingTokenError: If GITHUB_TOKEN is unset or blank.
    """
    if settings.github_token is None:
        raise MissingTokenError(TOKEN_ENV_VAR)
    token = settings.github_token.get_secret_value().strip()
    if not token:
        raise MissingTokenError(TOKEN_ENV_VAR)
    return token
