"""Pure rendering of everything the propagator writes to a satellite.

Nothing here touches the network. Output depends only on the target's
profile, the configured workflow version, the update message and the
central repository coordinate, so the same inputs always produce the same
bytes. The staleness check relies on that.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import PurePosixPath

import jinja2

from workflow_propagator.config import RepositoryTarget, RunConfig
from workflow_propagator.constants import (
    BOT_MENTION,
    BRANCH_PREFIX,
    CENTRAL_REPOSITORY,
    CLAUDE_CODE_ACTION_REF,
    FORWARDED_SECRETS,
    ISSUE_RESPONSE_WORKFLOW,
    ON_DEMAND_WORKFLOW_FILENAME,
    PR_REVIEW_WORKFLOW,
    REPOSITORY_CONFIG_PATH,
    REVIEW_WORKFLOW_FILENAME,
)

__all__ = [
    "render_caller_workflow",
    "render_on_demand_workflow",
    "render_pull_request_body",
    "derive_on_demand_path",
    "branch_name",
    "version_marker",
    "pull_request_title",
    "caller_commit_message",
    "on_demand_commit_message",
]

CALLER_TEMPLATE = "ai-review.yml.j2"
ON_DEMAND_TEMPLATE = "ai-on-demand.yml.j2"
PULL_REQUEST_TEMPLATE = "pull-request.md.j2"


@lru_cache(maxsize=1)
def _environment() -> jinja2.Environment:
    return jinja2.Environment(
        loader=jinja2.PackageLoader("workflow_propagator", "templates"),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )


def _render(template_name: str, **variables: object) -> str:
    return _environment().get_template(template_name).render(**variables)


def version_marker(workflow_version: str) -> str:
    """Substring whose presence means a workflow already points at the version."""
    return f"@v{workflow_version}"


def branch_name(workflow_version: str) -> str:
    """Integration branch used for every repository at this version."""
    return f"{BRANCH_PREFIX}{workflow_version}"


def pull_request_title(workflow_version: str) -> str:
    return f"🤖 Update AI Workflow Automation to v{workflow_version}"


def caller_commit_message(workflow_version: str) -> str:
    return f"Update AI review workflow to v{workflow_version}"


def on_demand_commit_message(workflow_version: str) -> str:
    return f"Update AI on-demand workflow to v{workflow_version}"


def derive_on_demand_path(workflow_path: str) -> str:
    """Derive the on-demand workflow path from the caller workflow path.

    The first ``ai-review.yml`` segment is replaced with ``ai-on-demand.yml``.
    Paths without that segment get ``-on-demand`` inserted before the file
    extension of the last component, so the result never collides with the
    caller workflow.

    Examples:
        >>> derive_on_demand_path(".github/workflows/ai-review.yml")
        '.github/workflows/ai-on-demand.yml'
        >>> derive_on_demand_path(".github/workflows/review.yaml")
        '.github/workflows/review-on-demand.yaml'
    """
    if REVIEW_WORKFLOW_FILENAME in workflow_path:
        return workflow_path.replace(
            REVIEW_WORKFLOW_FILENAME, ON_DEMAND_WORKFLOW_FILENAME, 1
        )

    path = PurePosixPath(workflow_path)
    if path.suffix:
        return str(path.with_name(f"{path.stem}-on-demand{path.suffix}"))
    return str(path.with_name(f"{path.name}-on-demand.yml"))


def _workflow_variables(
    target: RepositoryTarget,
    config: RunConfig,
    central_repository: str,
    reusable_workflow: str,
) -> dict[str, object]:
    return {
        "central_repository": central_repository,
        "reusable_workflow": reusable_workflow,
        "workflow_version": config.workflow_version,
        "config_profile": target.config_profile,
        "repository_config": REPOSITORY_CONFIG_PATH,
        "action_ref": CLAUDE_CODE_ACTION_REF,
        "bot_mention": BOT_MENTION,
        "secrets": FORWARDED_SECRETS,
    }


def render_caller_workflow(
    target: RepositoryTarget,
    config: RunConfig,
    central_repository: str = CENTRAL_REPOSITORY,
) -> str:
    """Render the pull-request-triggered caller workflow for a target.

    Args:
        target: Repository receiving the workflow.
        config: Active run configuration (supplies the version).
        central_repository: owner/repo hosting the reusable workflows.

    Returns:
        The complete YAML document, ending in a newline.
    """
    return _render(
        CALLER_TEMPLATE,
        **_workflow_variables(target, config, central_repository, PR_REVIEW_WORKFLOW),
    )


def render_on_demand_workflow(
    target: RepositoryTarget,
    config: RunConfig,
    central_repository: str = CENTRAL_REPOSITORY,
) -> str:
    """Render the comment/issue-triggered on-demand workflow for a target."""
    return _render(
        ON_DEMAND_TEMPLATE,
        **_workflow_variables(
            target, config, central_repository, ISSUE_RESPONSE_WORKFLOW
        ),
    )


def render_pull_request_body(
    target: RepositoryTarget,
    config: RunConfig,
    central_repository: str = CENTRAL_REPOSITORY,
) -> str:
    """Render the Markdown body of the propagation pull request."""
    return _render(
        PULL_REQUEST_TEMPLATE,
        workflow_version=config.workflow_version,
        config_profile=target.config_profile,
        central_repository=central_repository,
        update_message=config.update_message.strip(),
    )
