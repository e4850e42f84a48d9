"""Fixed coordinates shared by rendering, the propagator and the CLI.

Values here end up verbatim in the workflow files and pull requests written
to satellite repositories. Changing one changes what every satellite
receives on the next run.
"""

from __future__ import annotations

from enum import IntEnum

# =============================================================================
# Central Repository
# =============================================================================

#: Repository hosting the reusable workflows (owner/repo)
CENTRAL_REPOSITORY: str = "ethereumfollowprotocol/workflow-automation"

#: Reusable workflow invoked by the caller workflow
PR_REVIEW_WORKFLOW: str = "pr-review.yml"

#: Reusable workflow invoked by the on-demand workflow
ISSUE_RESPONSE_WORKFLOW: str = "issue-response.yml"

# =============================================================================
# Rendered Inputs
# =============================================================================

#: Pinned third-party review action passed to the reusable workflows
CLAUDE_CODE_ACTION_REF: str = "0xthrpw/claude-code-action@v0.0.1"

#: Per-repository review configuration path passed to the reusable workflows
REPOSITORY_CONFIG_PATH: str = ".github/ai-review-config.json"

#: Mention that triggers the on-demand assistant
BOT_MENTION: str = "@efp-dev-ops"

#: Profile used when a repository does not name one
DEFAULT_CONFIG_PROFILE: str = "default"

#: Secrets forwarded by reference from the satellite to the central workflow
FORWARDED_SECRETS: tuple[str, ...] = (
    "CLAUDE_CODE_OAUTH_TOKEN",
    "APP_ID",
    "PRIVATE_KEY",
    "ALLOWED_USER_LIST",
)

# =============================================================================
# Paths and Branches
# =============================================================================

#: Filename segment identifying the caller workflow
REVIEW_WORKFLOW_FILENAME: str = "ai-review.yml"

#: Filename segment substituted to derive the on-demand workflow path
ON_DEMAND_WORKFLOW_FILENAME: str = "ai-on-demand.yml"

#: Prefix of the integration branch; the version is appended as v<version>
BRANCH_PREFIX: str = "workflow-automation/update-v"

#: Labels attached to every propagation pull request (best effort)
DEFAULT_PR_LABELS: tuple[str, ...] = ("automation", "workflow-update", "ai-review")

# =============================================================================
# Environment
# =============================================================================

#: Environment variable holding the GitHub token
TOKEN_ENV_VAR: str = "GITHUB_TOKEN"

#: Prefix for all other settings read from the environment
ENV_PREFIX: str = "PROPAGATOR_"

#: Configuration document used when the CLI gets no path
DEFAULT_CONFIG_PATH: str = "./config/repositories.json"

# =============================================================================
# Exit Codes
# =============================================================================


class ExitCode(IntEnum):
    """Process exit codes for the workflow-propagate command.

    - 0 when every repository ended updated or skipped
    - 1 for a missing token, a bad configuration, or any failed repository
    - 130 for keyboard interrupt (128 + SIGINT=2)
    """

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130
