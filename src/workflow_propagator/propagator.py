"""Update propagation across satellite repositories.

One pass walks the configured repositories strictly in order. For each one
it checks whether the caller workflow already references the configured
version and, if not, stages the rendered workflows on a dedicated branch
and opens a pull request. A failure in one repository is recorded and the
pass moves on to the next.

Per-repository state machine::

    disabled?  -> SKIPPED(disabled)      no remote calls
    fresh?     -> SKIPPED(up-to-date)    one read
    dry run?   -> SKIPPED(dry-run)       one read, no writes
    branch -> file x2 -> pull request -> labels (best effort) -> UPDATED
    any remote error along the way -> FAILED (nothing is rolled back)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from rich.console import Console
from rich.table import Table
from rich.text import Text

from workflow_propagator.config import RepositoryTarget, RunConfig
from workflow_propagator.constants import (
    CENTRAL_REPOSITORY,
    DEFAULT_PR_LABELS,
    ExitCode,
)
from workflow_propagator.exceptions import (
    GitHubConflictError,
    GitHubError,
    GitHubNotFoundError,
    PropagatorError,
)
from workflow_propagator.github_client import GitHubClient
from workflow_propagator.logging import bind_context, clear_context, get_logger
from workflow_propagator.rendering import (
    branch_name,
    caller_commit_message,
    derive_on_demand_path,
    on_demand_commit_message,
    pull_request_title,
    render_caller_workflow,
    render_on_demand_workflow,
    render_pull_request_body,
    version_marker,
)

__all__ = [
    "OutcomeStatus",
    "SkipReason",
    "Outcome",
    "RunResult",
    "UpdatePropagator",
]

logger = get_logger(__name__)


class OutcomeStatus(str, Enum):
    """Terminal state of one repository in a pass."""

    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(str, Enum):
    """Why a repository was left untouched."""

    DISABLED = "disabled"
    UP_TO_DATE = "up-to-date"
    DRY_RUN = "dry-run"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of syncing one repository.

    Attributes:
        repository: Full repository name (owner/repo).
        status: Terminal state.
        reason: Set when status is SKIPPED.
        error: Error message when status is FAILED.
        pull_request_url: URL of the pull request opened in this pass.
        pull_request_existed: True when GitHub reported an open pull request
            for the integration branch already.
    """

    repository: str
    status: OutcomeStatus
    reason: SkipReason | None = None
    error: str | None = None
    pull_request_url: str | None = None
    pull_request_existed: bool = False

    @classmethod
    def updated(
        cls,
        repository: str,
        pull_request_url: str | None = None,
        pull_request_existed: bool = False,
    ) -> Outcome:
        return cls(
            repository=repository,
            status=OutcomeStatus.UPDATED,
            pull_request_url=pull_request_url,
            pull_request_existed=pull_request_existed,
        )

    @classmethod
    def skipped(cls, repository: str, reason: SkipReason) -> Outcome:
        return cls(repository=repository, status=OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, repository: str, error: str) -> Outcome:
        return cls(repository=repository, status=OutcomeStatus.FAILED, error=error)

    @property
    def detail(self) -> str:
        """Short human-readable explanation for the summary table."""
        if self.status is OutcomeStatus.SKIPPED and self.reason is not None:
            return self.reason.value
        if self.status is OutcomeStatus.FAILED:
            return self.error or "unknown error"
        if self.pull_request_existed:
            return "pull request already open"
        return self.pull_request_url or ""


@dataclass(slots=True)
class RunResult:
    """Counters for one propagation pass, tallied from each Outcome."""

    success: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[Outcome] = field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is OutcomeStatus.UPDATED:
            self.success += 1
        elif outcome.status is OutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.FAILURE if self.failed > 0 else ExitCode.SUCCESS


class UpdatePropagator:
    """Drives one pass over the configured repositories.

    Holds no state between repositories other than the configuration; the
    client is the only thing that talks to GitHub.

    Args:
        config: Validated run configuration.
        client: GitHub client used for every remote call.
        central_repository: owner/repo hosting the reusable workflows.
        labels: Labels attached to each pull request (best effort).
        console: Console receiving progress lines. Defaults to stdout.
    """

    def __init__(
        self,
        config: RunConfig,
        client: GitHubClient,
        *,
        central_repository: str = CENTRAL_REPOSITORY,
        labels: Sequence[str] = DEFAULT_PR_LABELS,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.central_repository = central_repository
        self.labels = tuple(labels)
        self.console = console or Console()

    @property
    def branch(self) -> str:
        return branch_name(self.config.workflow_version)

    def _say(self, message: str, style: str | None = None) -> None:
        # Repository names and API messages may contain brackets; print them verbatim.
        self.console.print(
            message, style=style, markup=False, emoji=False, highlight=False
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_caller_workflow(self, target: RepositoryTarget) -> str:
        return render_caller_workflow(target, self.config, self.central_repository)

    def render_on_demand_workflow(self, target: RepositoryTarget) -> str:
        return render_on_demand_workflow(target, self.config, self.central_repository)

    # =========================================================================
    # Staleness
    # =========================================================================

    async def is_stale(self, target: RepositoryTarget) -> bool:
        """Check whether the caller workflow still needs the configured version.

        Returns:
            True if the workflow file is missing or does not contain
            ``@v<workflow_version>``, False otherwise.

        Raises:
            GitHubError: For any remote error other than "not found".
        """
        try:
            text = await self.client.get_file_text(
                target.full_name, target.workflow_path
            )
        except GitHubNotFoundError:
            logger.info(
                "workflow_missing",
                repository=target.full_name,
                path=target.workflow_path,
            )
            return True

        if text is None:
            logger.warning(
                "workflow_path_is_directory",
                repository=target.full_name,
                path=target.workflow_path,
            )
            return True

        return version_marker(self.config.workflow_version) not in text

    # =========================================================================
    # Per-repository sync
    # =========================================================================

    async def sync_repository(self, target: RepositoryTarget) -> Outcome:
        """Bring one repository up to the configured version.

        Args:
            target: Repository to process.

        Returns:
            The repository's Outcome. Remote errors are reported as a FAILED
            outcome rather than raised.
        """
        name = target.full_name

        if not target.enabled:
            self._say(f"⏭️ Skipping disabled repository: {name}", style="dim")
            return Outcome.skipped(name, SkipReason.DISABLED)

        self._say(f"🔍 Checking repository: {name}")

        try:
            if not await self.is_stale(target):
                self._say(f"✅ Repository {name} is up to date", style="green")
                return Outcome.skipped(name, SkipReason.UP_TO_DATE)

            if self.config.dry_run:
                self._say(
                    f"🧪 [DRY RUN] Would update {name} "
                    f"({target.workflow_path} does not reference "
                    f"{version_marker(self.config.workflow_version)})",
                    style="yellow",
                )
                return Outcome.skipped(name, SkipReason.DRY_RUN)

            outcome = await self._apply_update(target)
        except PropagatorError as e:
            logger.error(
                "repository_update_failed",
                repository=name,
                error=e.message,
                status=getattr(e, "status", None),
            )
            self._say(f"❌ Failed to update {name}: {e.message}", style="bold red")
            return Outcome.failed(name, e.message)

        self._say(f"✅ Successfully updated {name}", style="bold green")
        return outcome

    async def _apply_update(self, target: RepositoryTarget) -> Outcome:
        name = target.full_name
        branch = self.branch
        version = self.config.workflow_version

        default_branch = await self.client.get_default_branch(name)
        head_sha = await self.client.get_branch_sha(name, default_branch)
        await self._ensure_branch(name, branch, head_sha)

        await self._upsert_file(
            name,
            branch,
            target.workflow_path,
            self.render_caller_workflow(target),
            caller_commit_message(version),
        )
        await self._upsert_file(
            name,
            branch,
            derive_on_demand_path(target.workflow_path),
            self.render_on_demand_workflow(target),
            on_demand_commit_message(version),
        )

        return await self._open_pull_request(target, branch, default_branch)

    async def _ensure_branch(self, repo_name: str, branch: str, sha: str) -> None:
        """Create the integration branch at ``sha``, or reset it there if it exists."""
        try:
            await self.client.create_branch(repo_name, branch, sha)
        except GitHubConflictError:
            await self.client.reset_branch(repo_name, branch, sha)
            logger.info("branch_reset", repository=repo_name, branch=branch, sha=sha)
            self._say(f"🔄 Updated existing branch: {branch}")
            return

        logger.info("branch_created", repository=repo_name, branch=branch, sha=sha)
        self._say(f"🌿 Created branch: {branch}")

    async def _upsert_file(
        self,
        repo_name: str,
        branch: str,
        path: str,
        content: str,
        message: str,
    ) -> None:
        try:
            sha = await self.client.get_file_sha(repo_name, path, ref=branch)
        except GitHubNotFoundError:
            sha = None

        commit_sha = await self.client.put_file(
            repo_name, path, content, message, branch=branch, sha=sha
        )
        logger.info(
            "file_written",
            repository=repo_name,
            path=path,
            branch=branch,
            created=sha is None,
            commit=commit_sha,
        )

    async def _open_pull_request(
        self,
        target: RepositoryTarget,
        branch: str,
        base: str,
    ) -> Outcome:
        name = target.full_name
        try:
            pr = await self.client.create_pr(
                name,
                title=pull_request_title(self.config.workflow_version),
                body=render_pull_request_body(
                    target, self.config, self.central_repository
                ),
                head=branch,
                base=base,
            )
        except GitHubConflictError as e:
            logger.info(
                "pull_request_exists", repository=name, branch=branch, detail=e.message
            )
            self._say(f"ℹ️ Pull request already exists for {branch}")
            return Outcome.updated(name, pull_request_existed=True)

        self._say(f"📝 Created pull request: {pr.html_url}")
        logger.info("pull_request_created", repository=name, number=pr.number)
        await self._add_labels(name, pr.number)
        return Outcome.updated(name, pull_request_url=pr.html_url)

    async def _add_labels(self, repo_name: str, number: int) -> None:
        if not self.labels:
            return
        try:
            await self.client.add_labels(repo_name, number, self.labels)
        except GitHubError as e:
            logger.warning(
                "labels_not_added", repository=repo_name, number=number, error=e.message
            )
            self._say(
                "⚠️ Could not add labels to PR (this is normal if labels don't exist)",
                style="yellow",
            )

    # =========================================================================
    # Batch
    # =========================================================================

    async def run(self) -> RunResult:
        """Process every configured repository in order.

        Returns:
            Tallied RunResult. Use ``result.exit_code`` for the process status.
        """
        config = self.config
        self._say("🚀 Starting workflow update propagation", style="bold")
        self._say(f"📋 Target version: v{config.workflow_version}")
        self._say(f"📊 Repositories to process: {len(config.repositories)}")
        if config.dry_run:
            self._say("🧪 Running in DRY RUN mode", style="yellow")

        result = RunResult()
        for target in config.repositories:
            bind_context(repository=target.full_name)
            try:
                outcome = await self.sync_repository(target)
            except Exception as e:
                logger.exception("repository_processing_crashed")
                self._say(
                    f"❌ Failed to process {target.full_name}: {e}", style="bold red"
                )
                outcome = Outcome.failed(target.full_name, str(e) or type(e).__name__)
            finally:
                clear_context()
            result.record(outcome)

        self.print_summary(result)
        logger.info(
            "propagation_finished",
            success=result.success,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    def print_summary(self, result: RunResult) -> None:
        """Print the per-repository table and the counter block."""
        if result.outcomes:
            table = Table(title="Repositories", show_lines=False)
            table.add_column("Repository")
            table.add_column("Status")
            table.add_column("Detail")
            styles = {
                OutcomeStatus.UPDATED: "green",
                OutcomeStatus.SKIPPED: "dim",
                OutcomeStatus.FAILED: "red",
            }
            for outcome in result.outcomes:
                table.add_row(
                    Text(outcome.repository),
                    Text(outcome.status.value, style=styles[outcome.status]),
                    Text(outcome.detail),
                )
            self.console.print()
            self.console.print(table)

        self.console.print()
        self._say("📈 Update Summary:", style="bold")
        self._say(f"  ✅ Successful updates: {result.success}")
        self._say(f"  ⏭️ Skipped (up-to-date, disabled or dry run): {result.skipped}")
        self._say(
            f"  ❌ Failed updates: {result.failed}",
            style="red" if result.failed else None,
        )
