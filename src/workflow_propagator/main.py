"""CLI entry point for the workflow propagator.

Thin wrapper around UpdatePropagator: read the environment, load the
configuration document, run one pass and turn the result into an exit code.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console

from workflow_propagator import __version__
from workflow_propagator.config import (
    RunConfig,
    load_config,
    load_settings,
    require_token,
)
from workflow_propagator.constants import DEFAULT_CONFIG_PATH, ExitCode
from workflow_propagator.exceptions import ConfigError
from workflow_propagator.github_client import GitHubClient
from workflow_propagator.logging import configure_logging, get_logger
from workflow_propagator.propagator import RunResult, UpdatePropagator

console = Console()
err_console = Console(stderr=True)


def _log_level(verbose: int, quiet: bool) -> int | None:
    """Map -v/-q onto a log level; None defers to PROPAGATOR_LOG_LEVEL.

    Quiet takes precedence over verbose.
    """
    if quiet:
        return logging.ERROR
    if verbose == 1:
        return logging.INFO
    if verbose >= 2:
        return logging.DEBUG
    return None


def _report_config_error(e: ConfigError) -> None:
    err_console.print(f"❌ {e.message}", markup=False, emoji=False, highlight=False)
    if e.field:
        err_console.print(f"  Field: {e.field}", markup=False, highlight=False)
    if e.value is not None:
        err_console.print(f"  Value: {e.value!r}", markup=False, highlight=False)


def apply_overrides(
    config: RunConfig,
    *,
    dry_run: bool = False,
    only: tuple[str, ...] = (),
) -> RunConfig:
    """Apply command-line overrides to a loaded configuration.

    Args:
        config: Configuration loaded from the document.
        dry_run: Force dry-run mode when True.
        only: Restrict the pass to these owner/repo names (config order kept).

    Raises:
        ConfigError: If ``only`` names a repository the document does not list.
    """
    update: dict[str, object] = {}
    if dry_run:
        update["dry_run"] = True

    if only:
        wanted = {name.lower() for name in only}
        known = {target.full_name.lower() for target in config.repositories}
        unknown = sorted(wanted - known)
        if unknown:
            raise ConfigError(
                f"Repository not listed in configuration: {', '.join(unknown)}",
                field="--only",
                value=unknown,
            )
        update["repositories"] = tuple(
            target
            for target in config.repositories
            if target.full_name.lower() in wanted
        )

    return config.model_copy(update=update) if update else config


@click.command()
@click.version_option(version=__version__, prog_name="workflow-propagate")
@click.argument(
    "config_path",
    required=False,
    default=DEFAULT_CONFIG_PATH,
    type=click.Path(path_type=Path),
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Check every repository but write nothing (overrides the document).",
)
@click.option(
    "--only",
    multiple=True,
    metavar="OWNER/REPO",
    help="Only process this repository. Repeat for several.",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Only log errors.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path,
    dry_run: bool,
    only: tuple[str, ...],
    verbose: int,
    quiet: bool,
) -> None:
    """Propagate AI workflow updates to the repositories listed in CONFIG_PATH.

    CONFIG_PATH defaults to ./config/repositories.json. A GitHub token with
    write access to every target must be set in GITHUB_TOKEN.

    Examples:
        workflow-propagate
        workflow-propagate config/repositories.json --dry-run
        workflow-propagate --only acme/api --only acme/web
    """
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(level=_log_level(verbose, quiet))
    logger = get_logger(__name__)

    try:
        settings = load_settings()
        token = require_token(settings)
    except ConfigError as e:
        _report_config_error(e)
        ctx.exit(ExitCode.FAILURE)

    try:
        config = apply_overrides(
            load_config(config_path), dry_run=dry_run, only=only
        )
    except ConfigError as e:
        _report_config_error(e)
        ctx.exit(ExitCode.FAILURE)

    logger.info(
        "propagation_starting",
        config_path=str(config_path),
        workflow_version=config.workflow_version,
        central_repository=settings.central_repository,
    )

    client = GitHubClient(
        token=token,
        base_url=settings.github_api_url,
        rate_limit=settings.rate_limit,
        rate_period=settings.rate_period,
    )
    propagator = UpdatePropagator(
        config,
        client,
        central_repository=settings.central_repository,
        labels=settings.pr_labels,
        console=console,
    )

    try:
        result: RunResult = asyncio.run(propagator.run())
    except KeyboardInterrupt:
        err_console.print("Interrupted.", markup=False)
        ctx.exit(ExitCode.INTERRUPTED)
    finally:
        client.close()

    ctx.exit(result.exit_code)
