"""Unit tests for the workflow-propagate entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from tests.fixtures.config import config_dict, target_dict
from workflow_propagator import __version__
from workflow_propagator.exceptions import ConfigError
from workflow_propagator.main import apply_overrides, cli
from workflow_propagator.propagator import Outcome, RunResult

TOKEN_ENV = {"GITHUB_TOKEN": "ghp_test"}


def _result(failed: int = 0) -> RunResult:
    result = RunResult()
    result.record(Outcome.updated("acme/api"))
    for i in range(failed):
        result.record(Outcome.failed(f"acme/broken-{i}", "HTTP 500"))
    return result


@pytest.fixture
def mock_propagator():
    """Patch UpdatePropagator in main and hand back the class mock."""
    with (
        patch("workflow_propagator.main.UpdatePropagator") as propagator_cls,
        patch("workflow_propagator.main.GitHubClient") as client_cls,
    ):
        propagator_cls.return_value.run = AsyncMock(return_value=_result())
        propagator_cls.client_cls = client_cls
        yield propagator_cls


def test_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_token_exits_before_loading_config(
    cli_runner: CliRunner, clean_env: None, temp_dir: Path
) -> None:
    with patch("workflow_propagator.main.load_config") as mock_load:
        result = cli_runner.invoke(cli, [])

    assert result.exit_code == 1
    assert "GITHUB_TOKEN environment variable is required" in result.output
    mock_load.assert_not_called()


def test_token_from_dotenv(
    cli_runner: CliRunner,
    clean_env: None,
    temp_dir: Path,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    (temp_dir / ".env").write_text("GITHUB_TOKEN=ghp_from_dotenv\n")
    path = write_config()

    result = cli_runner.invoke(cli, [str(path)])

    assert result.exit_code == 0, result.output
    assert mock_propagator.client_cls.call_args.kwargs["token"] == "ghp_from_dotenv"


def test_missing_config(cli_runner: CliRunner, clean_env: None, temp_dir: Path) -> None:
    result = cli_runner.invoke(cli, ["nope.json"], env=TOKEN_ENV)

    assert result.exit_code == 1
    assert "Configuration file not found" in result.output


def test_malformed_config(
    cli_runner: CliRunner, clean_env: None, write_config
) -> None:
    entry = target_dict()
    del entry["owner"]
    path = write_config(config_dict([entry]))

    result = cli_runner.invoke(cli, [str(path)], env=TOKEN_ENV)

    assert result.exit_code == 1
    assert "repositories.0.owner" in result.output


def test_default_config_path(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    write_config(name="config/repositories.json")

    result = cli_runner.invoke(cli, [], env=TOKEN_ENV)

    assert result.exit_code == 0, result.output
    config = mock_propagator.call_args.args[0]
    assert config.workflow_version == "2.3.0"


def test_clean_run_exits_zero(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    path = write_config()

    result = cli_runner.invoke(cli, [str(path)], env=TOKEN_ENV)

    assert result.exit_code == 0
    mock_propagator.return_value.run.assert_awaited_once()
    mock_propagator.client_cls.return_value.close.assert_called_once()


def test_failed_repository_exits_one(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    mock_propagator.return_value.run = AsyncMock(return_value=_result(failed=1))
    path = write_config()

    result = cli_runner.invoke(cli, [str(path)], env=TOKEN_ENV)

    assert result.exit_code == 1


def test_interrupt_exits_130_and_closes_client(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    mock_propagator.return_value.run = AsyncMock(side_effect=KeyboardInterrupt)
    path = write_config()

    result = cli_runner.invoke(cli, [str(path)], env=TOKEN_ENV)

    assert result.exit_code == 130
    assert "Interrupted." in result.output
    mock_propagator.client_cls.return_value.close.assert_called_once()


def test_settings_reach_propagator(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    path = write_config()
    env = {
        **TOKEN_ENV,
        "PROPAGATOR_CENTRAL_REPOSITORY": "acme/workflows",
        "PROPAGATOR_PR_LABELS": '["automation"]',
        "PROPAGATOR_RATE_LIMIT": "50",
    }

    result = cli_runner.invoke(cli, [str(path)], env=env)

    assert result.exit_code == 0, result.output
    kwargs = mock_propagator.call_args.kwargs
    assert kwargs["central_repository"] == "acme/workflows"
    assert kwargs["labels"] == ["automation"]
    client_kwargs = mock_propagator.client_cls.call_args.kwargs
    assert client_kwargs["token"] == "ghp_test"
    assert client_kwargs["rate_limit"] == 50


def test_dry_run_flag_overrides_document(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    path = write_config(config_dict(dryRun=False))

    result = cli_runner.invoke(cli, [str(path), "--dry-run"], env=TOKEN_ENV)

    assert result.exit_code == 0
    assert mock_propagator.call_args.args[0].dry_run is True


def test_only_filters_repositories(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    path = write_config(
        config_dict([target_dict("one"), target_dict("two"), target_dict("three")])
    )

    result = cli_runner.invoke(
        cli, [str(path), "--only", "acme/three", "--only", "ACME/one"], env=TOKEN_ENV
    )

    assert result.exit_code == 0, result.output
    config = mock_propagator.call_args.args[0]
    assert [t.repo for t in config.repositories] == ["one", "three"]


def test_only_unknown_repository(
    cli_runner: CliRunner,
    clean_env: None,
    write_config,
    mock_propagator: MagicMock,
) -> None:
    path = write_config()

    result = cli_runner.invoke(cli, [str(path), "--only", "acme/ghost"], env=TOKEN_ENV)

    assert result.exit_code == 1
    assert "acme/ghost" in result.output
    mock_propagator.assert_not_called()


class TestApplyOverrides:
    def test_no_overrides_returns_same_object(self, make_config) -> None:
        config = make_config()

        assert apply_overrides(config) is config

    def test_dry_run(self, make_config) -> None:
        config = apply_overrides(make_config(), dry_run=True)

        assert config.dry_run is True

    def test_unknown_repository(self, make_config) -> None:
        with pytest.raises(ConfigError) as exc_info:
            apply_overrides(make_config(), only=("acme/ghost",))

        assert exc_info.value.field == "--only"
