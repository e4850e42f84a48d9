from __future__ import annotations

import logging
import os
from collections.abc import Generator, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from click.testing import CliRunner

# Register fixture plugins from tests/fixtures/
pytest_plugins = [
    "tests.fixtures.config",
    "tests.fixtures.github",
]


@pytest.fixture(autouse=True)
def configure_test_logging() -> Generator[None, None, None]:
    """Route structlog to stderr at WARNING so test output stays quiet."""
    from workflow_propagator.logging import clear_context, configure_logging

    configure_logging(level=logging.WARNING)
    yield
    clear_context()


@pytest.fixture
def temp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Temporary working directory; the original cwd is restored afterwards."""
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove GITHUB_TOKEN and all PROPAGATOR_ variables for the test."""
    original_env = os.environ.copy()
    for key in list(os.environ.keys()):
        if key.startswith("PROPAGATOR_") or key == "GITHUB_TOKEN":
            del os.environ[key]
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
