"""Propagate AI review caller workflows to satellite repositories."""

from __future__ import annotations

from workflow_propagator.config import RepositoryTarget, RunConfig, load_config
from workflow_propagator.propagator import (
    Outcome,
    OutcomeStatus,
    RunResult,
    SkipReason,
    UpdatePropagator,
)

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "RepositoryTarget",
    "RunConfig",
    "load_config",
    "Outcome",
    "OutcomeStatus",
    "RunResult",
    "SkipReason",
    "UpdatePropagator",
]
