from __future__ import annotations


class PropagatorError(Exception):
    """Base exception class for all workflow propagator errors.

    Everything the propagator raises on purpose derives from this class, so
    the per-repository boundary and the CLI can catch it without also
    swallowing programming errors.

    Attributes:
        message: Human-readable error message describing what went wrong.
    """

    def __init__(self, message: str) -> None:
        """Initialize the PropagatorError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
