"""
ERRORS - Typed failures for the agent boundary

Every AgentError carries a status code the service layer maps 1:1 onto its
response, so a client can tell "not ready yet" from "bad input" from
"internal failure".

FatalConfigurationError is deliberately NOT an AgentError: it marks a broken
process-wide invariant (the kernel's single sensor-callback slot) and must
never be turned into a normal response.
"""


class AgentError(Exception):
    """Base agent error."""

    code = "UNKNOWN"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotInitializedError(AgentError):
    code = "FAILED_PRECONDITION"

    def __init__(self, message: str = "Init not called."):
        super().__init__(message)


class InvalidArgumentError(AgentError):
    code = "INVALID_ARGUMENT"


class InternalError(AgentError):
    code = "INTERNAL"


class RolloutDivergedError(InternalError):
    """Raised inside a rollout job; absorbed as a worst-case score."""


class FatalConfigurationError(Exception):
    """Process-wide configuration breach - not recoverable by retrying."""
