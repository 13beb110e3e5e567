"""Error taxonomy for the agent.

- ValidationError: malformed inbound request (before any stream opens)
- PlanningError: plan generation/parsing failure, always recovered locally
- ExecutionError: a plan step failed or referenced a missing step
- ApiError: HTTP-level failure of an external tool call

Anything raised before the NDJSON stream opens becomes a JSON error
response with the error's status code. Once streaming has begun, failures
can only be reported through an `error` frame.
"""

from typing import Any, Optional


class AgentError(Exception):
    """Base error carrying a machine-readable code and HTTP status."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def __str__(self) -> str:
        return self.message


class ValidationError(AgentError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class ApiError(AgentError):
    """An external API answered with a non-success status (or not at all)."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, "API_ERROR", status_code, details)


class PlanningError(AgentError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "PLANNING_ERROR", 500, details)


class ExecutionError(AgentError):
    """A plan step could not be executed.

    `step_id` names the first failing step (or the step holding a dangling
    reference). The underlying ApiError, if any, is chained as __cause__.
    """

    def __init__(
        self,
        message: str,
        step_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, "EXECUTION_ERROR", 500, details)
        self.step_id = step_id


def handle_error(error: BaseException) -> AgentError:
    """Normalize any exception into an AgentError."""
    if isinstance(error, AgentError):
        return error
    return AgentError(str(error) or error.__class__.__name__, "UNKNOWN_ERROR", 500)


def error_body(error: AgentError) -> dict[str, Any]:
    """JSON body for a non-streaming error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details,
        }
    }
