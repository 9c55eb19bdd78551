"""Exceptions raised by the tool loop.

Every error carries a categorized ``error_code`` plus enough context
(tool name, iteration, attempt count, raw text) to diagnose a failed run
without inspecting internal state.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from toolloop.domain.models.agent import Step, ToolLoopBlocked


class AgentError(Exception):
    """Base error for agent loop failures.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code
        is_retryable: Whether the operation might succeed on retry
        details: Additional error details
    """

    def __init__(
        self,
        message: str,
        error_code: str = "agent_error",
        is_retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.is_retryable = is_retryable
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and API responses."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "is_retryable": self.is_retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ModelInvocationError(AgentError):
    """Base class for errors raised by a language model collaborator.

    Model adapters should raise subclasses of this error. The agent loop
    never wraps or recovers these; they reach the caller unchanged.
    """

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        error_code: str = "model_invocation_error",
        is_retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, is_retryable=is_retryable, details=details)
        self.provider = provider

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["provider"] = self.provider
        return result


class UnknownToolError(AgentError):
    """Raised when the model requests a tool that has no registered executor."""

    def __init__(self, tool_name: str, call_id: str | None = None, iteration: int | None = None) -> None:
        super().__init__(
            f"Unknown tool: {tool_name}",
            error_code="unknown_tool",
            details={"tool_name": tool_name, "call_id": call_id, "iteration": iteration},
        )
        self.tool_name = tool_name
        self.call_id = call_id
        self.iteration = iteration


class ToolArgumentsError(AgentError):
    """Raised when tool call arguments are not a JSON object."""

    def __init__(self, tool_name: str, arguments_json: str, reason: str) -> None:
        super().__init__(
            f'Failed to parse tool arguments for "{tool_name}": {reason}',
            error_code="invalid_tool_arguments",
            details={"tool_name": tool_name, "arguments_json": arguments_json},
        )
        self.tool_name = tool_name
        self.arguments_json = arguments_json


class ToolExecutionError(AgentError):
    """Raised when a tool keeps failing after its retry budget is spent."""

    def __init__(
        self,
        tool_name: str,
        attempts: int,
        call_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        reason = f": {cause}" if cause is not None else ""
        super().__init__(
            f'Tool execution failed for "{tool_name}" after {attempts} attempt(s){reason}',
            error_code="tool_execution_error",
            details={"tool_name": tool_name, "attempts": attempts, "call_id": call_id},
        )
        self.tool_name = tool_name
        self.attempts = attempts
        self.call_id = call_id
        self.cause = cause


class IterationLimitExceededError(AgentError):
    """Raised when the loop runs out of iterations while tools are still requested.

    Attributes:
        max_iterations: The configured iteration bound
        steps: The steps completed before the limit was hit
    """

    def __init__(self, max_iterations: int, steps: "tuple[Step, ...]" = ()) -> None:
        super().__init__(
            f"Agent reached the iteration limit ({max_iterations}) with tool calls still pending",
            error_code="iteration_limit_exceeded",
            details={"max_iterations": max_iterations, "completed_steps": len(steps)},
        )
        self.max_iterations = max_iterations
        self.steps = steps


class StructuredOutputParseError(AgentError):
    """Raised when the final text cannot be parsed into the requested object.

    Attributes:
        raw_text: The model text that failed to parse
        schema_name: Name of the output specification
        validation_errors: Schema violations, if parsing succeeded but validation did not
    """

    def __init__(
        self,
        message: str,
        raw_text: str,
        schema_name: str | None = None,
        validation_errors: list[str] | None = None,
    ) -> None:
        super().__init__(
            message,
            error_code="structured_output_error",
            details={"schema_name": schema_name, "validation_errors": validation_errors or []},
        )
        self.raw_text = raw_text
        self.schema_name = schema_name
        self.validation_errors = validation_errors or []


class OperationCancelledError(AgentError):
    """Raised when a cancellation token was triggered before a suspension point."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(
            f"Operation cancelled: {reason}" if reason else "Operation cancelled",
            error_code="cancelled",
            details={"reason": reason},
        )
        self.reason = reason


class StreamProtocolError(AgentError):
    """Raised when an event stream violates the expected event lifecycle."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="stream_protocol_error")


class ToolApprovalRequiredError(AgentError):
    """Raised by runs that cannot pause when a tool call needs approval.

    Attributes:
        blocked: The paused run state (pending calls, steps and messages)
    """

    def __init__(self, blocked: "ToolLoopBlocked") -> None:
        pending = [call.tool_name for call in blocked.pending_approval]
        super().__init__(
            f"Tool approval required for {pending} at iteration {blocked.iteration}",
            error_code="tool_approval_required",
            details={"iteration": blocked.iteration, "pending_call_ids": [call.id for call in blocked.pending_approval]},
        )
        self.blocked = blocked
