"""Tool models: declarative schemas, executable tools and execution records."""

import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from toolloop.domain.models.message import Message, ToolCall


@dataclass(frozen=True)
class ToolSchema:
    """Declarative description of a tool exposed to the model.

    Attributes:
        name: Unique name of the tool
        description: Human-readable description of what the tool does
        parameters: JSON Schema describing the tool's arguments
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass(frozen=True)
class ToolSuccess:
    """A tool produced a result."""

    result: Any


@dataclass(frozen=True)
class ToolFailure:
    """A tool failed.

    Tools return this from ``execute`` to report a deliberate failure, which
    is final and never retried. The coordinator also uses it to record
    unknown tools and malformed arguments.
    """

    message: str
    details: dict[str, Any] = field(default_factory=dict)


ToolOutcome = Union[ToolSuccess, ToolFailure]

ToolFunction = Callable[..., Union[Any, Awaitable[Any]]]

# Called as check(call, messages, iteration); True pauses the run before any tool of the step executes.
ToolApprovalCheck = Callable[[ToolCall, Sequence[Message], int], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class ExecutableTool:
    """A tool schema paired with the function that performs the work.

    ``execute`` receives the decoded JSON arguments as a dict and may be a
    plain or an ``async`` function. When it declares a ``cancel_token``
    keyword parameter, the run's cancellation token is passed along.
    It returns a JSON-compatible value, or a ``ToolFailure`` to report a
    failure that must not be retried. Raising is treated as an unexpected
    failure and is retried within the configured budget.
    """

    schema: ToolSchema
    execute: ToolFunction

    @property
    def name(self) -> str:
        return self.schema.name

    @classmethod
    def create(
        cls,
        name: str,
        description: str,
        execute: ToolFunction,
        parameters: dict[str, Any] | None = None,
    ) -> "ExecutableTool":
        """Convenience constructor that builds the schema inline."""
        schema = ToolSchema(name=name, description=description, parameters=parameters or {"type": "object", "properties": {}})
        return cls(schema=schema, execute=execute)


@dataclass(frozen=True)
class ToolExecutionRecord:
    """Outcome of one tool call within a step.

    Attributes:
        call: The tool call that was executed
        outcome: ``ToolSuccess`` or ``ToolFailure``
        attempt_count: Number of times ``execute`` was invoked (0 when it never ran)
        execution_time_ms: Wall time spent across all attempts
    """

    call: ToolCall
    outcome: ToolOutcome
    attempt_count: int = 1
    execution_time_ms: float = 0.0

    @property
    def is_success(self) -> bool:
        return isinstance(self.outcome, ToolSuccess)

    @property
    def result(self) -> Any | None:
        return self.outcome.result if isinstance(self.outcome, ToolSuccess) else None

    @property
    def error(self) -> str | None:
        return self.outcome.message if isinstance(self.outcome, ToolFailure) else None

    def to_message(self) -> Message:
        """Convert to the tool-result message appended to the conversation."""
        match self.outcome:
            case ToolSuccess(result=result):
                content = result if isinstance(result, str) else json.dumps(result)
                return Message.tool_result(self.call.id, self.call.tool_name, content)
            case ToolFailure(message=message):
                return Message.tool_result(self.call.id, self.call.tool_name, f"Error: {message}", is_error=True)
            case _:
                raise TypeError(f"Unsupported tool outcome: {type(self.outcome).__name__}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "call": self.call.to_dict(),
            "success": self.is_success,
            "result": self.result,
            "error": self.error,
            "attempt_count": self.attempt_count,
            "execution_time_ms": self.execution_time_ms,
        }
