"""Domain layer for toolloop.

Contains:
- exceptions: Error taxonomy of the agent loop
- models/: Value objects (messages, tools, results, stream events and parts)
"""

from toolloop.domain.exceptions import (
    AgentError,
    IterationLimitExceededError,
    ModelInvocationError,
    OperationCancelledError,
    StreamProtocolError,
    StructuredOutputParseError,
    ToolArgumentsError,
    ToolExecutionError,
    UnknownToolError,
)

__all__ = [
    "AgentError",
    "IterationLimitExceededError",
    "ModelInvocationError",
    "OperationCancelledError",
    "StreamProtocolError",
    "StructuredOutputParseError",
    "ToolArgumentsError",
    "ToolExecutionError",
    "UnknownToolError",
]
