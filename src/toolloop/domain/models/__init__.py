"""Domain models for toolloop.

Immutable value objects shared by the agent loop, the tool coordinator
and the stream reconstructor.
"""

from toolloop.domain.models.agent import AgentResult, AgentRunWithSteps, Step, ToolLoopBlocked, ToolLoopCompleted, ToolLoopOutcome
from toolloop.domain.models.generation import CallMetadata, CallOptions, CallWarning, GenerateObjectResult, GenerateTextResult, Usage
from toolloop.domain.models.message import ContentPart, FilePart, Message, MessageRole, ReasoningPart, TextPart, ToolCall, ToolCallPart, ToolResultPart
from toolloop.domain.models.output import OutputSpec
from toolloop.domain.models.stream import (
    AgentStreamPart,
    ChatStreamEvent,
    CompletionEvent,
    ErrorEvent,
    Finish,
    StepFinish,
    StreamPart,
    TextDelta,
    TextDeltaEvent,
    TextEnd,
    TextStart,
    ThinkingDelta,
    ThinkingDeltaEvent,
    ToolCallDeltaEvent,
    ToolCallFinal,
    ToolInputDelta,
    ToolInputEnd,
    ToolInputStart,
    ToolResultEmitted,
)
from toolloop.domain.models.tool import ExecutableTool, ToolApprovalCheck, ToolExecutionRecord, ToolFailure, ToolFunction, ToolOutcome, ToolSchema, ToolSuccess

__all__ = [
    # Messages
    "ContentPart",
    "FilePart",
    "Message",
    "MessageRole",
    "ReasoningPart",
    "TextPart",
    "ToolCall",
    "ToolCallPart",
    "ToolResultPart",
    # Tools
    "ExecutableTool",
    "ToolApprovalCheck",
    "ToolExecutionRecord",
    "ToolFailure",
    "ToolFunction",
    "ToolOutcome",
    "ToolSchema",
    "ToolSuccess",
    # Generation
    "CallMetadata",
    "CallOptions",
    "CallWarning",
    "GenerateObjectResult",
    "GenerateTextResult",
    "Usage",
    # Output
    "OutputSpec",
    # Agent
    "AgentResult",
    "AgentRunWithSteps",
    "Step",
    "ToolLoopBlocked",
    "ToolLoopCompleted",
    "ToolLoopOutcome",
    # Stream events
    "ChatStreamEvent",
    "CompletionEvent",
    "ErrorEvent",
    "TextDeltaEvent",
    "ThinkingDeltaEvent",
    "ToolCallDeltaEvent",
    # Stream parts
    "Finish",
    "StreamPart",
    "TextDelta",
    "TextEnd",
    "TextStart",
    "ThinkingDelta",
    "ToolCallFinal",
    "ToolInputDelta",
    "ToolInputEnd",
    "ToolInputStart",
    # Agent loop parts
    "AgentStreamPart",
    "StepFinish",
    "ToolResultEmitted",
]
