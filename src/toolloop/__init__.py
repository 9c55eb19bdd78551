"""toolloop: a tool-calling agent loop and streaming delta reconstructor.

Typical use:

    from toolloop import AgentInput, ExecutableTool, Message, ToolLoopAgent

    agent = ToolLoopAgent()
    result = await agent.run_text(AgentInput.create(model, [Message.user("Hi")], tools=[weather]))
"""

from toolloop.application.agents import (
    Agent,
    AgentInput,
    CancellationToken,
    CancellationTokenSource,
    LanguageModel,
    ToolExecutionCoordinator,
    ToolLoopAgent,
    ToolLoopConfig,
    parse_structured_output,
)
from toolloop.application.streaming import StreamingDeltaReconstructor, adapt_stream_text, reconstruct, stream_text_parts
from toolloop.domain.exceptions import (
    AgentError,
    IterationLimitExceededError,
    ModelInvocationError,
    OperationCancelledError,
    StreamProtocolError,
    StructuredOutputParseError,
    ToolApprovalRequiredError,
    ToolArgumentsError,
    ToolExecutionError,
    UnknownToolError,
)
from toolloop.domain.models import (
    AgentResult,
    AgentRunWithSteps,
    CallOptions,
    ExecutableTool,
    GenerateTextResult,
    Message,
    OutputSpec,
    Step,
    ToolCall,
    ToolExecutionRecord,
    ToolFailure,
    ToolLoopBlocked,
    ToolLoopCompleted,
    ToolLoopOutcome,
    ToolSchema,
    Usage,
)
from toolloop.infrastructure.adapters import CallbackLanguageModel

__version__ = "0.1.0"

__all__ = [
    # Agent
    "Agent",
    "AgentInput",
    "ToolLoopAgent",
    "ToolLoopConfig",
    "ToolExecutionCoordinator",
    "LanguageModel",
    "CallbackLanguageModel",
    "parse_structured_output",
    # Cancellation
    "CancellationToken",
    "CancellationTokenSource",
    # Streaming
    "StreamingDeltaReconstructor",
    "adapt_stream_text",
    "reconstruct",
    "stream_text_parts",
    # Models
    "AgentResult",
    "AgentRunWithSteps",
    "CallOptions",
    "ExecutableTool",
    "GenerateTextResult",
    "Message",
    "OutputSpec",
    "Step",
    "ToolCall",
    "ToolExecutionRecord",
    "ToolFailure",
    "ToolLoopBlocked",
    "ToolLoopCompleted",
    "ToolLoopOutcome",
    "ToolSchema",
    "Usage",
    # Errors
    "AgentError",
    "IterationLimitExceededError",
    "ModelInvocationError",
    "OperationCancelledError",
    "StreamProtocolError",
    "StructuredOutputParseError",
    "ToolApprovalRequiredError",
    "ToolArgumentsError",
    "ToolExecutionError",
    "UnknownToolError",
]
