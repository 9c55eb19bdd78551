"""Streaming value types.

Three closed unions live here:

- ``ChatStreamEvent``: low-level events delivered by a model's stream
  (text, thinking and tool-call fragments, then a single completion).
- ``StreamPart``: the lifecycle-correct parts produced from those events
  for renderers (start/delta/end framing, final tool calls, finish).
- ``AgentStreamPart``: stream parts plus the tool results and step
  boundaries of a streaming agent run.
"""

from dataclasses import dataclass
from typing import Any, Union

from toolloop.domain.models.agent import Step
from toolloop.domain.models.generation import CallMetadata, CallWarning, GenerateTextResult, Usage
from toolloop.domain.models.message import ToolCall
from toolloop.domain.models.tool import ToolExecutionRecord

# =============================================================================
# Low-level events
# =============================================================================


@dataclass(frozen=True)
class TextDeltaEvent:
    delta: str


@dataclass(frozen=True)
class ThinkingDeltaEvent:
    delta: str


@dataclass(frozen=True)
class ToolCallDeltaEvent:
    """A fragment of a tool call.

    ``tool_call.arguments_json`` holds only this fragment's slice of the
    arguments; ``tool_call.id`` ties fragments of the same call together.
    """

    tool_call: ToolCall


@dataclass(frozen=True)
class CompletionEvent:
    """Terminal event carrying the authoritative final response."""

    response: GenerateTextResult


@dataclass(frozen=True)
class ErrorEvent:
    """An upstream failure delivered in-band."""

    error: BaseException


ChatStreamEvent = Union[TextDeltaEvent, ThinkingDeltaEvent, ToolCallDeltaEvent, CompletionEvent, ErrorEvent]

# =============================================================================
# Stream parts
# =============================================================================


@dataclass(frozen=True)
class TextStart:
    pass


@dataclass(frozen=True)
class TextDelta:
    delta: str


@dataclass(frozen=True)
class TextEnd:
    text: str


@dataclass(frozen=True)
class ThinkingDelta:
    delta: str


@dataclass(frozen=True)
class ToolInputStart:
    tool_call_id: str
    tool_name: str


@dataclass(frozen=True)
class ToolInputDelta:
    tool_call_id: str
    delta: str


@dataclass(frozen=True)
class ToolInputEnd:
    tool_call_id: str


@dataclass(frozen=True)
class ToolCallFinal:
    tool_call: ToolCall


@dataclass(frozen=True)
class Finish:
    """Last part of every stream, carrying the complete result."""

    text: str | None
    tool_calls: tuple[ToolCall, ...]
    thinking: str | None
    usage: Usage | None
    warnings: tuple[CallWarning, ...]
    metadata: CallMetadata | None
    raw_response: Any

    @classmethod
    def from_response(cls, response: GenerateTextResult) -> "Finish":
        return cls(
            text=response.text,
            tool_calls=response.tool_calls,
            thinking=response.thinking,
            usage=response.usage,
            warnings=response.warnings,
            metadata=response.metadata,
            raw_response=response.raw_response,
        )

    def to_result(self) -> GenerateTextResult:
        """Rebuild the model result this part was produced from."""
        return GenerateTextResult(
            text=self.text,
            thinking=self.thinking,
            tool_calls=self.tool_calls,
            usage=self.usage,
            warnings=self.warnings,
            metadata=self.metadata,
            raw_response=self.raw_response,
        )


StreamPart = Union[
    TextStart,
    TextDelta,
    TextEnd,
    ThinkingDelta,
    ToolInputStart,
    ToolInputDelta,
    ToolInputEnd,
    ToolCallFinal,
    Finish,
]

# =============================================================================
# Agent loop parts
# =============================================================================


@dataclass(frozen=True)
class ToolResultEmitted:
    """A tool call of the current step finished executing."""

    iteration: int
    record: ToolExecutionRecord


@dataclass(frozen=True)
class StepFinish:
    """A loop step completed; emitted after its tool results."""

    step: Step

    @property
    def iteration(self) -> int:
        return self.step.iteration


AgentStreamPart = Union[StreamPart, ToolResultEmitted, StepFinish]
