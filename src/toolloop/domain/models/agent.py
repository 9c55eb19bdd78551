"""Agent run results and per-step traces."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from toolloop.domain.models.generation import CallWarning, GenerateTextResult, Usage
from toolloop.domain.models.message import Message, ToolCall
from toolloop.domain.models.tool import ToolExecutionRecord

T = TypeVar("T")


@dataclass(frozen=True)
class Step:
    """One round-trip of the loop: a model call plus the tools it requested.

    Attributes:
        iteration: 1-based position of this step in the run
        model_result: What the model returned on this step
        tool_executions: One record per requested tool call, in call order
    """

    iteration: int
    model_result: GenerateTextResult
    tool_executions: tuple[ToolExecutionRecord, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return not self.model_result.has_tool_calls

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "text": self.model_result.text,
            "tool_calls": [tc.to_dict() for tc in self.model_result.tool_calls],
            "usage": self.model_result.usage.to_dict() if self.model_result.usage else None,
            "tool_executions": [r.to_dict() for r in self.tool_executions],
        }


@dataclass(frozen=True)
class AgentResult(Generic[T]):
    """Final result of an agent run.

    Exactly one of ``text`` (text runs) or ``object`` (structured runs) is
    the payload. ``usage`` is the usage of the last model call, not a sum
    over the run.
    """

    text_result: GenerateTextResult
    text: str | None = None
    object: T | None = None
    usage: Usage | None = None
    warnings: tuple[CallWarning, ...] = ()
    raw_response: Any = None

    @classmethod
    def from_text(cls, text_result: GenerateTextResult) -> "AgentResult[Any]":
        return cls(
            text_result=text_result,
            text=text_result.text,
            usage=text_result.usage,
            warnings=text_result.warnings,
            raw_response=text_result.raw_response,
        )

    @classmethod
    def from_object(cls, obj: T, text_result: GenerateTextResult) -> "AgentResult[T]":
        return cls(
            text_result=text_result,
            object=obj,
            usage=text_result.usage,
            warnings=text_result.warnings,
            raw_response=text_result.raw_response,
        )


@dataclass(frozen=True)
class AgentRunWithSteps(Generic[T]):
    """An agent result together with the trace of steps that produced it."""

    result: AgentResult[T]
    steps: tuple[Step, ...] = field(default_factory=tuple)

    @property
    def iterations(self) -> int:
        return len(self.steps)

    @property
    def tool_calls_made(self) -> int:
        return sum(len(step.tool_executions) for step in self.steps)


@dataclass(frozen=True)
class ToolLoopCompleted(Generic[T]):
    """Outcome of a run that reached a final answer.

    Attributes:
        run: The final result and its step trace
        messages: The working conversation, ending with the final assistant turn
    """

    run: AgentRunWithSteps[T]
    messages: tuple[Message, ...] = ()

    @property
    def result(self) -> AgentResult[T]:
        return self.run.result

    @property
    def steps(self) -> tuple[Step, ...]:
        return self.run.steps


@dataclass(frozen=True)
class ToolLoopBlocked:
    """Outcome of a run paused because tool calls need approval.

    No tool of the blocked step was executed. ``messages`` ends with the
    assistant turn that requested the calls, so a caller can append the
    approved results (or refusals) and start a new run from it.

    Attributes:
        iteration: The step at which the run paused
        model_result: What the model returned on that step
        tool_calls: Every call the model requested on that step
        pending_approval: The subset of ``tool_calls`` that needs approval
        steps: Completed steps, including the blocked one (with no executions)
        messages: The working conversation at the pause
    """

    iteration: int
    model_result: GenerateTextResult
    tool_calls: tuple[ToolCall, ...]
    pending_approval: tuple[ToolCall, ...]
    steps: tuple[Step, ...] = ()
    messages: tuple[Message, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
            "pending_approval": [tc.id for tc in self.pending_approval],
            "steps": [step.to_dict() for step in self.steps],
        }


ToolLoopOutcome = Union[ToolLoopCompleted[Any], ToolLoopBlocked]
