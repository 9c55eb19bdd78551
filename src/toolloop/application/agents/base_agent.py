"""Base Agent abstraction for toolloop.

This module defines the abstract Agent interface and the input type shared
by all agent implementations.

Design Principles:
- Interface-based design for different agent implementations
- Agents own no conversation state; everything a run needs is in its input
- Step tracing is optional: the base class returns an empty trace
- Pausing for tool approval is optional: the base class always completes
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from toolloop.application.agents.agent_config import ToolLoopConfig
from toolloop.application.agents.cancellation import CancellationToken
from toolloop.application.agents.language_model import LanguageModel
from toolloop.domain.models import AgentResult, AgentRunWithSteps, CallOptions, ExecutableTool, Message, OutputSpec, ToolApprovalCheck, ToolLoopCompleted, ToolLoopOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AgentInput:
    """Everything an agent run needs.

    Attributes:
        model: The language model to call
        messages: Initial conversation; never mutated by the agent
        tools: Executable tools keyed by name
        loop_config: Iteration bound and tool execution policy (None = the agent's default)
        cancel_token: Cooperative cancellation signal for the run
        call_options: Per-call model options forwarded on every model call
        tool_approval_checks: Per-tool approval checks keyed by tool name
        needs_approval: Approval check for tools without a per-tool check
    """

    model: LanguageModel
    messages: Sequence[Message]
    tools: Mapping[str, ExecutableTool] = field(default_factory=dict)
    loop_config: ToolLoopConfig | None = None
    cancel_token: CancellationToken | None = None
    call_options: CallOptions | None = None
    tool_approval_checks: Mapping[str, ToolApprovalCheck] = field(default_factory=dict)
    needs_approval: ToolApprovalCheck | None = None

    @property
    def requires_approval_checks(self) -> bool:
        return bool(self.tool_approval_checks) or self.needs_approval is not None

    @classmethod
    def create(
        cls,
        model: LanguageModel,
        messages: Sequence[Message],
        tools: Sequence[ExecutableTool] = (),
        loop_config: ToolLoopConfig | None = None,
        cancel_token: CancellationToken | None = None,
        call_options: CallOptions | None = None,
        tool_approval_checks: Mapping[str, ToolApprovalCheck] | None = None,
        needs_approval: ToolApprovalCheck | None = None,
    ) -> "AgentInput":
        """Build an input from a list of tools, keying them by name."""
        registry: dict[str, ExecutableTool] = {}
        for tool in tools:
            if tool.name in registry:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            registry[tool.name] = tool
        return cls(
            model=model,
            messages=tuple(messages),
            tools=registry,
            loop_config=loop_config,
            cancel_token=cancel_token,
            call_options=call_options,
            tool_approval_checks=dict(tool_approval_checks or {}),
            needs_approval=needs_approval,
        )


class Agent(ABC):
    """Abstract base class for AI agents.

    An Agent drives a language model, and any tools it requests, to a final
    answer. Implementations differ in how they loop and what they return.

    Implementations:
    - ToolLoopAgent: bounded call-execute-append loop with retries

    Usage:
        agent = ToolLoopAgent()
        result = await agent.run_text(AgentInput.create(model, [Message.user("Hi")]))
    """

    @abstractmethod
    async def run_text(self, input: AgentInput) -> AgentResult[Any]:
        """Run the agent and return its final text.

        Args:
            input: The run input

        Returns:
            The final result; ``result.text`` holds the answer
        """
        pass

    @abstractmethod
    async def run_object(self, input: AgentInput, output: OutputSpec[T]) -> AgentResult[T]:
        """Run the agent and parse its final text into a structured object.

        Args:
            input: The run input
            output: Schema and parser for the expected object

        Returns:
            The final result; ``result.object`` holds the parsed object
        """
        pass

    async def run_text_with_steps(self, input: AgentInput) -> AgentRunWithSteps[Any]:
        """Run the agent and return its final text with the per-step trace.

        Agents that do not trace steps return an empty trace.
        """
        return AgentRunWithSteps(result=await self.run_text(input), steps=())

    async def run_object_with_steps(self, input: AgentInput, output: OutputSpec[T]) -> AgentRunWithSteps[T]:
        """Structured variant of ``run_text_with_steps``."""
        return AgentRunWithSteps(result=await self.run_object(input, output), steps=())

    async def run_text_until_blocked(self, input: AgentInput) -> ToolLoopOutcome:
        """Run the agent, pausing when a tool call needs approval.

        Agents that never pause always complete, with an empty message list.
        """
        return ToolLoopCompleted(run=await self.run_text_with_steps(input))
