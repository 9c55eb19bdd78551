"""Agent abstractions for toolloop.

This package contains:
- Agent base class, run input and loop configuration
- Language model abstraction
- Tool execution coordinator
- Tool loop agent implementation
- Structured output parsing
- Cooperative cancellation
"""

from toolloop.application.agents.agent_config import ToolLoopConfig
from toolloop.application.agents.base_agent import Agent, AgentInput
from toolloop.application.agents.cancellation import CancellationToken, CancellationTokenSource
from toolloop.application.agents.language_model import LanguageModel
from toolloop.application.agents.structured_output import extract_json_object, parse_structured_output
from toolloop.application.agents.tool_execution import ToolExecutionCoordinator
from toolloop.application.agents.tool_loop_agent import ToolLoopAgent

__all__ = [
    # Agent
    "Agent",
    "AgentInput",
    "ToolLoopAgent",
    "ToolLoopConfig",
    # Language Model
    "LanguageModel",
    # Tool Execution
    "ToolExecutionCoordinator",
    # Structured Output
    "extract_json_object",
    "parse_structured_output",
    # Cancellation
    "CancellationToken",
    "CancellationTokenSource",
]
