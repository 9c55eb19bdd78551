"""Test data factories and builders.

Provides reusable factory classes for creating test data with sensible defaults
and easy customization.
"""

import asyncio
import json
from collections.abc import Iterable
from typing import Any
from uuid import uuid4

from toolloop.application.agents.language_model import LanguageModel
from toolloop.domain.models import (
    CallOptions,
    ChatStreamEvent,
    CompletionEvent,
    ExecutableTool,
    GenerateTextResult,
    Message,
    TextDeltaEvent,
    ToolCall,
    ToolCallDeltaEvent,
    ToolFailure,
    Usage,
)

# ============================================================================
# TOOL CALL FACTORY
# ============================================================================


class ToolCallFactory:
    """Factory for creating ToolCall values with sensible defaults."""

    @staticmethod
    def create(
        tool_name: str = "get_weather",
        arguments: dict[str, Any] | None = None,
        call_id: str | None = None,
    ) -> ToolCall:
        """Create a ToolCall with defaults that can be overridden."""
        return ToolCall(
            id=call_id or f"call_{uuid4().hex[:8]}",
            tool_name=tool_name,
            arguments_json=json.dumps(arguments if arguments is not None else {"city": "Paris"}),
        )

    @staticmethod
    def create_many(count: int, tool_name: str = "get_weather") -> list[ToolCall]:
        """Create multiple calls with incrementing ids and arguments."""
        return [ToolCallFactory.create(tool_name=tool_name, arguments={"index": i}, call_id=f"call_{i + 1}") for i in range(count)]


# ============================================================================
# MODEL RESULT FACTORY
# ============================================================================


class ModelResultFactory:
    """Factory for creating GenerateTextResult values."""

    @staticmethod
    def text(text: str = "Done.", total_tokens: int = 10, thinking: str | None = None) -> GenerateTextResult:
        """Create a terminal result with text and usage."""
        return GenerateTextResult(
            text=text,
            thinking=thinking,
            usage=Usage(prompt_tokens=total_tokens - 2, completion_tokens=2, total_tokens=total_tokens),
        )

    @staticmethod
    def tool_calls(*calls: ToolCall, text: str | None = None, total_tokens: int = 5) -> GenerateTextResult:
        """Create a result requesting the given tool calls."""
        return GenerateTextResult(
            text=text,
            tool_calls=tuple(calls),
            usage=Usage(prompt_tokens=total_tokens - 1, completion_tokens=1, total_tokens=total_tokens),
        )


# ============================================================================
# SCRIPTED LANGUAGE MODEL
# ============================================================================


class ScriptedLanguageModel(LanguageModel):
    """LanguageModel returning pre-scripted results in order.

    Every call records a snapshot of the messages and options it received so
    tests can assert on what the agent sent.
    """

    def __init__(self, results: Iterable[GenerateTextResult] = (), streams: Iterable[list[ChatStreamEvent]] = ()) -> None:
        self._results = list(results)
        self._streams = list(streams)
        self.calls: list[list[Message]] = []
        self.options: list[CallOptions | None] = []

    @property
    def provider_id(self) -> str:
        return "scripted"

    @property
    def model_id(self) -> str:
        return "scripted-1"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate_text(self, messages, options=None, cancel_token=None) -> GenerateTextResult:
        self.calls.append(list(messages))
        self.options.append(options)
        if not self._results:
            raise AssertionError("ScriptedLanguageModel ran out of scripted results")
        return self._results.pop(0)

    async def stream_text(self, messages, options=None, cancel_token=None):
        self.calls.append(list(messages))
        self.options.append(options)
        if self._streams:
            events = self._streams.pop(0)
        elif self._results:
            events = replay_events(self._results.pop(0))
        else:
            raise AssertionError("ScriptedLanguageModel ran out of scripted streams")
        for event in events:
            await asyncio.sleep(0)
            yield event


def replay_events(result: GenerateTextResult) -> list[ChatStreamEvent]:
    """Express a result as the events a streaming provider would send."""
    events: list[ChatStreamEvent] = []
    if result.text:
        events.append(TextDeltaEvent(result.text))
    events.extend(ToolCallDeltaEvent(call) for call in result.tool_calls)
    events.append(CompletionEvent(result))
    return events


# ============================================================================
# TOOL FACTORY
# ============================================================================


class ConcurrencyTracker:
    """Tracks how many tool executions are in flight at once."""

    def __init__(self) -> None:
        self.current = 0
        self.max_seen = 0
        self.order: list[str] = []

    def enter(self, label: str) -> None:
        self.current += 1
        self.max_seen = max(self.max_seen, self.current)
        self.order.append(f"start:{label}")

    def exit(self, label: str) -> None:
        self.current -= 1
        self.order.append(f"end:{label}")


class ToolFactory:
    """Factory for creating ExecutableTool instances with scripted behaviour."""

    @staticmethod
    def echo(name: str = "echo") -> ExecutableTool:
        """Create a sync tool that returns its arguments."""
        return ExecutableTool.create(name=name, description=f"Echo tool {name}", execute=lambda args: {"echo": args})

    @staticmethod
    def constant(name: str, result: Any) -> ExecutableTool:
        """Create an async tool that always returns ``result``."""

        async def execute(args: dict[str, Any]) -> Any:
            return result

        return ExecutableTool.create(name=name, description=f"Constant tool {name}", execute=execute)

    @staticmethod
    def flaky(name: str, failures: int, result: Any = "ok") -> tuple[ExecutableTool, list[int]]:
        """Create a tool that raises ``failures`` times before returning ``result``.

        Returns the tool and a list recording each attempt number.
        """
        attempts: list[int] = []

        async def execute(args: dict[str, Any]) -> Any:
            attempts.append(len(attempts) + 1)
            if len(attempts) <= failures:
                raise RuntimeError(f"transient failure {len(attempts)}")
            return result

        return ExecutableTool.create(name=name, description=f"Flaky tool {name}", execute=execute), attempts

    @staticmethod
    def failing(name: str, message: str = "boom") -> tuple[ExecutableTool, list[int]]:
        """Create a tool that always raises.

        Returns the tool and a list recording each attempt number.
        """
        attempts: list[int] = []

        async def execute(args: dict[str, Any]) -> Any:
            attempts.append(len(attempts) + 1)
            raise RuntimeError(message)

        return ExecutableTool.create(name=name, description=f"Failing tool {name}", execute=execute), attempts

    @staticmethod
    def reporting_failure(name: str, message: str = "not found") -> tuple[ExecutableTool, list[int]]:
        """Create a tool that returns a ToolFailure instead of raising."""
        attempts: list[int] = []

        async def execute(args: dict[str, Any]) -> Any:
            attempts.append(len(attempts) + 1)
            return ToolFailure(message)

        return ExecutableTool.create(name=name, description=f"Reporting tool {name}", execute=execute), attempts

    @staticmethod
    def sleeping(name: str, tracker: ConcurrencyTracker, delay: float = 0.02) -> ExecutableTool:
        """Create an async tool that sleeps while recording concurrency."""

        async def execute(args: dict[str, Any]) -> Any:
            label = f"{name}:{args.get('index', '')}"
            tracker.enter(label)
            try:
                await asyncio.sleep(delay)
            finally:
                tracker.exit(label)
            return {"slept": delay, "args": args}

        return ExecutableTool.create(name=name, description=f"Sleeping tool {name}", execute=execute)
