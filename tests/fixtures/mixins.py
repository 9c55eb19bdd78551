"""Test mixins for reusable test patterns.

Provides base classes with common testing utilities for assertions on
stream parts and async operations.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable
from typing import Any, TypeVar

from toolloop.domain.models import Message, MessageRole, ToolResultPart

T = TypeVar("T")


# ============================================================================
# ASYNC TEST MIXINS
# ============================================================================


class AsyncTestMixin:
    """Mixin providing utilities for async tests."""

    @staticmethod
    async def await_with_timeout(coro: Awaitable[T], timeout: float = 5.0, error_msg: str | None = None) -> T:
        """Await a coroutine with timeout."""
        try:
            result: T = await asyncio.wait_for(coro, timeout=timeout)
            return result
        except asyncio.TimeoutError as e:
            msg: str = error_msg or f"Operation timed out after {timeout}s"
            raise AssertionError(msg) from e

    @staticmethod
    async def collect(stream: AsyncIterator[T]) -> list[T]:
        """Drain an async iterator into a list."""
        return [item async for item in stream]


# ============================================================================
# ASSERTION MIXINS
# ============================================================================


class StreamAssertionsMixin:
    """Mixin providing assertions over stream parts."""

    @staticmethod
    def part_types(parts: list[Any]) -> list[str]:
        """Return the class names of the given parts, in order."""
        return [type(part).__name__ for part in parts]

    @staticmethod
    def assert_finish_is_last(parts: list[Any]) -> None:
        """Assert exactly one Finish part, in last position."""
        names: list[str] = [type(part).__name__ for part in parts]
        assert names.count("Finish") == 1, f"Expected one Finish, got {names}"
        assert names[-1] == "Finish", f"Finish is not last: {names}"


class ConversationAssertionsMixin:
    """Mixin providing assertions over conversations sent to a model."""

    @staticmethod
    def tool_result_ids(messages: list[Message]) -> list[str]:
        """Return the tool call ids of all tool-result parts, in order."""
        return [part.tool_call_id for message in messages for part in message.parts if isinstance(part, ToolResultPart)]

    @staticmethod
    def roles(messages: list[Message]) -> list[MessageRole]:
        return [message.role for message in messages]
