"""Callback-backed LanguageModel implementation.

This module provides a LanguageModel whose behaviour is supplied by plain
Python callables, suitable for scripts, local experiments and tests where no
real provider is wanted.

Features:
- Non-streaming generation via ``do_generate``
- Streaming generation via ``do_stream``
- Either side derived from the other when only one callable is given
- Sync or async callables
"""

import inspect
import logging
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Callable, Iterable
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

from toolloop.application.agents.language_model import LanguageModel
from toolloop.domain.exceptions import StreamProtocolError
from toolloop.domain.models import (
    CallOptions,
    ChatStreamEvent,
    CompletionEvent,
    ErrorEvent,
    GenerateTextResult,
    Message,
    TextDeltaEvent,
    ThinkingDeltaEvent,
    ToolCallDeltaEvent,
)

if TYPE_CHECKING:
    from toolloop.application.agents.cancellation import CancellationToken

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

GenerateCallback = Callable[[list[Message], CallOptions | None, "CancellationToken | None"], Any]
StreamCallback = Callable[[list[Message], CallOptions | None, "CancellationToken | None"], Any]


class CallbackLanguageModel(LanguageModel):
    """LanguageModel implementation delegating to user callables.

    ``do_generate(messages, options, cancel_token)`` returns a
    ``GenerateTextResult`` (or an awaitable of one).
    ``do_stream(messages, options, cancel_token)`` returns an iterable or
    async iterable of stream events ending with a ``CompletionEvent``.

    When only ``do_generate`` is given, streaming replays its result as
    events. When only ``do_stream`` is given, generation consumes the stream
    and returns the completion's response.

    Usage:
        model = CallbackLanguageModel(do_generate=lambda messages, options, token: GenerateTextResult(text="Hi"))
        result = await model.generate_text([Message.user("Hello!")])
    """

    def __init__(
        self,
        do_generate: GenerateCallback | None = None,
        do_stream: StreamCallback | None = None,
        provider_id: str = "callback",
        model_id: str = "callback",
    ) -> None:
        if do_generate is None and do_stream is None:
            raise ValueError("CallbackLanguageModel needs do_generate, do_stream or both")
        self._do_generate = do_generate
        self._do_stream = do_stream
        self._provider_id = provider_id
        self._model_id = model_id

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def model_id(self) -> str:
        return self._model_id

    async def generate_text(
        self,
        messages: list[Message],
        options: CallOptions | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> GenerateTextResult:
        with tracer.start_as_current_span("callback_model.generate_text") as span:
            span.set_attribute("model.provider", self._provider_id)
            span.set_attribute("model.id", self._model_id)
            span.set_attribute("model.message_count", len(messages))

            if self._do_generate is None:
                return await self._generate_from_stream(messages, options, cancel_token)

            result = self._do_generate(list(messages), options, cancel_token)
            if inspect.isawaitable(result):
                result = await result
            if not isinstance(result, GenerateTextResult):
                raise TypeError(f"do_generate must return GenerateTextResult, got {type(result).__name__}")
            return result

    async def stream_text(
        self,
        messages: list[Message],
        options: CallOptions | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> AsyncIterator[ChatStreamEvent]:
        if self._do_stream is None:
            result = await self.generate_text(messages, options=options, cancel_token=cancel_token)
            for event in _replay(result):
                yield event
            return

        source = self._do_stream(list(messages), options, cancel_token)
        if inspect.isawaitable(source):
            source = await source
        if isinstance(source, AsyncGenerator):
            async with aclosing(source):
                async for event in source:
                    yield event
        elif isinstance(source, AsyncIterable):
            async for event in source:
                yield event
        else:
            for event in source:
                yield event

    async def _generate_from_stream(
        self,
        messages: list[Message],
        options: CallOptions | None,
        cancel_token: "CancellationToken | None",
    ) -> GenerateTextResult:
        async with aclosing(self.stream_text(messages, options=options, cancel_token=cancel_token)) as events:
            async for event in events:
                match event:
                    case CompletionEvent(response=response):
                        return response
                    case ErrorEvent(error=error):
                        raise error
        raise StreamProtocolError("Stream ended without a completion event")


def _replay(result: GenerateTextResult) -> Iterable[ChatStreamEvent]:
    """Express a complete result as the events a streaming provider would send."""
    if result.thinking:
        yield ThinkingDeltaEvent(result.thinking)
    if result.text:
        yield TextDeltaEvent(result.text)
    for call in result.tool_calls:
        yield ToolCallDeltaEvent(call)
    yield CompletionEvent(result)
