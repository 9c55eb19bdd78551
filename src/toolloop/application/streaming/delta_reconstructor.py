"""Reconstruction of lifecycle-correct stream parts from raw model events.

Providers deliver a response as a flat sequence of fragments: text deltas,
reasoning deltas and slices of tool-call arguments, interleaved in whatever
order the provider produced them, followed by one completion event. The
reconstructor turns that into parts a renderer can consume directly:

    TextStart, TextDelta*, ThinkingDelta*,
    ToolInputStart, ToolInputDelta* (per tool call),
    ToolInputEnd + ToolCallFinal (per tool call, first-seen order),
    TextEnd (only if text was started),
    Finish

Parts are produced lazily, one upstream event at a time, and cross-channel
arrival order is preserved.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from toolloop.domain.exceptions import StreamProtocolError
from toolloop.domain.models import (
    CallOptions,
    ChatStreamEvent,
    CompletionEvent,
    ErrorEvent,
    Finish,
    Message,
    StreamPart,
    TextDelta,
    TextDeltaEvent,
    TextEnd,
    TextStart,
    ThinkingDelta,
    ThinkingDeltaEvent,
    ToolCall,
    ToolCallDeltaEvent,
    ToolCallFinal,
    ToolInputDelta,
    ToolInputEnd,
    ToolInputStart,
)
from toolloop.observability import stream_parts_emitted

if TYPE_CHECKING:
    from toolloop.application.agents.cancellation import CancellationToken
    from toolloop.application.agents.language_model import LanguageModel

logger = logging.getLogger(__name__)


@dataclass
class _ToolInputAccumulator:
    tool_name: str
    fragments: list[str] = field(default_factory=list)

    def to_call(self, tool_call_id: str) -> ToolCall:
        return ToolCall(id=tool_call_id, tool_name=self.tool_name, arguments_json="".join(self.fragments))


class StreamingDeltaReconstructor:
    """Converts low-level model events into lifecycle-correct stream parts.

    The reconstructor itself is stateless; all per-stream state lives inside
    a single ``reconstruct`` call and is released when that stream ends.

    Example:
        >>> reconstructor = StreamingDeltaReconstructor()
        >>> async for part in reconstructor.reconstruct(model.stream_text(messages)):
        ...     render(part)
    """

    async def reconstruct(self, events: AsyncIterable[ChatStreamEvent] | Iterable[ChatStreamEvent]) -> AsyncIterator[StreamPart]:
        """Reconstruct stream parts from ``events``.

        Args:
            events: Upstream events, ending with a ``CompletionEvent``

        Yields:
            Stream parts; the last one is always a ``Finish``

        Raises:
            StreamProtocolError: If the events end without a completion
            Exception: Whatever the upstream raises, or carries in an ``ErrorEvent``
        """
        text_started = False
        text_fragments: list[str] = []
        open_tool_inputs: dict[str, _ToolInputAccumulator] = {}
        completed = False

        async for event in _iterate(events):
            if completed:
                logger.debug(f"Ignoring {type(event).__name__} received after completion")
                continue

            match event:
                case TextDeltaEvent(delta=delta):
                    if not delta:
                        continue
                    if not text_started:
                        text_started = True
                        yield self._emit(TextStart())
                    text_fragments.append(delta)
                    yield self._emit(TextDelta(delta))

                case ThinkingDeltaEvent(delta=delta):
                    yield self._emit(ThinkingDelta(delta))

                case ToolCallDeltaEvent(tool_call=fragment):
                    accumulator = open_tool_inputs.get(fragment.id)
                    if accumulator is None:
                        accumulator = _ToolInputAccumulator(tool_name=fragment.tool_name)
                        open_tool_inputs[fragment.id] = accumulator
                        yield self._emit(ToolInputStart(tool_call_id=fragment.id, tool_name=fragment.tool_name))
                    accumulator.fragments.append(fragment.arguments_json)
                    yield self._emit(ToolInputDelta(tool_call_id=fragment.id, delta=fragment.arguments_json))

                case CompletionEvent(response=response):
                    completed = True
                    final_calls = {call.id: call for call in response.tool_calls}
                    for tool_call_id in list(open_tool_inputs):
                        accumulator = open_tool_inputs.pop(tool_call_id)
                        yield self._emit(ToolInputEnd(tool_call_id=tool_call_id))
                        call = final_calls.get(tool_call_id)
                        if call is None:
                            logger.debug(f"Completion carries no tool call {tool_call_id}; using streamed arguments")
                            call = accumulator.to_call(tool_call_id)
                        yield self._emit(ToolCallFinal(tool_call=call))

                    if text_started:
                        yield self._emit(TextEnd(text="".join(text_fragments)))
                    text_fragments.clear()
                    yield self._emit(Finish.from_response(response))

                case ErrorEvent(error=error):
                    logger.warning(f"Upstream stream error: {error}")
                    raise error

                case _:
                    raise StreamProtocolError(f"Unsupported stream event: {type(event).__name__}")

        if not completed:
            raise StreamProtocolError("Stream ended without a completion event")

    @staticmethod
    def _emit(part: StreamPart) -> StreamPart:
        stream_parts_emitted.add(1, {"part_type": type(part).__name__})
        return part


def reconstruct(events: AsyncIterable[ChatStreamEvent] | Iterable[ChatStreamEvent]) -> AsyncIterator[StreamPart]:
    """Reconstruct stream parts from low-level model events."""
    return StreamingDeltaReconstructor().reconstruct(events)


adapt_stream_text = reconstruct


def stream_text_parts(
    model: "LanguageModel",
    messages: list[Message],
    options: CallOptions | None = None,
    cancel_token: "CancellationToken | None" = None,
) -> AsyncIterator[StreamPart]:
    """Stream a single model call as reconstructed parts."""
    return reconstruct(model.stream_text(messages, options=options, cancel_token=cancel_token))


async def _iterate(events: AsyncIterable[ChatStreamEvent] | Iterable[ChatStreamEvent]) -> AsyncIterator[ChatStreamEvent]:
    if isinstance(events, AsyncIterable):
        async for event in events:
            yield event
    else:
        for event in events:
            yield event
