"""Language model abstraction for the agent loop.

This module defines the contract a model collaborator must satisfy. The
agent never talks to a provider directly: HTTP transport, request shaping
and network retries all live behind implementations of ``LanguageModel``.

Design Principles:
- Interface-based design for swappable model backends
- Provider-agnostic messages and results in, provider-agnostic results out
- Streaming exposed as low-level events; framing is done by the reconstructor
- Errors raised by implementations reach the caller unchanged
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, TypeVar

from toolloop.application.agents.structured_output import parse_structured_output
from toolloop.domain.models import CallOptions, ChatStreamEvent, GenerateObjectResult, GenerateTextResult, Message, OutputSpec

if TYPE_CHECKING:
    from toolloop.application.agents.cancellation import CancellationToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LanguageModel(ABC):
    """Abstract base class for language model collaborators.

    Implementations:
    - CallbackLanguageModel: backed by plain Python callables (scripts, tests)
    - Provider adapters living outside this package

    Usage:
        model = CallbackLanguageModel(do_generate=my_generate)
        result = await model.generate_text([Message.user("Hello")])
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Get the provider identifier (e.g. "openai")."""
        pass

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Get the model identifier (e.g. "gpt-4o")."""
        pass

    @abstractmethod
    async def generate_text(
        self,
        messages: list[Message],
        options: CallOptions | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> GenerateTextResult:
        """Run a single non-streaming generation.

        Args:
            messages: Conversation so far
            options: Per-call options, including the tool schemas to expose
            cancel_token: Cancellation signal for this call

        Returns:
            The model's complete result
        """
        pass

    @abstractmethod
    def stream_text(
        self,
        messages: list[Message],
        options: CallOptions | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> AsyncIterator[ChatStreamEvent]:
        """Run a streaming generation.

        This method is an async generator - implementations should use
        `async def` with `yield` statements. The stream must end with
        exactly one ``CompletionEvent``.

        Yields:
            Low-level stream events
        """
        raise NotImplementedError

    async def generate_object(
        self,
        output: OutputSpec[T],
        messages: list[Message],
        options: CallOptions | None = None,
        cancel_token: "CancellationToken | None" = None,
    ) -> GenerateObjectResult[T]:
        """Generate text and parse it into a structured object.

        Providers with native structured output support can override this;
        the default generates text and parses it locally.
        """
        text_result = await self.generate_text(messages, options=options, cancel_token=cancel_token)
        obj = parse_structured_output(text_result.text, output)
        return GenerateObjectResult(object=obj, text_result=text_result)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.provider_id}:{self.model_id})"
