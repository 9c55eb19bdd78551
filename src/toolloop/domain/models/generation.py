"""Results and options of a single language model call."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from toolloop.domain.models.message import ToolCall
from toolloop.domain.models.tool import ToolSchema

T = TypeVar("T")

_RESERVED_METADATA_KEYS = ("provider", "model", "request", "response")


@dataclass(frozen=True)
class Usage:
    """Token usage statistics for one model call."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class CallWarning:
    """A non-fatal warning attached to a model call (e.g. an ignored setting)."""

    type: str
    message: str
    setting: str | None = None


@dataclass(frozen=True)
class CallMetadata:
    """Typed view over the free-form metadata map reported by a provider.

    ``provider``, ``model``, ``request`` and ``response`` are lifted out of
    the map; every other key is kept in ``provider_metadata``.
    """

    provider: str | None = None
    model: str | None = None
    request: dict[str, Any] | None = None
    response: dict[str, Any] | None = None
    provider_metadata: dict[str, Any] | None = None

    @classmethod
    def from_map(cls, data: dict[str, Any] | None) -> "CallMetadata | None":
        """Build metadata from a loosely-typed map, or ``None`` when there is nothing to read."""
        if not data:
            return None

        provider = data.get("provider")
        model = data.get("model")
        request = data.get("request")
        response = data.get("response")
        extra = {k: v for k, v in data.items() if k not in _RESERVED_METADATA_KEYS}

        return cls(
            provider=provider if isinstance(provider, str) else None,
            model=model if isinstance(model, str) else None,
            request=dict(request) if isinstance(request, dict) else None,
            response=dict(response) if isinstance(response, dict) else None,
            provider_metadata=extra or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert back to a flat map compatible with ``from_map``."""
        result: dict[str, Any] = {}
        if self.provider is not None:
            result["provider"] = self.provider
        if self.model is not None:
            result["model"] = self.model
        if self.request is not None:
            result["request"] = self.request
        if self.response is not None:
            result["response"] = self.response
        if self.provider_metadata:
            result.update(self.provider_metadata)
        return result


@dataclass(frozen=True)
class CallOptions:
    """Per-call options forwarded unchanged to the language model.

    Attributes:
        temperature: Sampling temperature
        top_p: Nucleus sampling parameter
        max_tokens: Maximum tokens to generate (None = model default)
        stop_sequences: Sequences that stop generation
        tool_choice: "auto", "none", "required" or a tool name
        tools: Tool schemas to expose on this call (the agent fills this in)
        extra: Provider-specific options
    """

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stop_sequences: tuple[str, ...] = ()
    tool_choice: str | None = None
    tools: tuple[ToolSchema, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GenerateTextResult:
    """Provider-agnostic result of one text generation call.

    Attributes:
        text: Main text content, if any
        thinking: Reasoning content for providers that expose it
        tool_calls: Tool calls requested by the model
        usage: Token usage for this call
        warnings: Non-fatal warnings
        metadata: Typed call metadata; a plain map is converted with ``CallMetadata.from_map``
        raw_response: The provider's untouched response object
    """

    text: str | None = None
    thinking: str | None = None
    tool_calls: tuple[ToolCall, ...] = ()
    usage: Usage | None = None
    warnings: tuple[CallWarning, ...] = ()
    metadata: CallMetadata | None = None
    raw_response: Any = None

    def __post_init__(self) -> None:
        if isinstance(self.metadata, dict):
            object.__setattr__(self, "metadata", CallMetadata.from_map(self.metadata))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def has_thinking(self) -> bool:
        return bool(self.thinking and self.thinking.strip())


@dataclass(frozen=True)
class GenerateObjectResult(Generic[T]):
    """A structured object parsed from a model's JSON output."""

    object: T
    text_result: GenerateTextResult
