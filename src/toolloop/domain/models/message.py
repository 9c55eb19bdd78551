"""Provider-agnostic conversation messages.

Messages are immutable: the agent loop builds a growing sequence of them
and never mutates an entry once it has been appended.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from toolloop.domain.exceptions import ToolArgumentsError


class MessageRole(str, Enum):
    """Role of the message sender."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model.

    ``id`` correlates the call with its result and with every streaming
    fragment that describes it.
    """

    id: str
    tool_name: str
    arguments_json: str = "{}"

    def arguments(self) -> dict[str, Any]:
        """Decode the arguments, which must be a JSON object.

        Raises:
            ToolArgumentsError: If the payload is not valid JSON or not an object
        """
        if not self.arguments_json or not self.arguments_json.strip():
            return {}
        try:
            decoded = json.loads(self.arguments_json)
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(self.tool_name, self.arguments_json, str(e)) from e
        if not isinstance(decoded, dict):
            raise ToolArgumentsError(self.tool_name, self.arguments_json, "Tool arguments must be a JSON object")
        return decoded

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "tool_name": self.tool_name, "arguments": self.arguments_json}


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ReasoningPart:
    text: str


@dataclass(frozen=True)
class ToolCallPart:
    tool_call_id: str
    tool_name: str
    arguments_json: str

    @classmethod
    def from_call(cls, call: ToolCall) -> "ToolCallPart":
        return cls(tool_call_id=call.id, tool_name=call.tool_name, arguments_json=call.arguments_json)


@dataclass(frozen=True)
class ToolResultPart:
    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class FilePart:
    media_type: str
    data: bytes
    filename: str | None = None


ContentPart = Union[TextPart, ReasoningPart, ToolCallPart, ToolResultPart, FilePart]


def _part_to_dict(part: ContentPart) -> dict[str, Any]:
    match part:
        case TextPart(text=text):
            return {"type": "text", "text": text}
        case ReasoningPart(text=text):
            return {"type": "reasoning", "text": text}
        case ToolCallPart():
            return {
                "type": "tool_call",
                "tool_call_id": part.tool_call_id,
                "tool_name": part.tool_name,
                "arguments": part.arguments_json,
            }
        case ToolResultPart():
            return {
                "type": "tool_result",
                "tool_call_id": part.tool_call_id,
                "tool_name": part.tool_name,
                "content": part.content,
                "is_error": part.is_error,
            }
        case FilePart():
            return {"type": "file", "media_type": part.media_type, "filename": part.filename, "size": len(part.data)}
        case _:
            raise TypeError(f"Unsupported content part: {type(part).__name__}")


@dataclass(frozen=True)
class Message:
    """A single conversation message: a role plus an ordered tuple of parts."""

    role: MessageRole
    parts: tuple[ContentPart, ...] = ()

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        return [p for p in self.parts if isinstance(p, ToolCallPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and persistence."""
        return {"role": self.role.value, "parts": [_part_to_dict(p) for p in self.parts]}

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, parts=(TextPart(content),))

    @classmethod
    def user(cls, content: str, files: list[FilePart] | None = None) -> "Message":
        """Create a user message, optionally with file attachments."""
        return cls(role=MessageRole.USER, parts=(TextPart(content), *(files or [])))

    @classmethod
    def assistant(
        cls,
        content: str | None = None,
        tool_calls: list[ToolCall] | None = None,
        reasoning: str | None = None,
    ) -> "Message":
        """Create an assistant message.

        Empty text and reasoning are omitted so that a pure tool-use turn
        carries only its tool-call parts.
        """
        parts: list[ContentPart] = []
        if reasoning:
            parts.append(ReasoningPart(reasoning))
        if content:
            parts.append(TextPart(content))
        parts.extend(ToolCallPart.from_call(call) for call in tool_calls or [])
        return cls(role=MessageRole.ASSISTANT, parts=tuple(parts))

    @classmethod
    def tool_result(
        cls,
        tool_call_id: str,
        tool_name: str,
        content: str,
        is_error: bool = False,
    ) -> "Message":
        """Create a message carrying a single tool result."""
        return cls(
            role=MessageRole.USER,
            parts=(ToolResultPart(tool_call_id=tool_call_id, tool_name=tool_name, content=content, is_error=is_error),),
        )
