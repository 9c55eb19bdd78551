"""Structured output specifications."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class OutputSpec(Generic[T]):
    """A JSON schema paired with a parser producing ``T`` from the decoded object.

    Attributes:
        name: Name of the output (used in diagnostics and by providers)
        schema: JSON Schema the decoded object must satisfy (None = no validation)
        from_json: Converts the decoded JSON object into ``T``
        description: Optional description forwarded to providers
    """

    name: str
    schema: dict[str, Any] | None
    from_json: Callable[[dict[str, Any]], T]
    description: str | None = None

    @classmethod
    def object(
        cls,
        name: str,
        properties: dict[str, dict[str, Any]],
        from_json: Callable[[dict[str, Any]], T],
        required: list[str] | None = None,
        description: str | None = None,
    ) -> "OutputSpec[T]":
        """Build an object-shaped spec from a property map.

        All properties are required unless ``required`` says otherwise.
        """
        schema = {
            "type": "object",
            "properties": properties,
            "required": required if required is not None else list(properties.keys()),
        }
        return cls(name=name, schema=schema, from_json=from_json, description=description)

    @classmethod
    def from_model(cls, model: type[M], name: str | None = None) -> "OutputSpec[M]":
        """Build a spec from a pydantic model: its JSON schema plus ``model_validate``."""
        return OutputSpec(
            name=name or model.__name__,
            schema=model.model_json_schema(),
            from_json=model.model_validate,
            description=model.__doc__.strip() if model.__doc__ else None,
        )
