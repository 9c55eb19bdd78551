"""Parsing of model text into structured objects.

Models asked for JSON do not always return bare JSON: some wrap it in a
markdown fence, some add a sentence before or after it. The parser tries,
in order:

1. The whole text as JSON
2. The contents of a fenced ```json (or bare ```) block
3. The first balanced ``{...}`` object found in the text

The decoded object must be a JSON object. It is then validated against the
output's JSON schema (Draft 7) and handed to the output's ``from_json``.
"""

import json
import logging
import re
from typing import Any, TypeVar

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from toolloop.domain.exceptions import StructuredOutputParseError
from toolloop.domain.models import OutputSpec

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)

# Maximum number of schema violations reported in an error
MAX_REPORTED_ERRORS = 5


def extract_json_object(raw_text: str) -> dict[str, Any] | None:
    """Find the first JSON object in ``raw_text``, or ``None``."""
    text = raw_text.strip()
    if not text:
        return None

    candidate = _try_decode(text)
    if candidate is not None:
        return candidate

    for match in _FENCED_BLOCK.finditer(text):
        candidate = _try_decode(match.group(1).strip())
        if candidate is not None:
            return candidate

    balanced = _first_balanced_object(text)
    if balanced is not None:
        return _try_decode(balanced)
    return None


def validate_against_schema(value: dict[str, Any], schema: dict[str, Any] | None) -> list[str]:
    """Validate ``value`` against a Draft 7 schema and return the violations.

    Raises:
        SchemaError: If the schema itself is invalid
    """
    if not schema:
        return []

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(value), key=lambda e: list(e.absolute_path))
    messages = []
    for error in errors[:MAX_REPORTED_ERRORS]:
        path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
        messages.append(f"{path}: {error.message}")
    return messages


def parse_structured_output(raw_text: str | None, output: OutputSpec[T], validate: bool = True) -> T:
    """Parse model text into ``T`` using the given output specification.

    Args:
        raw_text: The model's final text
        output: Schema and parser for the expected object
        validate: Whether to check the decoded object against ``output.schema``

    Returns:
        The parsed object

    Raises:
        StructuredOutputParseError: If no JSON object can be found, the object
            violates the schema, or ``from_json`` rejects it
    """
    text = raw_text or ""
    decoded = extract_json_object(text)
    if decoded is None:
        raise StructuredOutputParseError(
            f'No JSON object found in model output for "{output.name}"',
            raw_text=text,
            schema_name=output.name,
        )

    if validate:
        try:
            violations = validate_against_schema(decoded, output.schema)
        except SchemaError as e:
            raise StructuredOutputParseError(
                f'Invalid output schema for "{output.name}": {e.message}',
                raw_text=text,
                schema_name=output.name,
            ) from e
        if violations:
            logger.warning(f"Structured output for '{output.name}' failed validation: {violations}")
            raise StructuredOutputParseError(
                f"Schema validation failed for \"{output.name}\": {'; '.join(violations)}",
                raw_text=text,
                schema_name=output.name,
                validation_errors=violations,
            )

    try:
        return output.from_json(decoded)
    except Exception as e:
        raise StructuredOutputParseError(
            f'Failed to build "{output.name}" from model output: {e}',
            raw_text=text,
            schema_name=output.name,
        ) from e


def _try_decode(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def _first_balanced_object(text: str) -> str | None:
    """Return the first ``{...}`` substring with balanced braces, ignoring braces in strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    candidate = text[start : index + 1]
                    if _try_decode(candidate) is not None:
                        return candidate
                    break
        start = text.find("{", start + 1)
    return None
