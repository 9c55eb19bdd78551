"""Unit tests for structured output parsing.

Tests cover:
- Direct, fenced and embedded JSON extraction
- Schema validation failures
- Parser (from_json) failures
"""

import pytest

from toolloop.application.agents.structured_output import extract_json_object, parse_structured_output
from toolloop.domain.exceptions import StructuredOutputParseError
from toolloop.domain.models import OutputSpec


@pytest.fixture
def city_spec() -> OutputSpec[tuple[str, int]]:
    """Create an output spec for a city and its population."""
    return OutputSpec.object(
        name="city",
        properties={"name": {"type": "string"}, "population": {"type": "integer"}},
        from_json=lambda data: (data["name"], data["population"]),
    )


class TestExtractJsonObject:
    """Test locating a JSON object in model text."""

    def test_direct_json(self) -> None:
        """Test text that is exactly one JSON object."""
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_json_block(self) -> None:
        """Test a markdown fenced block surrounded by prose."""
        text = 'Here you go:\n```json\n{"a": {"b": 2}}\n```\nAnything else?'

        assert extract_json_object(text) == {"a": {"b": 2}}

    def test_bare_fence(self) -> None:
        """Test a fence without a language tag."""
        assert extract_json_object('```\n{"a": 1}\n```') == {"a": 1}

    def test_first_balanced_object(self) -> None:
        """Test an object embedded in prose, with braces inside strings."""
        text = 'The answer is {"text": "use {curly} braces", "n": 3} as requested. {"other": true}'

        assert extract_json_object(text) == {"text": "use {curly} braces", "n": 3}

    def test_skips_unbalanced_prefix(self) -> None:
        """Test that a stray brace before the object does not hide it."""
        assert extract_json_object('set {x} then {"ok": true}') == {"ok": True}

    @pytest.mark.parametrize("text", ["", "   ", "no json here", "[1, 2, 3]", '"just a string"'])
    def test_no_object(self, text: str) -> None:
        """Test inputs that contain no JSON object."""
        assert extract_json_object(text) is None


class TestParseStructuredOutput:
    """Test parsing with validation."""

    def test_valid_object(self, city_spec: OutputSpec) -> None:
        """Test a valid object parsed through from_json."""
        assert parse_structured_output('{"name": "Lyon", "population": 522000}', city_spec) == ("Lyon", 522000)

    def test_missing_object_raises_with_raw_text(self, city_spec: OutputSpec) -> None:
        """Test that the raw text is carried on parse failure."""
        with pytest.raises(StructuredOutputParseError) as exc_info:
            parse_structured_output("I cannot answer that.", city_spec)

        assert exc_info.value.raw_text == "I cannot answer that."
        assert exc_info.value.schema_name == "city"

    def test_none_text_raises(self, city_spec: OutputSpec) -> None:
        """Test that a result without text fails to parse."""
        with pytest.raises(StructuredOutputParseError) as exc_info:
            parse_structured_output(None, city_spec)

        assert exc_info.value.raw_text == ""

    def test_schema_violation_raises(self, city_spec: OutputSpec) -> None:
        """Test that schema violations are reported with their paths."""
        text = '{"name": "Lyon", "population": "many"}'

        with pytest.raises(StructuredOutputParseError) as exc_info:
            parse_structured_output(text, city_spec)

        assert exc_info.value.raw_text == text
        assert len(exc_info.value.validation_errors) == 1
        assert exc_info.value.validation_errors[0].startswith("population:")

    def test_missing_required_property(self, city_spec: OutputSpec) -> None:
        """Test that missing required properties are reported at the root."""
        with pytest.raises(StructuredOutputParseError) as exc_info:
            parse_structured_output('{"name": "Lyon"}', city_spec)

        assert exc_info.value.validation_errors[0].startswith("root:")

    def test_validation_can_be_disabled(self) -> None:
        """Test that validation is skipped when disabled."""
        spec = OutputSpec.object(name="n", properties={"n": {"type": "integer"}}, from_json=lambda data: data.get("n"))

        assert parse_structured_output('{"n": "text"}', spec, validate=False) == "text"

    def test_from_json_failure_is_wrapped(self) -> None:
        """Test that parser errors surface as parse errors."""
        spec = OutputSpec(name="strict", schema=None, from_json=lambda data: data["absent"])

        with pytest.raises(StructuredOutputParseError) as exc_info:
            parse_structured_output('{"present": 1}', spec)

        assert isinstance(exc_info.value.__cause__, KeyError)
