"""
Unit Tests for LLM Reply Parsing

Tests JSON extraction from free-form replies.
"""

from core.parsing import ParseFailed, ParseOk, parse_json_array, parse_json_object


class TestParseJsonObject:
    """Test parse_json_object function."""

    def test_plain_object(self):
        """Test a reply that is exactly a JSON object."""
        result = parse_json_object('{"queryType": "PUBLIC"}')
        assert result == ParseOk(value={"queryType": "PUBLIC"})

    def test_object_inside_code_fence(self):
        """Test an object wrapped in prose and a code fence."""
        result = parse_json_object('Sure!\n```json\n{"a": 1}\n```')
        assert isinstance(result, ParseOk)
        assert result.value == {"a": 1}

    def test_no_object(self):
        """Test a reply without any JSON."""
        result = parse_json_object("I cannot classify this.")
        assert isinstance(result, ParseFailed)
        assert result.reason == "no JSON object found"

    def test_empty_reply(self):
        """Test empty and blank replies."""
        assert isinstance(parse_json_object(""), ParseFailed)
        assert parse_json_object("   ").reason == "empty reply"

    def test_invalid_json(self):
        """Test malformed JSON."""
        result = parse_json_object('{"a": }')
        assert isinstance(result, ParseFailed)
        assert result.reason.startswith("invalid JSON")


class TestParseJsonArray:
    """Test parse_json_array function."""

    def test_array_of_calls(self):
        """Test a tool call array."""
        result = parse_json_array('[{"name": "get_student_grades", "parameters": {}}]')
        assert isinstance(result, ParseOk)
        assert result.value == [{"name": "get_student_grades", "parameters": {}}]

    def test_trailing_prose_with_brackets(self):
        """Test that only the first array is decoded when prose follows."""
        result = parse_json_array("[1, 2] and maybe [3]")
        assert result == ParseOk(value=[1, 2])

    def test_no_array(self):
        """Test a reply without an array."""
        result = parse_json_array("I think you should check grades")
        assert isinstance(result, ParseFailed)
        assert result.raw_text == "I think you should check grades"
