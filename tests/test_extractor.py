# Tests for analysis extraction from model output
# Created: 2026-10-05

import pytest

from healthscope.errors import ExtractionFailedError
from healthscope.health.extractor import coerce_to_text, extract_analysis, locate_json_region
from healthscope.llm.json_value import JsonValue

WRAPPED = """Sure! Here is the analysis:
{"structuredData": {"mood": "low", "symptoms": ["headache", "nausea"], "severity": 3},
 "categories": ["Pain"],
 "insights": ["Headaches follow poor sleep."]}
Let me know if you need anything else."""


class TestExtractAnalysis:
    def test_prose_wrapped_object(self):
        result = extract_analysis(WRAPPED)
        assert result.structured_data == {
            "mood": "low",
            "symptoms": "headache, nausea",
            "severity": "3",
        }
        assert result.categories == ["Pain"]
        assert result.insights == ["Headaches follow poor sleep."]

    def test_no_braces_fails(self):
        with pytest.raises(ExtractionFailedError) as exc_info:
            extract_analysis("I could not analyze this note.")
        assert str(exc_info.value).startswith("Analysis failed:")

    def test_invalid_json_fails(self):
        with pytest.raises(ExtractionFailedError):
            extract_analysis('{"structuredData": {}, "categories": [}')

    def test_two_objects_fail(self):
        text = '{"a": 1} and also {"b": 2}'
        with pytest.raises(ExtractionFailedError):
            extract_analysis(text)

    @pytest.mark.parametrize("missing", ["structuredData", "categories", "insights"])
    def test_missing_field_fails(self, missing):
        fields = {
            "structuredData": '"structuredData": {}',
            "categories": '"categories": []',
            "insights": '"insights": []',
        }
        del fields[missing]
        with pytest.raises(ExtractionFailedError, match=missing):
            extract_analysis("{" + ", ".join(fields.values()) + "}")

    def test_wrong_shapes_fail(self):
        with pytest.raises(ExtractionFailedError):
            extract_analysis('{"structuredData": [], "categories": [], "insights": []}')
        with pytest.raises(ExtractionFailedError):
            extract_analysis('{"structuredData": {}, "categories": [1], "insights": []}')

    def test_empty_lists_are_valid(self):
        result = extract_analysis('{"structuredData": {}, "categories": [], "insights": []}')
        assert result.structured_data == {}
        assert result.insights == []


class TestHelpers:
    def test_locate_json_region(self):
        assert locate_json_region('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'

    def test_closing_before_opening_fails(self):
        with pytest.raises(ExtractionFailedError):
            locate_json_region("} then {")

    def test_coerce_to_text(self):
        assert coerce_to_text(JsonValue.string("mild")) == "mild"
        assert coerce_to_text(JsonValue.from_python(["a", "b"])) == "a, b"
        assert coerce_to_text(JsonValue.from_python([1, "b"])) == '[1, "b"]'
        assert coerce_to_text(JsonValue.null()) == "null"
        assert coerce_to_text(JsonValue.from_python({"k": True})) == '{"k": true}'
