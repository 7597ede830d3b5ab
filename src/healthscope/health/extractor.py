# Analysis extractor - model free text to AnalysisResult.
# Created: 2026-10-05
#
# The JSON region is the span from the first "{" to the last "}", which
# tolerates prose before and after the object. Text holding several
# independent JSON objects yields one invalid span and fails extraction.

from __future__ import annotations

import json
import logging

from healthscope.errors import ExtractionFailedError
from healthscope.health.models import AnalysisResult
from healthscope.llm.json_value import JsonKind, JsonValue

logger = logging.getLogger(__name__)


def locate_json_region(text: str) -> str:
    """Return the first-"{"-to-last-"}" span of ``text``."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ExtractionFailedError("no JSON object found in model output")
    return text[start : end + 1]


def coerce_to_text(value: JsonValue) -> str:
    """String form of a structuredData value.

    Strings pass through, arrays of strings join with ", ", anything else
    becomes its JSON text.
    """
    if value.kind is JsonKind.STRING:
        return value.value
    if value.kind is JsonKind.ARRAY and all(item.kind is JsonKind.STRING for item in value.value):
        return ", ".join(item.value for item in value.value)
    return value.to_text()


def _string_list(root: dict[str, JsonValue], key: str) -> list[str]:
    value = root.get(key)
    if value is None:
        raise ExtractionFailedError(f"missing '{key}'")
    if value.kind is not JsonKind.ARRAY or any(
        item.kind is not JsonKind.STRING for item in value.value
    ):
        raise ExtractionFailedError(f"'{key}' must be an array of strings")
    return [item.value for item in value.value]


def extract_analysis(text: str) -> AnalysisResult:
    """Parse model output into an AnalysisResult.

    Raises:
        ExtractionFailedError: no JSON region, the region is not a JSON
            object, or a required field is missing or has the wrong shape.
    """
    region = locate_json_region(text)
    try:
        parsed = JsonValue.from_python(json.loads(region))
    except ValueError as e:
        logger.debug("Unparseable analysis region: %.200s", region)
        raise ExtractionFailedError(f"invalid JSON: {e}") from e

    if parsed.kind is not JsonKind.OBJECT:
        raise ExtractionFailedError("response is not a JSON object")
    root: dict[str, JsonValue] = parsed.value

    structured = root.get("structuredData")
    if structured is None:
        raise ExtractionFailedError("missing 'structuredData'")
    if structured.kind is not JsonKind.OBJECT:
        raise ExtractionFailedError("'structuredData' must be an object")

    return AnalysisResult(
        structured_data={key: coerce_to_text(value) for key, value in structured.value.items()},
        categories=_string_list(root, "categories"),
        insights=_string_list(root, "insights"),
    )
