"""Lossless JSON value model.

Loosely-typed wire fields (request ``metadata``, unknown response fields) are
carried as ``JsonValue`` instead of bare ``Any`` so that every kind the wire
can hold (string, integer, float, boolean, null, array, object) survives a
decode/encode cycle unchanged. ``null`` is a value, not an absence, and the
integer/float distinction is kept.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class JsonKind(str, Enum):
    """Discriminant of a JsonValue."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class JsonValue:
    """A tagged JSON value.

    ``value`` holds ``str``/``int``/``float``/``bool``/``None`` for scalars,
    a tuple of JsonValue for arrays and a dict of str -> JsonValue for objects.
    Build instances with the constructors below rather than directly.
    """

    kind: JsonKind
    value: Any = None

    # -- constructors --

    @classmethod
    def string(cls, value: str) -> JsonValue:
        return cls(JsonKind.STRING, value)

    @classmethod
    def integer(cls, value: int) -> JsonValue:
        return cls(JsonKind.INTEGER, value)

    @classmethod
    def float_(cls, value: float) -> JsonValue:
        return cls(JsonKind.FLOAT, value)

    @classmethod
    def boolean(cls, value: bool) -> JsonValue:
        return cls(JsonKind.BOOLEAN, value)

    @classmethod
    def null(cls) -> JsonValue:
        return cls(JsonKind.NULL, None)

    @classmethod
    def array(cls, items: list[JsonValue] | tuple[JsonValue, ...]) -> JsonValue:
        return cls(JsonKind.ARRAY, tuple(items))

    @classmethod
    def object(cls, fields: dict[str, JsonValue]) -> JsonValue:
        return cls(JsonKind.OBJECT, dict(fields))

    @classmethod
    def from_python(cls, value: Any) -> JsonValue:
        """Box a value produced by ``json.loads`` (or equivalent).

        Raises ``TypeError`` for anything JSON cannot represent.
        """
        if value is None:
            return cls.null()
        # bool is a subclass of int, check it first
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, float):
            return cls.float_(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, (list, tuple)):
            return cls.array([cls.from_python(item) for item in value])
        if isinstance(value, dict):
            fields: dict[str, JsonValue] = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise TypeError(f"JSON object keys must be strings, got {type(key).__name__}")
                fields[key] = cls.from_python(item)
            return cls.object(fields)
        raise TypeError(f"Value of type {type(value).__name__} is not JSON-serializable")

    # -- accessors --

    @property
    def is_null(self) -> bool:
        return self.kind is JsonKind.NULL

    def to_python(self) -> Any:
        """Unbox into plain Python values suitable for ``json.dumps``."""
        kind = self.kind
        if kind in (JsonKind.STRING, JsonKind.INTEGER, JsonKind.FLOAT, JsonKind.BOOLEAN):
            return self.value
        if kind is JsonKind.NULL:
            return None
        if kind is JsonKind.ARRAY:
            return [item.to_python() for item in self.value]
        if kind is JsonKind.OBJECT:
            return {key: item.to_python() for key, item in self.value.items()}
        raise ValueError(f"Unhandled JSON kind: {kind}")

    def to_text(self) -> str:
        """Compact JSON text for this value."""
        return dumps(self)


def loads(text: str | bytes) -> JsonValue:
    """Parse JSON text into a JsonValue."""
    return JsonValue.from_python(json.loads(text))


def dumps(value: JsonValue) -> str:
    """Serialize a JsonValue to JSON text."""
    return json.dumps(value.to_python(), ensure_ascii=False)
