"""
Turn user-typed strings into the argument list a contract call expects.

Every value is driven by its ABI parameter schema:

- ``classify`` resolves a schema to one of a closed set of kinds once,
- ``coerce`` maps a raw string (or a value already parsed from a JSON
  literal) to a ``MarshalledValue`` and never raises,
- ``marshal`` walks an ordered parameter list against a name-keyed input map.

Numbers are kept as decimal text end to end so uint256-sized values are never
squeezed through a float.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .schema import ParamSchema


class ParamKind(enum.Enum):
    BOOL = "bool"
    ARRAY = "array"
    STRUCTURE = "structure"
    BYTES = "bytes"
    PASS_THROUGH = "pass_through"


class ValueKind(enum.Enum):
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    OPAQUE = "opaque"
    SEQUENCE = "sequence"
    STRUCTURE = "structure"


@dataclass(frozen=True)
class Classification:
    kind: ParamKind
    element: Optional[ParamSchema] = None


@dataclass(frozen=True)
class MarshalledValue:
    kind: ValueKind
    value: Any
    # Set only when a structured literal could not be used and the raw text
    # was forwarded instead.
    degraded: bool = False

    def to_json(self) -> Any:
        if self.kind is ValueKind.SEQUENCE:
            return [item.to_json() for item in self.value]
        if self.kind is ValueKind.STRUCTURE:
            return {key: item.to_json() for key, item in self.value.items()}
        return self.value

    def iter_degraded(self, path: str = "") -> Iterator[str]:
        if self.degraded:
            yield path
        if self.kind is ValueKind.SEQUENCE:
            for index, item in enumerate(self.value):
                yield from item.iter_degraded(f"{path}[{index}]")
        elif self.kind is ValueKind.STRUCTURE:
            for key, item in self.value.items():
                yield from item.iter_degraded(f"{path}.{key}")


def is_numeric_type(type_tag: str) -> bool:
    return not type_tag.endswith("[]") and (type_tag.startswith("uint") or type_tag.startswith("int"))


def classify(schema: ParamSchema) -> Classification:
    # Array suffix wins over fields so that tuple[] is an array of structures.
    if schema.is_array:
        return Classification(ParamKind.ARRAY, schema.element())
    if schema.is_structured:
        return Classification(ParamKind.STRUCTURE)
    if schema.type_tag == "bool":
        return Classification(ParamKind.BOOL)
    if schema.type_tag == "bytes":
        return Classification(ParamKind.BYTES)
    return Classification(ParamKind.PASS_THROUGH)


def _empty_default(schema: ParamSchema, kind: ParamKind) -> MarshalledValue:
    if kind is ParamKind.BOOL:
        return MarshalledValue(ValueKind.BOOLEAN, False)
    if is_numeric_type(schema.type_tag):
        return MarshalledValue(ValueKind.NUMERIC, "0")
    return MarshalledValue(ValueKind.OPAQUE, "")


def _parse_literal(raw_text: str) -> Any:
    # Numbers stay as their literal text.
    return json.loads(raw_text, parse_int=str, parse_float=str, parse_constant=str)


def coerce(schema: ParamSchema, raw_text: Optional[str]) -> MarshalledValue:
    """Coerce the raw text typed for ``schema``; total, never raises."""
    text = "" if raw_text is None else str(raw_text)
    classification = classify(schema)
    kind = classification.kind

    if text == "":
        return _empty_default(schema, kind)

    if kind is ParamKind.BOOL:
        return MarshalledValue(ValueKind.BOOLEAN, text.strip().lower() == "true")

    if kind in (ParamKind.ARRAY, ParamKind.STRUCTURE):
        # Literals nested past the interpreter's recursion limit degrade too.
        try:
            parsed = _parse_literal(text)
            structured = _coerce_structured(schema, classification, parsed)
        except (ValueError, RecursionError):
            return MarshalledValue(ValueKind.OPAQUE, text, degraded=True)
        if structured is None:
            return MarshalledValue(ValueKind.OPAQUE, text, degraded=True)
        return structured

    if is_numeric_type(schema.type_tag):
        return MarshalledValue(ValueKind.NUMERIC, text)
    return MarshalledValue(ValueKind.OPAQUE, text)


def _coerce_structured(
    schema: ParamSchema, classification: Classification, parsed: Any
) -> Optional[MarshalledValue]:
    """Coerce an already-parsed literal; ``None`` means the shape does not fit."""
    if classification.kind is ParamKind.ARRAY:
        if not isinstance(parsed, list):
            return None
        element = classification.element
        return MarshalledValue(
            ValueKind.SEQUENCE, tuple(_coerce_parsed(element, item) for item in parsed)
        )

    if isinstance(parsed, dict):
        return MarshalledValue(
            ValueKind.STRUCTURE,
            {child.name: _coerce_parsed(child, parsed.get(child.name)) for child in schema.fields},
        )
    if isinstance(parsed, list):
        # Positional tuple literal; surplus entries are dropped like unknown keys.
        return MarshalledValue(
            ValueKind.SEQUENCE,
            tuple(
                _coerce_parsed(child, parsed[index] if index < len(parsed) else None)
                for index, child in enumerate(schema.fields)
            ),
        )
    return None


def _coerce_parsed(schema: ParamSchema, value: Any) -> MarshalledValue:
    """Coerce a value taken out of a parsed JSON literal."""
    if value is None:
        return _empty_default(schema, classify(schema).kind)
    if isinstance(value, str):
        # Nested literals typed as strings, e.g. ["[1,2]", "[3]"], go through
        # the text rules again.
        return coerce(schema, value)

    classification = classify(schema)
    kind = classification.kind
    if kind is ParamKind.BOOL:
        return MarshalledValue(ValueKind.BOOLEAN, value is True)
    if kind in (ParamKind.ARRAY, ParamKind.STRUCTURE):
        structured = _coerce_structured(schema, classification, value)
        if structured is None:
            return MarshalledValue(ValueKind.OPAQUE, value, degraded=True)
        return structured
    if isinstance(value, bool):
        text = "true" if value else "false"
        if is_numeric_type(schema.type_tag):
            return MarshalledValue(ValueKind.NUMERIC, text)
        return MarshalledValue(ValueKind.OPAQUE, text)
    return MarshalledValue(ValueKind.OPAQUE, value)


def marshal(schemas: Sequence[ParamSchema], inputs: Optional[Mapping[str, str]]) -> List[MarshalledValue]:
    """Coerce every parameter in schema order."""
    values = inputs or {}
    return [coerce(schema, values.get(schema.name, "")) for schema in schemas]


def marshal_params(schemas: Sequence[ParamSchema], inputs: Optional[Mapping[str, str]]) -> List[Any]:
    """JSON argument list ready to post as ``params`` or ``constructor_args``."""
    return [value.to_json() for value in marshal(schemas, inputs)]


def degraded_params(schemas: Sequence[ParamSchema], inputs: Optional[Mapping[str, str]]) -> List[str]:
    """Names (with element/field paths) of values that fell back to raw text."""
    paths: List[str] = []
    for schema, value in zip(schemas, marshal(schemas, inputs)):
        paths.extend(value.iter_degraded(schema.name))
    return paths


def placeholder(schema: ParamSchema) -> str:
    """Example text shown next to an input for ``schema``."""
    classification = classify(schema)
    if classification.kind is ParamKind.ARRAY:
        return f"[{placeholder(classification.element)}, ...]"
    if classification.kind is ParamKind.STRUCTURE:
        parts = ", ".join(f'"{child.name}": {placeholder(child)}' for child in schema.fields)
        return "{" + parts + "}"
    tag = schema.type_tag
    if tag == "address" or tag == "bytes" or tag.startswith("bytes32"):
        return "0x..."
    if is_numeric_type(tag):
        return "0"
    if tag == "bool":
        return "true/false"
    if tag == "string":
        return "text"
    return "value"


def describe_params(schemas: Sequence[ParamSchema]) -> List[Dict[str, Any]]:
    return [
        {
            "name": schema.name,
            "param_type": schema.type_tag,
            "kind": classify(schema).kind.value,
            "placeholder": placeholder(schema),
        }
        for schema in schemas
    ]
