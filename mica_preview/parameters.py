"""Parameter schema extraction and user-entered parameter values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .document import Document
from .errors import ParseError, UnknownParameterError

SUPPORTED_TYPES = frozenset({"string"})


@dataclass(frozen=True)
class PropertyDescriptor:
    """A single declared parameter. Unsupported types are kept verbatim."""

    name: str
    declared_type: Optional[str]
    required: bool = False
    enum: Tuple[str, ...] = ()

    @property
    def supported(self) -> bool:
        return self.declared_type in SUPPORTED_TYPES


@dataclass(frozen=True)
class ParameterSchema:
    properties: Mapping[str, PropertyDescriptor] = field(default_factory=dict)
    required: Tuple[str, ...] = ()

    def __contains__(self, name: object) -> bool:
        return name in self.properties

    def names(self) -> List[str]:
        return sorted(self.properties)

    def is_empty(self) -> bool:
        return not self.properties


EMPTY_SCHEMA = ParameterSchema()


def _enum_strings(values: Any) -> Tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    result: List[str] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        if text not in result:
            result.append(text)
    return tuple(result)


def extract_schema(document: Document) -> ParameterSchema:
    """Derive the declared parameter schema from a document's ``parameters`` section."""

    section = document.parameters
    if section is None:
        return EMPTY_SCHEMA
    if not isinstance(section, Mapping):
        raise ParseError("parameters must be an object")

    properties_raw = section.get("properties") or {}
    if not isinstance(properties_raw, Mapping):
        raise ParseError("parameters.properties must be an object")

    required_raw = section.get("required") or []
    if not isinstance(required_raw, list):
        raise ParseError("parameters.required must be a list")
    required: List[str] = []
    for item in required_raw:
        name = str(item)
        if name not in required:
            required.append(name)

    properties: Dict[str, PropertyDescriptor] = {}
    for name, node in properties_raw.items():
        if not isinstance(node, Mapping):
            raise ParseError(f"parameters.properties.{name} must be an object")
        declared = node.get("type")
        properties[name] = PropertyDescriptor(
            name=name,
            declared_type=None if declared is None else str(declared),
            required=name in required,
            enum=_enum_strings(node.get("enum")),
        )
    return ParameterSchema(properties=properties, required=tuple(required))


def reconcile_values(values: Mapping[str, Optional[str]], schema: ParameterSchema) -> Dict[str, str]:
    """Keep only non-null values whose name the schema currently declares."""

    return {
        name: value
        for name, value in values.items()
        if value is not None and name in schema
    }


@dataclass(frozen=True)
class ParameterField:
    """Presentation model of one input in the parameter form."""

    name: str
    value: str
    required: bool
    options: Tuple[str, ...] = ()
    problem: Optional[str] = None

    @property
    def is_choice(self) -> bool:
        return bool(self.options)


class ParameterStore:
    """Holds user-entered parameter values for one preview session.

    Values are kept even when the current schema does not declare them, so
    re-adding a parameter to the source brings the previous value back.
    """

    def __init__(self) -> None:
        self._values: Dict[str, Optional[str]] = {}

    def set_value(self, name: str, raw_input: Optional[str]) -> None:
        self._values[name] = raw_input if raw_input else None

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def snapshot(self) -> Dict[str, Optional[str]]:
        return dict(self._values)

    def reconcile(self, schema: ParameterSchema) -> Dict[str, str]:
        return reconcile_values(self._values, schema)

    def unknown_parameters(self, schema: ParameterSchema) -> List[UnknownParameterError]:
        return [
            UnknownParameterError(name)
            for name, value in sorted(self._values.items())
            if value is not None and name not in schema
        ]

    def describe_fields(self, schema: ParameterSchema) -> List[ParameterField]:
        fields: List[ParameterField] = []
        for name in schema.names():
            descriptor = schema.properties[name]
            problem = None if descriptor.supported else f"Unknown type: {descriptor.declared_type}"
            fields.append(
                ParameterField(
                    name=name,
                    value=self._values.get(name) or "",
                    required=descriptor.required,
                    options=descriptor.enum if descriptor.supported else (),
                    problem=problem,
                )
            )
        return fields


__all__ = [
    "EMPTY_SCHEMA",
    "ParameterField",
    "ParameterSchema",
    "ParameterStore",
    "PropertyDescriptor",
    "SUPPORTED_TYPES",
    "extract_schema",
    "reconcile_values",
]
