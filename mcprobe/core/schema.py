"""Normalized input schemas: a permissive reading of a tool's JSON Schema."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

PROPERTY_TYPES = ("string", "number", "integer", "boolean", "array", "object")


class PropertySchema(BaseModel):
    """A single tool parameter."""

    model_config = ConfigDict(frozen=True)

    type: str = "string"
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None
    default: Any = None


class SchemaNode(BaseModel):
    """The parameters a tool expects, in declaration order."""

    model_config = ConfigDict(frozen=True)

    type: str = "object"
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    required: Tuple[str, ...] = ()

    @property
    def has_properties(self) -> bool:
        return bool(self.properties)

    def is_required(self, name: str) -> bool:
        return name in self.required


def _as_mapping(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, BaseModel):
        return raw.model_dump(by_alias=True, exclude_none=True)
    return None


def _resolve_type(declared: Any) -> str:
    if isinstance(declared, str) and declared in PROPERTY_TYPES:
        return declared
    # JSON Schema allows ["string", "null"]; take the first usable entry
    if isinstance(declared, (list, tuple)):
        for entry in declared:
            if isinstance(entry, str) and entry in PROPERTY_TYPES:
                return entry
    return "string"


def parse_property(raw: Any) -> PropertySchema:
    """Read one property definition; anything unusable becomes a plain string."""
    spec = _as_mapping(raw)
    if spec is None:
        return PropertySchema()

    description = spec.get("description")
    enum = spec.get("enum")
    return PropertySchema(
        type=_resolve_type(spec.get("type")),
        description=description if isinstance(description, str) and description else None,
        enum=tuple(enum) if isinstance(enum, (list, tuple)) else None,
        default=spec.get("default"),
    )


def parse_input_schema(raw: Any) -> SchemaNode:
    """
    Interpret a tool's raw input contract.

    Never raises. A contract that is missing, not an object, or has no
    ``properties`` mapping yields a SchemaNode without properties, which
    tells the collector to fall back to free-form JSON entry.
    """
    spec = _as_mapping(raw)
    if spec is None:
        return SchemaNode()

    node_type = spec.get("type")
    properties = _as_mapping(spec.get("properties"))
    if properties is None:
        return SchemaNode(type=node_type if isinstance(node_type, str) else "object")

    required: Tuple[str, ...] = ()
    raw_required = spec.get("required")
    if isinstance(raw_required, (list, tuple)):
        seen = []
        for name in raw_required:
            if isinstance(name, str) and name not in seen:
                seen.append(name)
        required = tuple(seen)

    return SchemaNode(
        type=node_type if isinstance(node_type, str) else "object",
        properties={str(name): parse_property(prop) for name, prop in properties.items()},
        required=required,
    )
