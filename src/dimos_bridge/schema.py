"""Schema translation — tool ``inputSchema`` → structural validation schema.

Only a closed set of field kinds is produced.  Each kind maps to a Python
type so that a :class:`ValidationSchema` can be turned into a pydantic
model for the host's tool registry::

    schema = translate_schema(tool.input_schema)
    Params = schema.build_model("EchoParams")
    Params.model_validate({"msg": "hi"})
"""

from __future__ import annotations

from enum import Enum
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, create_model


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


_KIND_BY_TYPE = {
    "number": FieldKind.NUMBER,
    "integer": FieldKind.NUMBER,
    "boolean": FieldKind.BOOLEAN,
    "array": FieldKind.ARRAY,
    "object": FieldKind.OBJECT,
}

_PYTHON_TYPES: dict[FieldKind, Any] = {
    FieldKind.STRING: str,
    FieldKind.NUMBER: float,
    FieldKind.BOOLEAN: bool,
    FieldKind.ARRAY: list[Any],
    FieldKind.OBJECT: dict[str, Any],
}


class FieldSpec(BaseModel):
    """One parameter of a tool."""

    model_config = ConfigDict(frozen=True)

    kind: FieldKind = FieldKind.STRING
    description: str | None = None
    required: bool = False


class ValidationSchema(BaseModel):
    """Parameter schema for one tool, keyed by field name."""

    model_config = ConfigDict(frozen=True)

    fields: dict[str, FieldSpec] = {}

    @property
    def required(self) -> set[str]:
        return {name for name, spec in self.fields.items() if spec.required}

    def build_model(self, name: str = "ToolParameters") -> type[BaseModel]:
        """Create a pydantic model validating arguments against this schema.

        Unknown keys are rejected; optional fields default to ``None``.
        Validation is strict: ``"3"`` is not a number and ``1`` is not a
        boolean, since the remote receives the caller's values unchanged.
        Parameter names are attached as aliases so that names which are not
        valid Python identifiers survive.
        """
        definitions: dict[str, Any] = {}
        for index, (field_name, spec) in enumerate(self.fields.items()):
            annotation = _PYTHON_TYPES[spec.kind]
            if spec.required:
                field = Field(alias=field_name, description=spec.description)
            else:
                annotation = annotation | None
                field = Field(default=None, alias=field_name, description=spec.description)
            definitions[f"p{index}"] = (annotation, field)
        return create_model(  # type: ignore[call-overload,no-any-return]
            name,
            __config__=ConfigDict(extra="forbid", strict=True),
            **definitions,
        )

    def validate_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate *arguments* and return only the keys the caller supplied.

        Raises:
            pydantic.ValidationError: If a field is missing, mistyped or unknown.
        """
        model = self.build_model()
        validated = model.model_validate(arguments)
        return validated.model_dump(by_alias=True, exclude_unset=True)

    def to_json_schema(self) -> dict[str, Any]:
        """Normalized JSON-Schema object for registries that want plain JSON."""
        properties: dict[str, Any] = {}
        for field_name, spec in self.fields.items():
            prop: dict[str, Any] = {"type": spec.kind.value}
            if spec.description:
                prop["description"] = spec.description
            properties[field_name] = prop
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        required = [n for n, s in self.fields.items() if s.required]
        if required:
            schema["required"] = required
        return schema


def field_kind(type_name: Any) -> FieldKind:
    """Map a JSON-Schema ``type`` to a :class:`FieldKind`; unknown types are strings."""
    if isinstance(type_name, str):
        return _KIND_BY_TYPE.get(type_name, FieldKind.STRING)
    return FieldKind.STRING


def translate_schema(parameters: dict[str, Any] | None) -> ValidationSchema:
    """Translate a tool's ``inputSchema`` into a :class:`ValidationSchema`.

    A missing schema yields one that accepts no parameters.
    """
    if not parameters:
        return ValidationSchema()

    properties = parameters.get("properties")
    if not isinstance(properties, dict):
        return ValidationSchema()

    raw_required = parameters.get("required")
    required: set[str] = set()
    if isinstance(raw_required, list):
        required = {r for r in cast("list[Any]", raw_required) if isinstance(r, str)}

    fields: dict[str, FieldSpec] = {}
    for name, prop in cast("dict[str, Any]", properties).items():
        prop = prop if isinstance(prop, dict) else {}
        description = prop.get("description")
        fields[name] = FieldSpec(
            kind=field_kind(prop.get("type")),
            description=description if isinstance(description, str) else None,
            required=name in required,
        )
    return ValidationSchema(fields=fields)
