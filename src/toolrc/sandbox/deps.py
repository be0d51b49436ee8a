"""The dependency bundle handed to every plugin's ``define_tool``.

Plugins describe their parameters with pydantic models and use the three
derivations below to publish them.  The bundle is the plugin's only sanctioned
way to reach outside its own source, so keep it small and stable: bump
:data:`BUNDLE_VERSION` whenever a member changes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, Field, TypeAdapter, create_model

BUNDLE_VERSION = "1"

_PRIMITIVES = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}


def json_schema_of(schema: Any) -> dict[str, Any]:
    """Return the JSON Schema dict for a pydantic model or any annotation."""
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema()
    return TypeAdapter(schema).json_schema()


def to_json_schema(schema: Any) -> str:
    """Serialise *schema* as indented JSON Schema text."""
    return json.dumps(json_schema_of(schema), indent=2)


def to_type_definition(name: str, schema: Any) -> str:
    """Render *schema* as a ``TypedDict`` declaration named ``<Name>Parameters``.

    Nested models become their own ``TypedDict`` classes, emitted ahead of the
    main declaration.
    """
    root = json_schema_of(schema)
    defs: dict[str, Any] = root.get("$defs", {})
    emitted: dict[str, str] = {}

    def render(node: dict[str, Any]) -> str:
        if "$ref" in node:
            ref_name = node["$ref"].rsplit("/", 1)[-1]
            if ref_name not in emitted:
                emitted[ref_name] = ""  # guards recursive models
                emitted[ref_name] = declare(ref_name, defs.get(ref_name, {}))
            return f'"{ref_name}"' if emitted[ref_name] == "" else ref_name
        if "const" in node:
            return f"Literal[{node['const']!r}]"
        if "enum" in node:
            return "Literal[" + ", ".join(repr(v) for v in node["enum"]) + "]"
        for key in ("anyOf", "oneOf"):
            if key in node:
                return " | ".join(render(option) for option in node[key])
        if "allOf" in node and len(node["allOf"]) == 1:
            return render(node["allOf"][0])
        kind = node.get("type")
        if isinstance(kind, list):
            return " | ".join(render({**node, "type": k}) for k in kind)
        if kind == "array":
            return f"list[{render(node.get('items', {}))}]"
        if kind == "object":
            extra = node.get("additionalProperties")
            value = render(extra) if isinstance(extra, dict) else "Any"
            return f"dict[str, {value}]"
        return _PRIMITIVES.get(kind or "", "Any")

    def declare(class_name: str, node: dict[str, Any]) -> str:
        required = set(node.get("required", []))
        lines = [f"class {class_name}(TypedDict):"]
        if node.get("description"):
            lines.append(f'    """{node["description"]}"""')
        properties: dict[str, Any] = node.get("properties", {})
        for prop, prop_schema in properties.items():
            annotation = render(prop_schema)
            if prop not in required:
                annotation = f"NotRequired[{annotation}]"
            lines.append(f"    {prop}: {annotation}")
        if not properties:
            lines.append("    pass")
        return "\n".join(lines)

    type_name = f"{name[:1].upper()}{name[1:]}Parameters"
    if root.get("type") == "object" and "properties" in root:
        main = declare(type_name, root)
    else:
        main = f"{type_name} = {render(root)}"
    return "\n\n\n".join([*(body for body in emitted.values() if body), main])


def serialize_schema(schema: Any) -> str:
    """Compact structural serialisation of *schema*.

    Unlike JSON Schema, references are inlined and only the shape survives::

        {"type": "object", "properties": {"a": {"type": "number"}}}
    """
    root = json_schema_of(schema)
    defs: dict[str, Any] = root.get("$defs", {})

    def shape(node: dict[str, Any], seen: frozenset[str]) -> dict[str, Any]:
        if "$ref" in node:
            ref_name = node["$ref"].rsplit("/", 1)[-1]
            if ref_name in seen:
                return {"type": "lazy", "ref": ref_name}
            return shape(defs.get(ref_name, {}), seen | {ref_name})
        if "const" in node:
            return {"type": "literal", "value": node["const"]}
        if "enum" in node:
            return {"type": "enum", "values": list(node["enum"])}
        for key in ("anyOf", "oneOf"):
            if key in node:
                options = [o for o in node[key] if o.get("type") != "null"]
                result = (
                    shape(options[0], seen)
                    if len(options) == 1
                    else {"type": "union", "options": [shape(o, seen) for o in options]}
                )
                if len(options) != len(node[key]):
                    result["isNullable"] = True
                return result
        if "allOf" in node and len(node["allOf"]) == 1:
            return shape(node["allOf"][0], seen)
        kind = node.get("type")
        if kind == "array":
            return {"type": "array", "element": shape(node.get("items", {}), seen)}
        if kind == "object":
            required = set(node.get("required", []))
            properties: dict[str, Any] = {}
            for prop, prop_schema in node.get("properties", {}).items():
                properties[prop] = shape(prop_schema, seen)
                if prop not in required:
                    properties[prop]["isOptional"] = True
            return {"type": "object", "properties": properties}
        return {"type": kind or "any"}

    return json.dumps(shape(root, frozenset()), indent=2)


@dataclass(frozen=True)
class DependencyBundle:
    """Helpers injected into ``ToolPlugin.define_tool``.

    Members are reachable as attributes (``deps.to_json_schema``) or by key
    (``deps["to_json_schema"]``).
    """

    BaseModel: type[BaseModel] = BaseModel
    Field: Callable[..., Any] = Field
    create_model: Callable[..., Any] = create_model
    to_json_schema: Callable[[Any], str] = to_json_schema
    to_type_definition: Callable[[str, Any], str] = to_type_definition
    serialize_schema: Callable[[Any], str] = serialize_schema
    version: str = field(default=BUNDLE_VERSION)

    def __getitem__(self, name: str) -> Any:
        if name.startswith("_") or name not in self.__dataclass_fields__:
            raise KeyError(name)
        return getattr(self, name)

    def members(self) -> list[str]:
        """Names of the injected helpers, in declaration order."""
        return [name for name in self.__dataclass_fields__ if name != "version"]


def default_bundle() -> DependencyBundle:
    return DependencyBundle()
