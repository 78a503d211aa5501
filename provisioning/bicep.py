"""Render a :class:`ResourceModuleConstruct` as Bicep source."""

from __future__ import annotations

import re
from typing import Any, List, Mapping

from provisioning.construct import BicepExpression, Parameter, ProvisionedResource, ResourceModuleConstruct

INDENT = "  "
TARGET_SCOPE = "resourceGroup"

_BARE_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def escape_string(value: str) -> str:
    """Escape text for use inside a single-quoted Bicep string."""

    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("${", "\\${")
    return escaped.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")


def quote_string(value: str) -> str:
    return f"'{escape_string(value)}'"


def _render_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else quote_string(key)


def render_value(value: Any, depth: int = 0) -> str:
    """Render a Python value as a Bicep literal at the given nesting depth."""

    if isinstance(value, BicepExpression):
        return value.text
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote_string(value)
    if isinstance(value, Mapping):
        if not value:
            return "{}"
        inner = INDENT * (depth + 1)
        lines = ["{"]
        for key, item in value.items():
            lines.append(f"{inner}{_render_key(str(key))}: {render_value(item, depth + 1)}")
        lines.append(f"{INDENT * depth}}}")
        return "\n".join(lines)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        inner = INDENT * (depth + 1)
        lines = ["["]
        lines.extend(f"{inner}{render_value(item, depth + 1)}" for item in value)
        lines.append(f"{INDENT * depth}]")
        return "\n".join(lines)
    raise TypeError(f"Cannot render value of type {type(value).__name__} as Bicep.")


def _render_parameter(parameter: Parameter) -> List[str]:
    lines: List[str] = []
    if parameter.description:
        lines.append(f"@description({quote_string(parameter.description)})")
    if parameter.secure:
        lines.append("@secure()")
    declaration = f"param {parameter.name} {parameter.type}"
    if parameter.default is not None:
        declaration += f" = {render_value(parameter.default)}"
    lines.append(declaration)
    return lines


def _render_resource(resource: ProvisionedResource) -> List[str]:
    header = f"resource {resource.identifier} '{resource.type_reference}'"
    if resource.existing:
        header += " existing"
    body: dict = {}
    if resource.parent is not None:
        body["parent"] = BicepExpression(resource.parent.identifier)
    body["name"] = resource.name
    if resource.has_location and not resource.existing:
        body["location"] = BicepExpression(ResourceModuleConstruct.LOCATION_PARAMETER)
    for key, value in resource.body.items():
        if key == "tags" and not value:
            continue
        body[key] = value
    return [f"{header} = {render_value(body)}"]


def render_bicep(construct: ResourceModuleConstruct) -> str:
    blocks: List[List[str]] = [[f"targetScope = {quote_string(TARGET_SCOPE)}"]]
    blocks.extend(_render_parameter(parameter) for parameter in construct.parameters)
    blocks.extend(_render_resource(resource) for resource in construct.resources)
    return "\n\n".join("\n".join(block) for block in blocks) + "\n"


__all__ = ["escape_string", "quote_string", "render_bicep", "render_value"]
