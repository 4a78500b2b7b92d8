"""
QML text generator.

Emits canonical text for a widget forest: header imports, one root
ApplicationWindow with the window options, then every node as a block.
Indentation is derived from depth only, so the same tree always produces
the same bytes. The vocabulary mirrors parser.py exactly.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from . import schema
from .dom import (
    InlineObject,
    PropertyGroup,
    RawValue,
    SignalHandler,
    WidgetNode,
    WindowOptions,
    sanitize_id,
    walk,
)
from .schema import Kind, PropertySpec

INDENT = "    "


def quote(text: str) -> str:
    """Double-quoted QML string literal."""
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def format_literal(value: Any) -> str:
    """Generic rule: strings quoted, numbers and booleans literal, anything else str()."""
    if isinstance(value, RawValue):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    return str(value)


def format_scalar(value: Any, spec: PropertySpec | None) -> str:
    """Format a non-structured value with the rule for its key."""
    if spec is None or isinstance(value, RawValue):
        return format_literal(value)
    if isinstance(value, str):
        if spec.kind is Kind.TEXT:
            return f"qsTr({quote(value)})"
        if spec.kind is Kind.ENUM:
            if spec.scope and "." not in value:
                return f"{spec.scope}.{value}"
            return value
    return format_literal(value)


def collect_imports(nodes: Iterable[WidgetNode]) -> list[str]:
    """Base imports plus those required by any node type in the forest, first-seen order."""
    imports = dict.fromkeys(schema.BASE_IMPORTS)
    for node in walk(nodes):
        extra = schema.required_import(node.type)
        if extra:
            imports.setdefault(extra)
        for value in node.properties.values():
            if isinstance(value, InlineObject):
                extra = schema.required_import(value.type)
                if extra:
                    imports.setdefault(extra)
    return list(imports)


def _emit_property(
    lines: list[str], key: str, value: Any, depth: int, group: str | None = None, prefix: str = ""
) -> None:
    if value is None:
        return
    pad = INDENT * depth
    name = prefix + key

    if isinstance(value, PropertyGroup):
        # Attached groups (Layout, Keys) stay dotted: `Layout {` would read as a child
        if prefix or key[:1].isupper():
            for field_key, field_value in value.fields.items():
                _emit_property(lines, field_key, field_value, depth, group=key, prefix=f"{name}.")
            return
        lines.append(f"{pad}{key} {{")
        for field_key, field_value in value.fields.items():
            _emit_property(lines, field_key, field_value, depth + 1, group=key)
        lines.append(f"{pad}}}")
        return

    if isinstance(value, SignalHandler):
        if value.block or "\n" in value.code:
            lines.append(f"{pad}{name}: {{")
            for code_line in value.code.split("\n"):
                lines.append(f"{pad}{INDENT}{code_line}" if code_line.strip() else "")
            lines.append(f"{pad}}}")
        elif ";" in value.code:
            # `;` would end an unbraced handler after its first statement
            lines.append(f"{pad}{name}: {{ {value.code} }}")
        else:
            lines.append(f"{pad}{name}: {value.code}")
        return

    if isinstance(value, InlineObject):
        lines.append(f"{pad}{name}: {value.type} {{")
        for prop_key, prop_value in value.properties.items():
            _emit_property(lines, prop_key, prop_value, depth + 1)
        lines.append(f"{pad}}}")
        return

    spec = schema.property_spec(key, group)
    lines.append(f"{pad}{name}: {format_scalar(value, spec)}")


def _emit_node(lines: list[str], node: WidgetNode, depth: int) -> None:
    pad = INDENT * depth
    inner = INDENT * (depth + 1)
    lines.append(f"{pad}{node.type} {{")
    lines.append(f"{inner}id: {sanitize_id(node.id)}")

    # A geometry binding (width: parent.width) replaces the numeric field
    for key in schema.GEOMETRY:
        binding = node.properties.get(key)
        if isinstance(binding, RawValue):
            lines.append(f"{inner}{key}: {binding}")
        else:
            lines.append(f"{inner}{key}: {format_literal(getattr(node, key))}")

    for key, value in node.properties.items():
        if key in schema.GEOMETRY or key == "id":
            continue
        _emit_property(lines, key, value, depth + 1)

    for child in node.children:
        lines.append("")
        _emit_node(lines, child, depth + 1)

    lines.append(f"{pad}}}")


def generate(nodes: Iterable[WidgetNode], options: WindowOptions | None = None) -> str:
    """
    Generate canonical QML text for a widget forest.

    Deterministic and total: every node shape produces text, and two calls on
    an unmodified tree produce identical output.
    """
    nodes = list(nodes)
    window = options if options is not None else WindowOptions()

    lines: list[str] = collect_imports(nodes)
    lines.append("")
    lines.append("ApplicationWindow {")
    lines.append(f"{INDENT}id: window")

    header = {
        "width": format_literal(window.width),
        "height": format_literal(window.height),
        "visible": format_literal(bool(window.visible)),
        "title": f"qsTr({quote(str(window.title or ''))})",
    }
    # Bindings parsed from text (width: Screen.width) win over the defaults
    for key, text in header.items():
        if key in window.properties:
            _emit_property(lines, key, window.properties[key], 1)
        else:
            lines.append(f"{INDENT}{key}: {text}")
    for key, value in window.properties.items():
        if key in header or key == "id":
            continue
        _emit_property(lines, key, value, 1)

    for node in nodes:
        lines.append("")
        _emit_node(lines, node, 1)

    lines.append("}")
    return "\n".join(lines) + "\n"
