"""
DOM - Widget tree model for qmlsync

The structural side of a UI document. The parser produces a forest of
WidgetNodes from QML text, the generator turns one back into text, and
tree-side consumers (canvas, property panel) exchange them as dicts.

Key invariant: every node reachable from the document root has a unique,
text-safe id. Ids are the join key between the two representations.
"""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from . import schema
from .config import get_config

logger = logging.getLogger(__name__)

Number = Union[int, float]

_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class RawValue(str):
    """Opaque source text (a binding or an unrecognized value), emitted verbatim."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"RawValue({str.__repr__(self)})"


@dataclass
class PropertyGroup:
    """Grouped properties such as `font { ... }`, `border { ... }` or `anchors { ... }`."""
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class SignalHandler:
    """An `onXxx:` handler. Block handlers are emitted inside braces."""
    code: str
    block: bool = False


@dataclass
class InlineObject:
    """Object-valued property, e.g. `background: Rectangle { color: "#eee" }`."""
    type: str
    properties: dict[str, Any] = field(default_factory=dict)


Value = Union[str, int, float, bool, RawValue, PropertyGroup, SignalHandler, InlineObject]


@dataclass
class WidgetNode:
    """A node in the widget tree."""
    type: str
    id: str = ""
    x: Number = 0
    y: Number = 0
    width: Number = schema.FALLBACK_SIZE[0]
    height: Number = schema.FALLBACK_SIZE[1]
    properties: dict[str, Any] = field(default_factory=dict)
    children: list[WidgetNode] = field(default_factory=list)

    @classmethod
    def create(cls, type: str, id: str = "", x: Number = 0, y: Number = 0, **properties: Any) -> WidgetNode:
        """New node sized with the catalog defaults for its type."""
        width, height = schema.default_size(type)
        return cls(
            type=type,
            id=sanitize_id(id) if id else "",
            x=x,
            y=y,
            width=width,
            height=height,
            properties=dict(properties),
        )

    def depth_first(self) -> Iterator[WidgetNode]:
        """Traverse tree depth-first, yielding self then children."""
        yield self
        for child in self.children:
            yield from child.depth_first()

    def breadth_first(self) -> Iterator[WidgetNode]:
        """Traverse tree breadth-first."""
        queue: list[WidgetNode] = [self]
        while queue:
            node = queue.pop(0)
            yield node
            queue.extend(node.children)

    def add_child(self, child: WidgetNode) -> WidgetNode:
        """Add a child node and return it for chaining."""
        self.children.append(child)
        return child


@dataclass
class WindowOptions:
    """Attributes of the root container. -1/None fields are filled from config."""
    width: Number = -1
    height: Number = -1
    title: str | None = None
    visible: bool = True
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        cfg = get_config().window
        if self.width < 0:
            self.width = cfg.width
        if self.height < 0:
            self.height = cfg.height
        if self.title is None:
            self.title = cfg.title


@dataclass
class Document:
    """A whole UI definition: root window options plus the widget forest."""
    window: WindowOptions = field(default_factory=WindowOptions)
    nodes: list[WidgetNode] = field(default_factory=list)


def sanitize_id(raw: str) -> str:
    """Make an id safe for embedding in QML text."""
    cleaned = _INVALID_ID_CHARS.sub("_", str(raw))
    if not cleaned:
        return "_"
    if cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned


def make_unique_id(candidate: str, taken: set[str]) -> str:
    """Return candidate, or candidate_N for the first N >= 2 not in taken."""
    if candidate not in taken:
        return candidate
    n = 2
    while f"{candidate}_{n}" in taken:
        n += 1
    return f"{candidate}_{n}"


def walk(nodes: Iterable[WidgetNode]) -> Iterator[WidgetNode]:
    """Depth-first traversal over a forest."""
    for node in nodes:
        yield from node.depth_first()


def find_by_id(nodes: Iterable[WidgetNode], node_id: str) -> WidgetNode | None:
    """Find a node anywhere in the forest."""
    for node in walk(nodes):
        if node.id == node_id:
            return node
    return None


def collect_ids(nodes: Iterable[WidgetNode]) -> set[str]:
    """All ids present in the forest."""
    return {node.id for node in walk(nodes) if node.id}


def copy_tree(nodes: Iterable[WidgetNode]) -> list[WidgetNode]:
    """Deep copy of a forest; the copy shares no mutable state with the original."""
    return [copy.deepcopy(node) for node in nodes]


def assign_ids(roots: list[WidgetNode]) -> None:
    """
    Make every id in the forest text-safe and unique, in place.

    Existing ids are sanitized and deduplicated in traversal order; nodes
    without one get `<type><n>` with the lowest free n.
    """
    taken: set[str] = set()
    for node in walk(roots):
        if not node.id:
            continue
        unique = make_unique_id(sanitize_id(node.id), taken)
        if unique != node.id:
            logger.warning("id %r renamed to %r", node.id, unique)
            node.id = unique
        taken.add(unique)

    counter = 0
    for node in walk(roots):
        if node.id:
            continue
        while True:
            counter += 1
            candidate = sanitize_id(f"{node.type.lower()}{counter}")
            if candidate not in taken:
                break
        node.id = candidate
        taken.add(candidate)

# Dict conversion (JSON wire format towards tree-side consumers)

def value_to_dict(value: Any) -> Any:
    """Encode a property value into JSON-safe data. Structured values are tagged."""
    if isinstance(value, RawValue):
        return {"$raw": str(value)}
    if isinstance(value, PropertyGroup):
        return {"$group": {k: value_to_dict(v) for k, v in value.fields.items()}}
    if isinstance(value, SignalHandler):
        return {"$handler": value.code, "block": value.block}
    if isinstance(value, InlineObject):
        return {
            "$object": value.type,
            "properties": {k: value_to_dict(v) for k, v in value.properties.items()},
        }
    return value


def value_from_dict(data: Any) -> Any:
    """Inverse of value_to_dict. Untagged dicts are kept as plain dicts."""
    if isinstance(data, dict):
        if "$raw" in data:
            return RawValue(data["$raw"])
        if "$group" in data:
            return PropertyGroup({k: value_from_dict(v) for k, v in data["$group"].items()})
        if "$handler" in data:
            return SignalHandler(code=data["$handler"], block=bool(data.get("block", False)))
        if "$object" in data:
            return InlineObject(
                type=data["$object"],
                properties={k: value_from_dict(v) for k, v in data.get("properties", {}).items()},
            )
    return data


def to_dict(node: WidgetNode) -> dict[str, Any]:
    """Encode a node and its subtree."""
    return {
        "id": node.id,
        "type": node.type,
        "x": node.x,
        "y": node.y,
        "width": node.width,
        "height": node.height,
        "properties": {k: value_to_dict(v) for k, v in node.properties.items()},
        "children": [to_dict(child) for child in node.children],
    }


def from_dict(data: dict[str, Any]) -> WidgetNode:
    """Decode a node. Missing geometry falls back to the catalog defaults."""
    node_type = str(data.get("type", "Item"))
    width, height = schema.default_size(node_type)
    return WidgetNode(
        type=node_type,
        id=sanitize_id(data["id"]) if data.get("id") else "",
        x=data.get("x", 0),
        y=data.get("y", 0),
        width=data.get("width", width),
        height=data.get("height", height),
        properties={k: value_from_dict(v) for k, v in data.get("properties", {}).items()},
        children=[from_dict(child) for child in data.get("children", [])],
    )
