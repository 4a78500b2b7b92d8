"""
Tree-change events sent by tree-side consumers.

A canvas reports what the user did (dragged, resized, edited a property...)
as a TreeChange. apply_change folds one into a fresh copy of the forest; the
input tree is never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from . import schema
from .dom import WidgetNode, assign_ids, collect_ids, copy_tree, find_by_id, make_unique_id, sanitize_id, walk

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    ADD = "add"
    MOVE = "move"
    RESIZE = "resize"
    PROPERTY = "property"
    DELETE = "delete"
    REPLACE = "replace"


@dataclass
class TreeChange:
    """One edit from the tree side. `payload` depends on `kind`."""
    kind: ChangeKind
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def add(cls, node: WidgetNode, parent_id: str | None = None, index: int | None = None) -> TreeChange:
        return cls(ChangeKind.ADD, {"node": node, "parent_id": parent_id, "index": index})

    @classmethod
    def move(cls, node_id: str, x: float, y: float) -> TreeChange:
        return cls(ChangeKind.MOVE, {"id": node_id, "x": x, "y": y})

    @classmethod
    def resize(cls, node_id: str, width: float, height: float) -> TreeChange:
        return cls(ChangeKind.RESIZE, {"id": node_id, "width": width, "height": height})

    @classmethod
    def set_property(cls, node_id: str, key: str, value: Any) -> TreeChange:
        """Set a property; a value of None removes the key."""
        return cls(ChangeKind.PROPERTY, {"id": node_id, "key": key, "value": value})

    @classmethod
    def delete(cls, node_id: str) -> TreeChange:
        return cls(ChangeKind.DELETE, {"id": node_id})

    @classmethod
    def replace(cls, nodes: list[WidgetNode]) -> TreeChange:
        """Full snapshot of the forest; ids are made unique and text-safe on apply."""
        return cls(ChangeKind.REPLACE, {"nodes": nodes})


def _remove(nodes: list[WidgetNode], node_id: str) -> bool:
    for i, node in enumerate(nodes):
        if node.id == node_id:
            del nodes[i]
            return True
        if _remove(node.children, node_id):
            return True
    return False


def _add(nodes: list[WidgetNode], change: TreeChange) -> list[WidgetNode]:
    new_node = copy_tree([change.payload["node"]])[0]
    taken = collect_ids(nodes)
    # Fresh ids for the whole subtree; empty ids get a type-based name
    for node in new_node.depth_first():
        candidate = sanitize_id(node.id) if node.id else sanitize_id(f"{node.type.lower()}1")
        node.id = make_unique_id(candidate, taken)
        taken.add(node.id)

    parent_id = change.payload.get("parent_id")
    if parent_id is None:
        siblings = nodes
    else:
        parent = find_by_id(nodes, parent_id)
        if parent is None:
            logger.warning("add: unknown parent id %r, change ignored", parent_id)
            return nodes
        siblings = parent.children

    index = change.payload.get("index")
    if index is None:
        siblings.append(new_node)
    else:
        siblings.insert(index, new_node)
    return nodes


def apply_change(nodes: list[WidgetNode], change: TreeChange) -> list[WidgetNode]:
    """
    Return a copy of `nodes` with `change` applied.

    Unknown target ids are logged and leave the copy unchanged.
    """
    if change.kind is ChangeKind.REPLACE:
        snapshot = copy_tree(change.payload["nodes"])
        assign_ids(snapshot)
        return snapshot

    result = copy_tree(nodes)

    if change.kind is ChangeKind.ADD:
        return _add(result, change)

    node_id = change.payload.get("id")
    if change.kind is ChangeKind.DELETE:
        if not _remove(result, node_id):
            logger.warning("delete: unknown id %r, change ignored", node_id)
        return result

    target = find_by_id(result, node_id)
    if target is None:
        logger.warning("%s: unknown id %r, change ignored", change.kind.value, node_id)
        return result

    if change.kind is ChangeKind.MOVE:
        target.x = change.payload["x"]
        target.y = change.payload["y"]
        # Numeric geometry replaces a text binding
        target.properties.pop("x", None)
        target.properties.pop("y", None)
    elif change.kind is ChangeKind.RESIZE:
        target.width = change.payload["width"]
        target.height = change.payload["height"]
        target.properties.pop("width", None)
        target.properties.pop("height", None)
    elif change.kind is ChangeKind.PROPERTY:
        key = change.payload["key"]
        value = change.payload["value"]
        if key == "id":
            _rename(result, target, value)
        elif key in schema.GEOMETRY and isinstance(value, (int, float)) and not isinstance(value, bool):
            setattr(target, key, value)
            target.properties.pop(key, None)
        elif value is None:
            target.properties.pop(key, None)
        else:
            target.properties[key] = value
    return result


def _rename(nodes: list[WidgetNode], target: WidgetNode, new_id: Any) -> None:
    if not new_id:
        logger.warning("property: empty id for %r, change ignored", target.id)
        return
    taken = {node.id for node in walk(nodes) if node is not target}
    target.id = make_unique_id(sanitize_id(new_id), taken)
