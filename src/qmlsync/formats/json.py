"""
JSON format strategy.

Wire format towards tree-side consumers (canvas, property panel):
{"window": {...}, "nodes": [to_dict(node), ...]}. A bare list is accepted
as a node list with default window options.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..dom import Document, WindowOptions, from_dict, to_dict, value_from_dict, value_to_dict
from .base import TreeFormat, registry

logger = logging.getLogger(__name__)


def window_to_dict(window: WindowOptions) -> dict[str, Any]:
    data: dict[str, Any] = {
        "width": window.width,
        "height": window.height,
        "title": window.title,
        "visible": window.visible,
    }
    if window.properties:
        data["properties"] = {k: value_to_dict(v) for k, v in window.properties.items()}
    return data


def window_from_dict(data: dict[str, Any]) -> WindowOptions:
    return WindowOptions(
        width=data.get("width", -1),
        height=data.get("height", -1),
        title=data.get("title"),
        visible=bool(data.get("visible", True)),
        properties={k: value_from_dict(v) for k, v in data.get("properties", {}).items()},
    )


class JsonFormat(TreeFormat):
    """Tagged JSON encoding of a Document."""

    @property
    def name(self) -> str:
        return "json"

    @property
    def extensions(self) -> list[str]:
        return [".json"]

    def detect(self, content: str) -> bool:
        stripped = content.lstrip()
        return stripped.startswith("{") or stripped.startswith("[")

    def parse(self, content: str) -> Document:
        """Decode a document. Invalid input is logged and yields an empty document."""
        try:
            data = json.loads(content)
            if isinstance(data, list):
                return Document(nodes=[from_dict(item) for item in data])
            if not isinstance(data, dict):
                raise TypeError(f"expected an object or a list, got {type(data).__name__}")
            return Document(
                window=window_from_dict(data.get("window") or {}),
                nodes=[from_dict(item) for item in data.get("nodes", [])],
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.warning("invalid JSON tree document", exc_info=True)
            return Document()

    def generate(self, document: Document) -> str:
        data = {
            "window": window_to_dict(document.window),
            "nodes": [to_dict(node) for node in document.nodes],
        }
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


# Register the format
registry.register(JsonFormat())
