"""
QML tree format.

The editable side of a synchronized document: parser.py reads it,
generator.py writes it.
"""

from __future__ import annotations

import re

from ..dom import Document
from ..generator import generate
from ..parser import parse_document
from .base import TreeFormat, registry

MAGIC_PATTERN = re.compile(r"^\s*(?:import\s+QtQuick\b|(?:ApplicationWindow|Window|Item)\s*\{)", re.MULTILINE)


class QmlFormat(TreeFormat):
    """QML subset documents."""

    @property
    def name(self) -> str:
        return "qml"

    @property
    def extensions(self) -> list[str]:
        return [".qml"]

    def detect(self, content: str) -> bool:
        return bool(MAGIC_PATTERN.search(content))

    def parse(self, content: str) -> Document:
        return parse_document(content)

    def generate(self, document: Document) -> str:
        return generate(document.nodes, document.window)


# Register the format
registry.register(QmlFormat())
