"""
Base tree format interface and registry.

A tree format turns a document's text into a Document (window options plus
widget forest) and back. QML is the editable text; JSON is the wire format
tree-side consumers exchange. The registry manages detection and selection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..dom import Document


class TreeFormat(ABC):
    """Base class for text <-> tree codecs."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name."""
        ...

    @property
    @abstractmethod
    def extensions(self) -> list[str]:
        """File extensions this format handles (e.g., ['.qml'])."""
        ...

    def detect(self, content: str) -> bool:
        """
        Magic detection: returns True if content looks like this format.
        Default implementation returns False (rely on extension only).
        """
        return False

    @abstractmethod
    def parse(self, content: str) -> Document:
        """
        Parse content into a Document.
        Must not raise; malformed input yields a best-effort document.
        """
        ...

    @abstractmethod
    def generate(self, document: Document) -> str:
        """Render a Document as text. Deterministic and total."""
        ...


@dataclass
class FormatMatch:
    """Result of format detection."""
    strategy: TreeFormat
    confidence: float  # 0.0 to 1.0
    reason: str  # "extension" or "content"


class FormatRegistry:
    """
    Known tree formats, looked up by name (--from/--to), by file suffix or by
    sniffing content. Suffixes may span several dots (".ui.qml"); the longest
    registered suffix of a filename decides.
    """

    def __init__(self):
        self._formats: dict[str, TreeFormat] = {}
        self._suffixes: dict[str, TreeFormat] = {}

    def register(self, strategy: TreeFormat) -> None:
        self._formats[strategy.name] = strategy
        for suffix in strategy.extensions:
            # Earlier registrations keep their suffixes
            self._suffixes.setdefault(suffix.lower(), strategy)

    def get_by_name(self, name: str) -> TreeFormat | None:
        return self._formats.get(name)

    def get_by_extension(self, ext: str) -> TreeFormat | None:
        ext = ext.lower()
        return self._suffixes.get(ext if ext.startswith(".") else "." + ext)

    def for_filename(self, filename: str) -> TreeFormat | None:
        """Format owning the longest registered suffix of filename."""
        name = filename.lower()
        best: TreeFormat | None = None
        best_len = 0
        for suffix, strategy in self._suffixes.items():
            if name.endswith(suffix) and len(suffix) > best_len:
                best, best_len = strategy, len(suffix)
        return best

    def detect(self, content: str, filename: str | None = None) -> FormatMatch | None:
        """
        Best format for content: a known file suffix first, then the first
        format whose detect() accepts the content. None when nothing fits.
        """
        if filename:
            by_suffix = self.for_filename(filename)
            if by_suffix is not None:
                return FormatMatch(by_suffix, 1.0, "extension")
        for strategy in self._formats.values():
            if strategy.detect(content):
                return FormatMatch(strategy, 0.8, "content")
        return None

    @property
    def strategies(self) -> list[TreeFormat]:
        """Registered formats in registration order."""
        return list(self._formats.values())


# Global registry instance
registry = FormatRegistry()
