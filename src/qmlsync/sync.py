"""
Sync arbitrator: keeps a text document and its widget tree consistent.

One instance per document. Text edits are parsed and pushed to tree-side
consumers; tree edits are folded into the current tree and regenerated into
the document. Each side is debounced separately, and while one direction is
propagating, events from the other side are ignored so that our own writes
never echo back as new edits.

Authority is last-writer-wins. When both sides changed inside one debounce
window, the newer event propagates and the older one is dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Protocol

from .config import get_config
from .dom import Document, WidgetNode, WindowOptions, assign_ids, copy_tree
from .edits import TreeChange, apply_change
from .formats.base import TreeFormat
from .formats.qml import QmlFormat
from .scheduling import AsyncioScheduler, Debouncer, Scheduler

logger = logging.getLogger(__name__)

TreeConsumer = Callable[[list[WidgetNode]], None]


class TextDocument(Protocol):
    def get_text(self) -> str: ...

    def replace(self, text: str) -> None: ...


class SyncState(Enum):
    IDLE = "idle"
    TEXT_TO_TREE = "text_to_tree"
    TREE_TO_TEXT = "tree_to_text"


class SyncArbitrator:
    """Bidirectional text <-> tree synchronizer for one document."""

    def __init__(
        self,
        document: TextDocument,
        consumers: Iterable[TreeConsumer] = (),
        scheduler: Scheduler | None = None,
        debounce: float | None = None,
        tree_format: TreeFormat | None = None,
    ):
        self.document = document
        self.format = tree_format or QmlFormat()
        self.scheduler = scheduler or AsyncioScheduler()
        if debounce is None:
            debounce = get_config().sync.debounce_ms / 1000.0
        self.debounce = debounce

        self._consumers: list[TreeConsumer] = list(consumers)
        self._text_debouncer = Debouncer(self.scheduler, debounce)
        self._tree_debouncer = Debouncer(self.scheduler, debounce)

        self._state = SyncState.IDLE
        self._enabled = True
        self._disposed = False

        self._nodes: list[WidgetNode] = []
        self._window = WindowOptions()
        self._pending_nodes: list[WidgetNode] | None = None
        self._last_text: str | None = None

        # Event ordering across the two sides
        self._seq = 0
        self._text_seq = 0
        self._tree_seq = 0

        self.last_error: Exception | None = None

    # State

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def updating_from_text(self) -> bool:
        return self._state is SyncState.TEXT_TO_TREE

    @property
    def updating_from_tree(self) -> bool:
        return self._state is SyncState.TREE_TO_TEXT

    @property
    def nodes(self) -> list[WidgetNode]:
        """Copy of the current tree."""
        return copy_tree(self._nodes)

    @property
    def window(self) -> WindowOptions:
        return self._window

    @property
    def last_text(self) -> str | None:
        return self._last_text

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = bool(value)
        if not self._enabled:
            self._cancel_pending()

    @property
    def pending(self) -> bool:
        return self._text_debouncer.pending or self._tree_debouncer.pending

    def add_consumer(self, consumer: TreeConsumer) -> None:
        if consumer not in self._consumers:
            self._consumers.append(consumer)

    def remove_consumer(self, consumer: TreeConsumer) -> None:
        if consumer in self._consumers:
            self._consumers.remove(consumer)

    # Events

    def on_text_changed(self, text: str | None = None) -> None:
        """The document text changed. `text` defaults to the document's current text."""
        if not self._enabled or self._disposed:
            return
        if self.updating_from_tree:
            logger.debug("text change ignored: tree to text propagation in progress")
            return
        if text is None:
            text = self.document.get_text()
        if text == self._last_text:
            return
        self._last_text = text
        self._text_seq = self._next_seq()
        self._schedule(self._text_debouncer, self._propagate_text)

    def on_tree_changed(self, change: TreeChange | list[WidgetNode]) -> None:
        """The tree side changed. Accepts a TreeChange or a full node list."""
        if not self._enabled or self._disposed:
            return
        if self.updating_from_text:
            logger.debug("tree change ignored: text to tree propagation in progress")
            return
        base = self._pending_nodes if self._pending_nodes is not None else self._nodes
        try:
            if isinstance(change, TreeChange):
                self._pending_nodes = apply_change(base, change)
            else:
                self._pending_nodes = copy_tree(change)
                assign_ids(self._pending_nodes)
        except Exception as e:
            logger.exception("could not apply tree change %r", change)
            self.last_error = e
            return
        self._tree_seq = self._next_seq()
        self._schedule(self._tree_debouncer, self._propagate_tree)

    # Lifecycle

    def start(self) -> None:
        """Initial text -> tree push from the document's current content."""
        self._cancel_pending()
        self._last_text = self.document.get_text()
        self._text_seq = self._next_seq()
        self._propagate_text()

    def flush(self) -> None:
        """Run pending propagations now (e.g. when the document is saved)."""
        self._text_debouncer.flush()
        self._tree_debouncer.flush()

    def load_tree(self, nodes: list[WidgetNode], window: WindowOptions | None = None) -> None:
        """Replace both sides with a tree (template or file load)."""
        self._cancel_pending()
        try:
            self.last_error = None
            self._nodes = copy_tree(nodes)
            assign_ids(self._nodes)
            if window is not None:
                self._window = window
            self._state = SyncState.TEXT_TO_TREE
            self._push(self._nodes)
            self._state = SyncState.TREE_TO_TEXT
            self._write(self._nodes)
        except Exception as e:
            logger.exception("loading tree failed")
            self.last_error = e
        finally:
            self._state = SyncState.IDLE

    def restore(self, text: str) -> None:
        """Replace the document with a snapshot and push its tree (undo/redo)."""
        self._cancel_pending()
        try:
            self.last_error = None
            self._state = SyncState.TREE_TO_TEXT
            self._last_text = text
            self.document.replace(text)
            self._state = SyncState.TEXT_TO_TREE
            self._load_text(text)
        except Exception as e:
            logger.exception("restoring snapshot failed")
            self.last_error = e
        finally:
            self._state = SyncState.IDLE

    def dispose(self) -> None:
        self._cancel_pending()
        self._consumers.clear()
        self._disposed = True

    # Propagation

    def _propagate_text(self) -> None:
        if self._tree_debouncer.pending and self._tree_seq > self._text_seq:
            logger.debug("text propagation superseded by a newer tree change")
            return
        self._tree_debouncer.cancel()
        self._pending_nodes = None

        self._state = SyncState.TEXT_TO_TREE
        try:
            text = self.document.get_text()
            self._last_text = text
            self.last_error = None
            self._load_text(text)
        except Exception as e:
            logger.exception("text to tree propagation failed")
            self.last_error = e
        finally:
            self._state = SyncState.IDLE

    def _propagate_tree(self) -> None:
        if self._text_debouncer.pending and self._text_seq > self._tree_seq:
            logger.debug("tree propagation superseded by a newer text change")
            self._pending_nodes = None
            return
        self._text_debouncer.cancel()
        nodes, self._pending_nodes = self._pending_nodes, None
        if nodes is None:
            return

        self._state = SyncState.TREE_TO_TEXT
        try:
            self._nodes = nodes
            self.last_error = None
            self._write(nodes)
        except Exception as e:
            logger.exception("tree to text propagation failed")
            self.last_error = e
        finally:
            self._state = SyncState.IDLE

    def _load_text(self, text: str) -> None:
        document = self.format.parse(text)
        self._nodes = document.nodes
        self._window = document.window
        self._push(self._nodes)

    def _write(self, nodes: list[WidgetNode]) -> None:
        text = self.format.generate(Document(window=self._window, nodes=nodes))
        # Remembered first so a late echo of our own write is a no-op
        self._last_text = text
        self.document.replace(text)

    def _push(self, nodes: list[WidgetNode]) -> None:
        for consumer in list(self._consumers):
            try:
                consumer(copy_tree(nodes))
            except Exception as e:
                logger.exception("tree consumer %r failed", consumer)
                self.last_error = e

    def _schedule(self, debouncer: Debouncer, callback: Callable[[], None]) -> None:
        try:
            debouncer.schedule(callback)
        except RuntimeError:
            # AsyncioScheduler outside a running loop
            logger.warning("no event loop to debounce on, propagating immediately")
            callback()

    def _cancel_pending(self) -> None:
        self._text_debouncer.cancel()
        self._tree_debouncer.cancel()
        self._pending_nodes = None

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq
