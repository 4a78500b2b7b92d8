"""
QML text parser.

Recovers a widget forest from declarative source text. A small tokenizer feeds
a recursive-descent parser over the subset grammar:

    document  := header* declaration*
    header    := "import" ... | "pragma" ...
    declaration := Type "{" member* "}"
    member    := Type "{" member* "}"              child node
               | group "{" field* "}"             grouped properties
               | key ":" value                    property / handler / inline object

Parsing is best-effort: stray braces, unsupported statements and unterminated
blocks are skipped or closed implicitly, and no input makes parse() raise.
"""

from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from . import schema
from .dom import (
    Document,
    InlineObject,
    PropertyGroup,
    RawValue,
    SignalHandler,
    WidgetNode,
    WindowOptions,
    assign_ids,
    sanitize_id,
)
from .schema import Kind, PropertySpec

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(
    r"""
      (?P<comment>//[^\n]*|/\*.*?\*/)
    | (?P<newline>\n)
    | (?P<space>[ \t\r\f\v]+)
    | (?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*')
    | (?P<number>-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)
    | (?P<ident>[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*)
    | (?P<lbrace>\{)
    | (?P<rbrace>\})
    | (?P<colon>:)
    | (?P<semi>;)
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_NUMBER = re.compile(r"^-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")
_STRING_LITERAL = re.compile(r"""^(?:"((?:\\.|[^"\\])*)"|'((?:\\.|[^'\\])*)')$""", re.DOTALL)
_LOCALIZED = re.compile(r"""^qsTr\(\s*("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')\s*\)$""", re.DOTALL)
_ENUM_PATH = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

# Declaration prefixes kept as opaque `property <type> <name>` keys
_DECLARATION_WORDS = frozenset({"property", "readonly", "default", "required"})

_OPENERS = frozenset({"{", "(", "["})
_CLOSERS = frozenset({"}", ")", "]"})


class Token(NamedTuple):
    kind: str
    text: str
    start: int
    end: int


def tokenize(source: str) -> list[Token]:
    """Split source into tokens, dropping whitespace and comments."""
    tokens: list[Token] = []
    for match in _TOKEN_PATTERN.finditer(source):
        kind = match.lastgroup or "other"
        text = match.group()
        if kind == "space":
            continue
        if kind == "comment":
            # A multi-line block comment still separates statements
            if "\n" in text:
                tokens.append(Token("newline", "\n", match.start(), match.end()))
            continue
        tokens.append(Token(kind, text, match.start(), match.end()))
    return tokens


def unescape(body: str) -> str:
    """Decode the escape sequences of a QML/JS string literal body."""
    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq[0] in "ux" and len(seq) > 1:
            return chr(int(seq[1:], 16))
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _ESCAPE.sub(replace, body)


def string_literal(raw: str) -> str | None:
    """Decoded content of a string literal, optionally wrapped in qsTr(); None otherwise."""
    localized = _LOCALIZED.match(raw)
    if localized:
        raw = localized.group(1)
    match = _STRING_LITERAL.match(raw)
    if not match:
        return None
    body = match.group(1) if match.group(1) is not None else match.group(2)
    return unescape(body)


def number_literal(raw: str) -> int | float | None:
    if not _NUMBER.match(raw):
        return None
    if any(c in raw for c in ".eE"):
        return float(raw)
    return int(raw)


def coerce_value(raw: str, spec: PropertySpec | None) -> Any:
    """
    Convert the source text of a value into its model value.

    Unrecognized keys and values that do not match their declared kind
    (bindings like `parent.width`) stay RawValue so they re-emit verbatim.
    """
    if spec is None:
        return RawValue(raw)

    if spec.kind is Kind.BOOL:
        if raw in ("true", "false"):
            return raw == "true"
    elif spec.kind is Kind.NUMBER:
        number = number_literal(raw)
        if number is not None:
            return number
    elif spec.kind in (Kind.TEXT, Kind.STRING, Kind.COLOR):
        text = string_literal(raw)
        if text is not None:
            return text
    elif spec.kind is Kind.ENUM:
        # Only the table's own scope is stripped; other scopes stay verbatim
        prefix = f"{spec.scope}." if spec.scope else ""
        if prefix and raw.startswith(prefix) and _ENUM_PATH.match(raw[len(prefix):]):
            if "." not in raw[len(prefix):]:
                return raw[len(prefix):]

    return RawValue(raw)


def _handler_code(inner: str) -> str:
    """Normalize the body of a `{ ... }` handler: dedent, trim blank edges."""
    lines = [line.rstrip() for line in inner.split("\n")]
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return textwrap.dedent("\n".join(lines))


@dataclass
class _Scope:
    """What the block being parsed belongs to."""
    kind: str  # "window", "node", "group", "object"
    target: Any
    group: str | None = None
    children: list[WidgetNode] | None = None  # where child declarations go
    dropped: bool = False  # a child declaration had nowhere to go


@dataclass
class _Parser:
    source: str
    tokens: list[Token] = field(default_factory=list)
    pos: int = 0
    window: WindowOptions = field(default_factory=WindowOptions)
    roots: list[WidgetNode] = field(default_factory=list)
    seen_declaration: bool = False

    def __post_init__(self):
        self.tokens = tokenize(self.source)

    # Token helpers

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def _is(self, kind: str, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok.kind == kind

    def _skip_line(self) -> None:
        while (tok := self._peek()) is not None and tok.kind != "newline":
            self.pos += 1

    def _skip_statement(self) -> None:
        """Skip to the end of the current statement, stepping over nested brackets."""
        start = self._peek()
        self._capture_value()
        if start is not None:
            logger.debug("skipped unsupported statement at offset %d", start.start)

    def _capture_value(self) -> str:
        """
        Consume a value up to newline, `;` or the enclosing `}` (not consumed).
        Brackets nest, so multi-line expressions and object literals stay whole.
        """
        first: Token | None = None
        last: Token | None = None
        depth = 0
        while (tok := self._peek()) is not None:
            if depth == 0 and tok.kind in ("newline", "semi", "rbrace"):
                break
            if tok.text in _OPENERS:
                depth += 1
            elif tok.text in _CLOSERS:
                depth = max(depth - 1, 0)
            if first is None:
                first = tok
            last = tok
            self.pos += 1
        if first is None or last is None:
            return ""
        return self.source[first.start:last.end].strip()

    def _capture_braces(self) -> str:
        """Consume a balanced `{ ... }` and return the text between the braces."""
        opening = self.tokens[self.pos]
        self.pos += 1
        depth = 1
        while (tok := self._peek()) is not None:
            self.pos += 1
            if tok.kind == "lbrace":
                depth += 1
            elif tok.kind == "rbrace":
                depth -= 1
                if depth == 0:
                    return self.source[opening.end:tok.start]
        logger.debug("unterminated block starting at offset %d", opening.start)
        return self.source[opening.end:]

    # Grammar

    def run(self) -> None:
        while (tok := self._peek()) is not None:
            if tok.kind in ("newline", "semi"):
                self.pos += 1
            elif tok.kind == "ident" and tok.text in ("import", "pragma"):
                self._skip_line()
            elif tok.kind == "ident" and self._is("lbrace", 1):
                self._top_level_declaration(tok.text)
            elif tok.kind == "rbrace":
                logger.debug("discarding unmatched '}' at offset %d", tok.start)
                self.pos += 1
            else:
                self._skip_statement()

    def _top_level_declaration(self, type_name: str) -> None:
        self.pos += 2
        if not self.seen_declaration and type_name in schema.ROOT_CONTAINERS:
            self.seen_declaration = True
            self._block(_Scope("window", self.window, children=self.roots))
            return
        self.seen_declaration = True
        node = self._new_node(type_name)
        self.roots.append(node)
        self._block(_Scope("node", node, children=node.children))

    def _new_node(self, type_name: str) -> WidgetNode:
        width, height = schema.default_size(type_name)
        return WidgetNode(type=type_name, width=width, height=height)

    def _block(self, scope: _Scope) -> None:
        """Parse members until the matching `}` (consumed) or end of input."""
        while (tok := self._peek()) is not None:
            if tok.kind == "rbrace":
                self.pos += 1
                return
            if tok.kind in ("newline", "semi"):
                self.pos += 1
                continue
            if tok.kind != "ident":
                self._skip_statement()
                continue
            self._member(scope)
        logger.debug("unterminated %s block closed at end of input", scope.kind)

    def _member(self, scope: _Scope) -> None:
        name = self.tokens[self.pos].text

        if self._is("lbrace", 1):
            self.pos += 2
            if name[0].isupper():
                self._child_declaration(scope, name)
            else:
                group = self._group(scope, name)
                self._block(_Scope("group", group, group=name))
            return

        if self._is("colon", 1):
            self.pos += 2
            self._assignment(scope, name)
            return

        if name in _DECLARATION_WORDS:
            self._declaration(scope)
            return

        self._skip_statement()

    def _child_declaration(self, scope: _Scope, type_name: str) -> None:
        node = self._new_node(type_name)
        if scope.children is None:
            scope.dropped = True
            self._block(_Scope("node", node, children=node.children))
            return
        scope.children.append(node)
        self._block(_Scope("node", node, children=node.children))

    def _declaration(self, scope: _Scope) -> None:
        """`property <type> <name>: value` and friends, kept under their full prefix."""
        words: list[str] = []
        while self._is("ident"):
            words.append(self.tokens[self.pos].text)
            self.pos += 1
        if not self._is("colon") or len(words) < 2:
            self._skip_statement()
            return
        self.pos += 1
        raw = self._capture_value()
        if raw:
            self._store(scope, " ".join(words), RawValue(raw))

    def _assignment(self, scope: _Scope, key: str) -> None:
        tok = self._peek()
        if tok is None:
            return

        if tok.kind == "lbrace":
            inner = self._capture_braces()
            if schema.is_signal_handler(key):
                # `onClicked: { a(); b() }` on one line is an inline handler with several statements
                self._store(scope, key, SignalHandler(code=_handler_code(inner), block="\n" in inner))
            else:
                self._store(scope, key, RawValue("{" + inner + "}"))
            return

        if tok.kind == "ident" and tok.text[0].isupper() and self._is("lbrace", 1):
            obj = InlineObject(type=tok.text)
            self.pos += 2
            self._store(scope, key, obj)
            inner = _Scope("object", obj)
            self._block(inner)
            if inner.dropped:
                # Objects with nested declarations (ListModel { ListElement {} })
                # are kept as source text rather than losing the declarations
                end = self.tokens[self.pos - 1].end
                self._store(scope, key, RawValue(self.source[tok.start:end].strip()))
            return

        raw = self._capture_value()
        if not raw:
            logger.debug("property %r has no value", key)
            return

        if schema.is_signal_handler(key):
            self._store(scope, key, SignalHandler(code=raw))
            return

        self._assign_raw(scope, key, raw)

    def _assign_raw(self, scope: _Scope, key: str, raw: str) -> None:
        head, dot, rest = key.partition(".")
        if dot and scope.kind != "group":
            group = self._group(scope, head)
            group.fields[rest] = coerce_value(raw, schema.property_spec(rest, head))
            return

        if scope.kind == "group":
            scope.target.fields[key] = coerce_value(raw, schema.property_spec(key, scope.group))
            return

        if scope.kind == "node":
            node: WidgetNode = scope.target
            if key == "id":
                node.id = sanitize_id(string_literal(raw) or raw)
                return
            if key in schema.GEOMETRY:
                number = number_literal(raw)
                if number is not None:
                    setattr(node, key, number)
                    node.properties.pop(key, None)
                else:
                    node.properties[key] = RawValue(raw)
                return

        if scope.kind == "window":
            window: WindowOptions = scope.target
            if key == "id":
                return
            if key in ("width", "height"):
                number = number_literal(raw)
                if number is not None:
                    setattr(window, key, number)
                    return
            if key == "title":
                title = string_literal(raw)
                if title is not None:
                    window.title = title
                    return
            if key == "visible" and raw in ("true", "false"):
                window.visible = raw == "true"
                return

        self._store(scope, key, coerce_value(raw, schema.property_spec(key)))

    def _group(self, scope: _Scope, name: str) -> PropertyGroup:
        """Existing group of that name on the scope's target, or a new one."""
        bag = self._bag(scope)
        existing = bag.get(name)
        if isinstance(existing, PropertyGroup):
            return existing
        group = PropertyGroup()
        bag[name] = group
        return group

    def _bag(self, scope: _Scope) -> dict[str, Any]:
        if scope.kind == "group":
            return scope.target.fields
        return scope.target.properties

    def _store(self, scope: _Scope, key: str, value: Any) -> None:
        self._bag(scope)[key] = value

    def document(self) -> Document:
        return Document(window=self.window, nodes=self.roots)


def parse_document(source: str) -> Document:
    """
    Parse QML text into window options plus the widget forest.

    Never raises: on an internal error the partial result built so far is
    returned and the error is logged.
    """
    if not isinstance(source, str):
        logger.warning("parse_document expected str, got %s", type(source).__name__)
        return Document()

    parser = _Parser(source="")
    try:
        parser = _Parser(source=source)
        parser.run()
    except Exception:
        logger.warning("QML parse failed; keeping partial tree", exc_info=True)

    try:
        assign_ids(parser.roots)
    except Exception:
        logger.warning("id assignment failed", exc_info=True)

    return parser.document()


def parse(source: str) -> list[WidgetNode]:
    """Parse QML text into its root widget nodes."""
    return parse_document(source).nodes
