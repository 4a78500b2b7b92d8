"""
Tests for the QML parser: structure recovery, typed coercion, id synthesis
and best-effort handling of malformed input.
"""

from pathlib import Path

import pytest
from qmlsync.dom import InlineObject, PropertyGroup, RawValue, SignalHandler, WidgetNode
from qmlsync.parser import coerce_value, parse, parse_document, string_literal, tokenize
from qmlsync.schema import Kind, PropertySpec

FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


class TestTokenize:
    def test_drops_comments_and_spaces(self):
        tokens = tokenize("Item { // note\n  x: 1 /* inline */ }")
        kinds = [t.kind for t in tokens]
        assert kinds == ["ident", "lbrace", "newline", "ident", "colon", "number", "rbrace"]

    def test_multiline_comment_separates_statements(self):
        tokens = tokenize("x: 1 /* a\nb */ y: 2")
        assert "newline" in [t.kind for t in tokens]

    def test_dotted_identifier_is_one_token(self):
        tokens = tokenize("anchors.fill: parent")
        assert tokens[0].text == "anchors.fill"

    def test_braces_inside_strings_are_not_tokens(self):
        tokens = tokenize('text: "{ }"')
        assert [t.kind for t in tokens] == ["ident", "colon", "string"]


class TestLiterals:
    @pytest.mark.parametrize("raw, expected", [
        ('"Hi"', "Hi"),
        ("'Hi'", "Hi"),
        ('qsTr("Hi")', "Hi"),
        ('qsTr( "Hi" )', "Hi"),
        (r'"a\"b"', 'a"b'),
        (r'"line\nbreak"', "line\nbreak"),
        (r'"é"', "é"),
    ])
    def test_string_literal(self, raw, expected):
        assert string_literal(raw) == expected

    def test_string_literal_rejects_expressions(self):
        assert string_literal('"a" + "b"') is None
        assert string_literal("name") is None

    def test_coerce_bool_and_number(self):
        assert coerce_value("true", PropertySpec(Kind.BOOL)) is True
        assert coerce_value("false", PropertySpec(Kind.BOOL)) is False
        assert coerce_value("12", PropertySpec(Kind.NUMBER)) == 12
        assert isinstance(coerce_value("12", PropertySpec(Kind.NUMBER)), int)
        assert coerce_value("0.5", PropertySpec(Kind.NUMBER)) == 0.5
        assert coerce_value("-3", PropertySpec(Kind.NUMBER)) == -3

    def test_coerce_mismatch_stays_raw(self):
        value = coerce_value("root.enabled", PropertySpec(Kind.BOOL))
        assert value == RawValue("root.enabled")
        assert isinstance(value, RawValue)

    def test_coerce_enum_strips_own_scope_only(self):
        spec = PropertySpec(Kind.ENUM, scope="Image")
        assert coerce_value("Image.PreserveAspectFit", spec) == "PreserveAspectFit"
        assert not isinstance(coerce_value("Image.PreserveAspectFit", spec), RawValue)
        assert isinstance(coerce_value("Other.Value", spec), RawValue)

    def test_coerce_unknown_key(self):
        assert isinstance(coerce_value("42", None), RawValue)


class TestParseBasics:
    def test_single_button_with_semicolons(self):
        nodes = parse('Button { id: b1; x: 10; y: 20; width: 100; height: 30; text: "Hi" }')
        assert len(nodes) == 1
        node = nodes[0]
        assert node.type == "Button"
        assert node.id == "b1"
        assert (node.x, node.y, node.width, node.height) == (10, 20, 100, 30)
        assert node.properties == {"text": "Hi"}

    def test_window_options_and_children(self):
        doc = parse_document(
            'import QtQuick 2.15\n'
            'import QtQuick.Controls 2.15\n'
            '\n'
            'ApplicationWindow {\n'
            '    id: window\n'
            '    width: 640\n'
            '    height: 480\n'
            '    visible: false\n'
            '    title: qsTr("Login")\n'
            '\n'
            '    Label { id: heading }\n'
            '    Button { id: go }\n'
            '}\n'
        )
        assert (doc.window.width, doc.window.height) == (640, 480)
        assert doc.window.visible is False
        assert doc.window.title == "Login"
        assert doc.window.properties == {}
        assert [n.id for n in doc.nodes] == ["heading", "go"]

    def test_window_type_is_also_a_root_container(self):
        doc = parse_document("Window { width: 300\n Item { id: a } }")
        assert doc.window.width == 300
        assert [n.id for n in doc.nodes] == ["a"]

    def test_rootless_text_keeps_every_declaration(self):
        nodes = parse("Label { id: a }\nButton { id: b }")
        assert [n.id for n in nodes] == ["a", "b"]

    def test_nesting_follows_braces_not_indentation(self):
        nodes = parse(
            "Rectangle { id: outer\n"
            "Column { id: col\n"
            "        Button { id: inner }\n"
            "}\n"
            "  Label { id: tail }\n"
            "}\n"
        )
        outer = nodes[0]
        assert [c.id for c in outer.children] == ["col", "tail"]
        assert [c.id for c in outer.children[0].children] == ["inner"]

    def test_missing_geometry_uses_catalog_defaults(self):
        node = parse("TextField { id: f }")[0]
        assert (node.x, node.y, node.width, node.height) == (0, 0, 200, 35)

    def test_unknown_type_uses_fallback_size(self):
        node = parse("Fancy { }")[0]
        assert node.type == "Fancy"
        assert (node.width, node.height) == (100, 30)

    def test_float_geometry(self):
        node = parse("Item { x: 1.5 }")[0]
        assert node.x == 1.5


class TestIdSynthesis:
    def test_missing_ids_use_type_and_counter(self):
        nodes = parse("Button { }\nButton { }\nLabel { }")
        assert [n.id for n in nodes] == ["button1", "button2", "label3"]

    def test_synthesized_ids_skip_taken_ones(self):
        nodes = parse("Button { }\nButton { id: button2 }\nButton { }")
        assert [n.id for n in nodes] == ["button1", "button2", "button3"]

    def test_duplicate_explicit_ids_are_suffixed(self):
        nodes = parse("Item { id: a }\nItem { id: a }\nItem { id: a }")
        assert [n.id for n in nodes] == ["a", "a_2", "a_3"]

    def test_ids_are_sanitized(self):
        node = parse('Item { id: "my item" }')[0]
        assert node.id == "my_item"

    def test_ids_unique_across_depth(self):
        nodes = parse("Item { Item { Item { } } }")
        ids = [n.id for n in nodes[0].depth_first()]
        assert ids == ["item1", "item2", "item3"]


class TestProperties:
    def test_typed_coercion(self):
        node = parse(
            "Item {\n"
            '    text: qsTr("Save")\n'
            '    color: "#ff0000"\n'
            "    enabled: false\n"
            "    opacity: 0.5\n"
            "    fillMode: Image.PreserveAspectFit\n"
            '    source: "icon.png"\n'
            "}"
        )[0]
        assert node.properties == {
            "text": "Save",
            "color": "#ff0000",
            "enabled": False,
            "opacity": 0.5,
            "fillMode": "PreserveAspectFit",
            "source": "icon.png",
        }

    def test_property_order_is_source_order(self):
        node = parse("Item { visible: true; text: 'a'; color: 'red' }")[0]
        assert list(node.properties) == ["visible", "text", "color"]

    def test_unknown_keys_are_raw(self):
        node = parse("Item { customThing: 42\n other: foo(1, 2) }")[0]
        assert node.properties["customThing"] == RawValue("42")
        assert isinstance(node.properties["customThing"], RawValue)
        assert node.properties["other"] == RawValue("foo(1, 2)")

    def test_geometry_binding_is_kept_as_raw(self):
        node = parse("Item { width: parent.width * 0.5 }")[0]
        assert node.properties == {"width": RawValue("parent.width * 0.5")}
        assert node.width == 100

    def test_multiline_expression_stays_whole(self):
        node = parse("Item {\n    model: [\n        1,\n        2\n    ]\n}")[0]
        assert node.properties["model"] == RawValue("[\n        1,\n        2\n    ]")

    def test_group_block(self):
        node = parse("Label { font { pixelSize: 14; bold: true; family: \"Arial\"; weight: Font.Bold } }")[0]
        assert node.properties["font"] == PropertyGroup(
            {"pixelSize": 14, "bold": True, "family": "Arial", "weight": "Bold"}
        )

    def test_dotted_keys_merge_into_group(self):
        node = parse("Rectangle { border.width: 2\n border.color: \"#333\"\n anchors.fill: parent }")[0]
        assert node.properties["border"] == PropertyGroup({"width": 2, "color": "#333"})
        assert node.properties["anchors"] == PropertyGroup({"fill": RawValue("parent")})

    def test_repeated_group_blocks_merge(self):
        node = parse("Item { font { bold: true }\n font.italic: true }")[0]
        assert node.properties["font"] == PropertyGroup({"bold": True, "italic": True})

    def test_inline_signal_handler(self):
        node = parse('Button { onClicked: console.log("hi") }')[0]
        assert node.properties["onClicked"] == SignalHandler('console.log("hi")')

    def test_block_signal_handler_is_dedented(self):
        node = parse(
            "Button {\n"
            "    onClicked: {\n"
            "        if (ok) {\n"
            "            submit()\n"
            "        }\n"
            "    }\n"
            "}"
        )[0]
        handler = node.properties["onClicked"]
        assert handler.block is True
        assert handler.code == "if (ok) {\n    submit()\n}"

    def test_one_line_braced_handler_is_inline(self):
        node = parse("Button { onClicked: { a(); b() } }")[0]
        assert node.properties["onClicked"] == SignalHandler("a(); b()")

    def test_attached_properties_are_grouped(self):
        node = parse("Item { Layout.fillWidth: true\n Layout.preferredWidth: 80\n Layout.alignment: Qt.AlignTop }")[0]
        assert node.properties["Layout"] == PropertyGroup({
            "fillWidth": True,
            "preferredWidth": 80,
            "alignment": RawValue("Qt.AlignTop"),
        })
        assert node.children == []

    def test_attached_handler(self):
        node = parse("Item { Component.onCompleted: init() }")[0]
        assert node.properties["Component.onCompleted"] == SignalHandler("init()")

    def test_inline_object(self):
        node = parse('Button { background: Rectangle { color: "#eee"; radius: 4 } }')[0]
        assert node.properties["background"] == InlineObject("Rectangle", {"color": "#eee", "radius": 4})
        assert node.children == []

    def test_inline_object_with_declarations_kept_as_source(self):
        node = parse("ComboBox { model: ListModel { ListElement { name: \"a\" } } }")[0]
        assert node.properties["model"] == RawValue('ListModel { ListElement { name: "a" } }')

    def test_property_declarations_are_kept(self):
        node = parse("Item { property int count: 3 }")[0]
        assert node.properties == {"property int count": RawValue("3")}


class TestMalformedInput:
    def test_extra_closing_brace_after_node(self):
        nodes = parse("Button { id: b1 }\n}")
        assert len(nodes) == 1
        assert nodes[0].id == "b1"

    def test_unterminated_block_is_closed_and_kept(self):
        nodes = parse("Rectangle { id: r\n  Label { id: l\n")
        assert nodes[0].id == "r"
        assert nodes[0].children[0].id == "l"

    def test_unknown_top_level_content_is_skipped(self):
        nodes = parse("garbage here\n: ; ]\nLabel { id: ok }")
        assert [n.id for n in nodes] == ["ok"]

    def test_statement_without_value_is_skipped(self):
        node = parse("Label { text:\n color: 'red' }")[0]
        assert node.properties == {"color": "red"}

    @pytest.mark.parametrize("source", [
        "",
        "   \n\n",
        "{{{{",
        "}}}}",
        "Item {",
        ": : :",
        "Item { x: }",
        'Item { text: "unterminated }',
        "import",
        "\x00\x01\x02",
    ])
    def test_never_raises(self, source):
        nodes = parse(source)
        assert isinstance(nodes, list)
        assert all(isinstance(n, WidgetNode) for n in nodes)

    def test_non_string_input(self):
        assert parse(None) == []


class TestFixture:
    def test_login_form(self):
        doc = parse_document((FIXTURES / "login_form.qml").read_text())
        assert doc.window.title == "Login"
        form = doc.nodes[0]
        assert form.type == "ColumnLayout"
        assert [c.id for c in form.children] == ["username", "password", "remember", "submit"]
        assert form.children[1].properties["echoMode"] == "Password"
        assert form.children[3].properties["onClicked"].block is True
