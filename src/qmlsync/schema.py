"""
Widget catalog and the known-property table.

Parser and generator both read these tables, so the spelling and coercion
rules of every recognized key live in exactly one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto

# Root containers carry window options; their children are the document roots
ROOT_CONTAINERS = frozenset({"ApplicationWindow", "Window"})

BASE_IMPORTS = (
    "import QtQuick 2.15",
    "import QtQuick.Controls 2.15",
)

TYPE_IMPORTS: dict[str, str] = {
    "WebEngineView": "import QtWebEngine 1.15",
    "Chart": "import QtCharts 2.15",
    "ChartView": "import QtCharts 2.15",
    "MediaPlayer": "import QtMultimedia 5.15",
    "VideoOutput": "import QtMultimedia 5.15",
    "WebView": "import QtWebView 1.15",
    "Window": "import QtQuick.Window 2.15",
    "Dialog": "import QtQuick.Window 2.15",
    "Layout": "import QtQuick.Layouts 1.15",
    "GridLayout": "import QtQuick.Layouts 1.15",
    "RowLayout": "import QtQuick.Layouts 1.15",
    "ColumnLayout": "import QtQuick.Layouts 1.15",
}

FALLBACK_SIZE = (100, 30)

DEFAULT_SIZES: dict[str, tuple[int, int]] = {
    # Basic widgets
    "Button": (120, 35),
    "Label": (100, 25),
    "TextField": (200, 35),
    "TextArea": (250, 100),
    "Image": (150, 150),
    "Rectangle": (150, 100),
    # Layouts
    "Row": (300, 50),
    "Column": (150, 200),
    "Grid": (200, 150),
    "RowLayout": (300, 50),
    "ColumnLayout": (150, 200),
    "GridLayout": (200, 150),
    # Input controls
    "CheckBox": (120, 30),
    "RadioButton": (120, 30),
    "Slider": (200, 30),
    "ProgressBar": (200, 25),
    "ComboBox": (150, 35),
    "SpinBox": (120, 35),
    "Switch": (60, 30),
    # Views and containers
    "ListView": (200, 150),
    "TreeView": (250, 200),
    "TabView": (400, 300),
    "ScrollView": (250, 200),
    "SwipeView": (300, 200),
    "StackView": (300, 200),
    "GroupBox": (200, 150),
    "Frame": (200, 150),
    "Page": (400, 300),
    "Pane": (200, 150),
    "Drawer": (250, 400),
    "Dialog": (300, 200),
    "Popup": (200, 150),
    "ToolBar": (400, 50),
    "MenuBar": (400, 30),
    # Media and charts
    "VideoOutput": (320, 240),
    "ChartView": (400, 300),
}

_SIGNAL_HANDLER = re.compile(r"^on[A-Z]\w*$")


class Kind(Enum):
    """How a recognized property is coerced on parse and formatted on generate."""
    TEXT = auto()    # localized string, emitted as qsTr("...")
    STRING = auto()  # quoted string
    COLOR = auto()   # quoted color, never localized
    ENUM = auto()    # bare identifier, scope prefix added/stripped
    NUMBER = auto()
    BOOL = auto()


@dataclass(frozen=True)
class PropertySpec:
    kind: Kind
    scope: str | None = None


GEOMETRY = ("x", "y", "width", "height")

PROPERTIES: dict[str, PropertySpec] = {
    "text": PropertySpec(Kind.TEXT),
    "placeholderText": PropertySpec(Kind.TEXT),
    "title": PropertySpec(Kind.TEXT),
    "color": PropertySpec(Kind.COLOR),
    "selectionColor": PropertySpec(Kind.COLOR),
    "source": PropertySpec(Kind.STRING),
    "textRole": PropertySpec(Kind.STRING),
    "enabled": PropertySpec(Kind.BOOL),
    "visible": PropertySpec(Kind.BOOL),
    "checked": PropertySpec(Kind.BOOL),
    "checkable": PropertySpec(Kind.BOOL),
    "flat": PropertySpec(Kind.BOOL),
    "highlighted": PropertySpec(Kind.BOOL),
    "readOnly": PropertySpec(Kind.BOOL),
    "editable": PropertySpec(Kind.BOOL),
    "clip": PropertySpec(Kind.BOOL),
    "interactive": PropertySpec(Kind.BOOL),
    "opacity": PropertySpec(Kind.NUMBER),
    "value": PropertySpec(Kind.NUMBER),
    "from": PropertySpec(Kind.NUMBER),
    "to": PropertySpec(Kind.NUMBER),
    "stepSize": PropertySpec(Kind.NUMBER),
    "radius": PropertySpec(Kind.NUMBER),
    "spacing": PropertySpec(Kind.NUMBER),
    "rows": PropertySpec(Kind.NUMBER),
    "columns": PropertySpec(Kind.NUMBER),
    "rowSpacing": PropertySpec(Kind.NUMBER),
    "columnSpacing": PropertySpec(Kind.NUMBER),
    "padding": PropertySpec(Kind.NUMBER),
    "z": PropertySpec(Kind.NUMBER),
    "rotation": PropertySpec(Kind.NUMBER),
    "scale": PropertySpec(Kind.NUMBER),
    "currentIndex": PropertySpec(Kind.NUMBER),
    "maximumLength": PropertySpec(Kind.NUMBER),
    "fillMode": PropertySpec(Kind.ENUM, scope="Image"),
    "wrapMode": PropertySpec(Kind.ENUM, scope="Text"),
    "elide": PropertySpec(Kind.ENUM, scope="Text"),
    "horizontalAlignment": PropertySpec(Kind.ENUM, scope="Text"),
    "verticalAlignment": PropertySpec(Kind.ENUM, scope="Text"),
    "echoMode": PropertySpec(Kind.ENUM, scope="TextInput"),
    "orientation": PropertySpec(Kind.ENUM, scope="Qt"),
    "layoutDirection": PropertySpec(Kind.ENUM, scope="Qt"),
}

# Sub-tables for grouped properties; unlisted fields stay opaque
GROUP_FIELDS: dict[str, dict[str, PropertySpec]] = {
    "font": {
        "family": PropertySpec(Kind.STRING),
        "pixelSize": PropertySpec(Kind.NUMBER),
        "pointSize": PropertySpec(Kind.NUMBER),
        "bold": PropertySpec(Kind.BOOL),
        "italic": PropertySpec(Kind.BOOL),
        "underline": PropertySpec(Kind.BOOL),
        "strikeout": PropertySpec(Kind.BOOL),
        "letterSpacing": PropertySpec(Kind.NUMBER),
        "weight": PropertySpec(Kind.ENUM, scope="Font"),
        "capitalization": PropertySpec(Kind.ENUM, scope="Font"),
    },
    "border": {
        "width": PropertySpec(Kind.NUMBER),
        "color": PropertySpec(Kind.COLOR),
    },
    "anchors": {
        "margins": PropertySpec(Kind.NUMBER),
        "leftMargin": PropertySpec(Kind.NUMBER),
        "rightMargin": PropertySpec(Kind.NUMBER),
        "topMargin": PropertySpec(Kind.NUMBER),
        "bottomMargin": PropertySpec(Kind.NUMBER),
        "horizontalCenterOffset": PropertySpec(Kind.NUMBER),
        "verticalCenterOffset": PropertySpec(Kind.NUMBER),
        "alignWhenCentered": PropertySpec(Kind.BOOL),
    },
    # Attached to children of RowLayout, ColumnLayout and GridLayout
    "Layout": {
        "fillWidth": PropertySpec(Kind.BOOL),
        "fillHeight": PropertySpec(Kind.BOOL),
        "preferredWidth": PropertySpec(Kind.NUMBER),
        "preferredHeight": PropertySpec(Kind.NUMBER),
        "minimumWidth": PropertySpec(Kind.NUMBER),
        "minimumHeight": PropertySpec(Kind.NUMBER),
        "maximumWidth": PropertySpec(Kind.NUMBER),
        "maximumHeight": PropertySpec(Kind.NUMBER),
        "row": PropertySpec(Kind.NUMBER),
        "column": PropertySpec(Kind.NUMBER),
        "rowSpan": PropertySpec(Kind.NUMBER),
        "columnSpan": PropertySpec(Kind.NUMBER),
        "margins": PropertySpec(Kind.NUMBER),
    },
}


def default_size(widget_type: str) -> tuple[int, int]:
    """Default (width, height) for a widget type."""
    return DEFAULT_SIZES.get(widget_type, FALLBACK_SIZE)


def required_import(widget_type: str) -> str | None:
    """Extra import statement a widget type needs beyond BASE_IMPORTS."""
    return TYPE_IMPORTS.get(widget_type)


def property_spec(key: str, group: str | None = None) -> PropertySpec | None:
    """Formatting rule for a property key, or a field inside a named group."""
    if group is not None:
        return GROUP_FIELDS.get(group, {}).get(key)
    return PROPERTIES.get(key)


def is_signal_handler(key: str) -> bool:
    """True for `onClicked`, `Component.onCompleted` and the like."""
    return bool(_SIGNAL_HANDLER.match(key.rsplit(".", 1)[-1]))
