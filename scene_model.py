#!/usr/bin/env python3
"""Scene model: elements, z-order, per-type prop schemas and creation defaults."""

from __future__ import annotations

import copy
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Collection

SCHEMA_VERSION = "1.0.0"
PLACEHOLDER_IMAGE = "ui/example.png"

ELEMENT_TYPES = (
    "text",
    "rect",
    "rectOutline",
    "roundrect",
    "roundedRectOutline",
    "circle",
    "circleOutline",
    "image",
    "imageBox",
    "button",
    "imageButton",
    "blankButton",
    "slider",
    "mute",
    "colorFilter",
    "color",
    "disableInput",
    "buttonHoverColor",
    "setCursorState",
    "ignoreNavigation",
    "font",
    "align",
    "textOutline",
    "wordWrap",
    "textAlignment",
    "drawLater",
    "group",
)

# "group" is reserved for composites and never created or parsed.
RESERVED_TYPES = frozenset({"group"})
INTERACTIVE_TYPES = frozenset({"button", "imageButton", "blankButton", "slider"})
DIRECTIVE_TYPES = frozenset(
    {
        "mute",
        "colorFilter",
        "color",
        "disableInput",
        "buttonHoverColor",
        "setCursorState",
        "ignoreNavigation",
        "font",
        "align",
        "textOutline",
        "wordWrap",
        "textAlignment",
        "drawLater",
    }
)


class UnknownElementTypeError(ValueError):
    """Raised when an element type is outside the creatable enumeration."""


class SceneDocumentError(ValueError):
    """Raised when a scene document cannot be turned into a Scene."""


@dataclass(frozen=True)
class PropField:
    key: str
    kind: str
    # None means optional or computed from the element (see resolve_prop).
    default: Any = None


def _channels(default: float) -> tuple[PropField, ...]:
    return (
        PropField("r", "channel", default),
        PropField("g", "channel", default),
        PropField("b", "channel", default),
        PropField("a", "channel", 1),
    )


PROP_SCHEMAS: dict[str, tuple[PropField, ...]] = {
    "text": (PropField("text", "str", "Text"),),
    "rect": (),
    "rectOutline": (PropField("thickness", "number", 2),),
    "roundrect": (PropField("radius", "number", 8),),
    "roundedRectOutline": (
        PropField("radius", "number", 8),
        PropField("thickness", "number", 2),
    ),
    "circle": (PropField("radius", "number"),),
    "circleOutline": (
        PropField("radius", "number"),
        PropField("thickness", "number", 2),
    ),
    "image": (PropField("path", "str", PLACEHOLDER_IMAGE),),
    "imageBox": (
        PropField("path", "str", PLACEHOLDER_IMAGE),
        PropField("borderW", "number", 10),
        PropField("borderH", "number", 10),
    ),
    "button": (
        PropField("text", "str", "Button"),
        PropField("onPress", "str"),
    ),
    "imageButton": (
        PropField("path", "str", PLACEHOLDER_IMAGE),
        PropField("onPress", "str"),
    ),
    "blankButton": (PropField("onPress", "str"),),
    "slider": (
        PropField("var", "str"),
        PropField("min", "number", 0),
        PropField("max", "number", 100),
        PropField("onChange", "str"),
    ),
    "mute": (),
    "colorFilter": _channels(1),
    "color": _channels(1),
    "disableInput": (),
    "buttonHoverColor": _channels(0.8),
    "setCursorState": (PropField("state", "number", 0),),
    "ignoreNavigation": (),
    "font": (
        PropField("path", "str", "regular.ttf"),
        PropField("size", "number", 18),
    ),
    "align": (PropField("align", "str", "left"),),
    "textOutline": (
        PropField("r", "channel", 0),
        PropField("g", "channel", 0),
        PropField("b", "channel", 0),
        PropField("a", "channel", 1),
        PropField("thickness", "number", 0.1),
    ),
    "wordWrap": (PropField("width", "number", 600),),
    "textAlignment": (PropField("mode", "str", "left"),),
    "drawLater": (),
    "group": (),
}

DEFAULT_SIZE = (200, 50)
DEFAULT_SIZES: dict[str, tuple[float, float]] = {
    "text": (200, 30),
    "slider": (200, 24),
    "image": (128, 128),
    "imageBox": (128, 128),
    "imageButton": (64, 64),
    "circle": (100, 100),
    "circleOutline": (100, 100),
    **{t: (0, 0) for t in DIRECTIVE_TYPES},
}

# Explicit props beyond the schema defaults for freshly created elements.
_CREATION_OVERRIDES: dict[str, dict[str, Any]] = {
    "text": {"text": "Label"},
    "circle": {"radius": 50},
    "circleOutline": {"radius": 50, "thickness": 4},
    "slider": {"var": "sliderVal"},
}


def prop_schema(element_type: str) -> tuple[PropField, ...]:
    return PROP_SCHEMAS.get(element_type, ())


def prop_field(element_type: str, key: str) -> PropField | None:
    for prop in prop_schema(element_type):
        if prop.key == key:
            return prop
    return None


def default_size(element_type: str) -> tuple[float, float]:
    return DEFAULT_SIZES.get(element_type, DEFAULT_SIZE)


def coerce_prop_value(element_type: str, key: str, value: Any) -> tuple[bool, Any]:
    """Check a value against the type's prop schema.

    Returns ``(accepted, value)``. Channels are clamped to 0..1; ``None``
    clears an optional prop so the default applies again.
    """
    prop = prop_field(element_type, key)
    if prop is None:
        return False, None
    if value is None:
        return True, None
    if prop.kind == "str":
        if not isinstance(value, str):
            return False, None
        return True, value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, None
    if prop.kind == "channel" and not 0 <= value <= 1:
        return True, max(0.0, min(1.0, float(value)))
    return True, value


@dataclass
class Element:
    id: str
    type: str
    name: str
    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0
    props: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "props": dict(self.props),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Element":
        try:
            return cls(
                id=str(payload["id"]),
                type=str(payload["type"]),
                name=str(payload["name"]),
                x=payload["x"],
                y=payload["y"],
                w=payload["w"],
                h=payload["h"],
                props=dict(payload.get("props") or {}),
            )
        except (KeyError, TypeError) as err:
            raise SceneDocumentError(f"invalid element payload: {err}") from err


def slider_var_name(name: str) -> str:
    """Lua identifier for a slider without an explicit ``var``."""
    base = re.sub(r"[^A-Za-z0-9_]", "", name)
    if not base or base[0].isdigit():
        base = "slider" + base
    return base + "Val"


def resolve_prop(element: Element, key: str) -> Any:
    """Effective prop value: the stored value, else the per-type default."""
    value = element.props.get(key)
    if value is not None:
        return value
    if key == "radius" and element.type in {"circle", "circleOutline"}:
        return element.w / 2
    if key == "var" and element.type == "slider":
        return slider_var_name(element.name)
    prop = prop_field(element.type, key)
    return prop.default if prop is not None else None


@dataclass
class Scene:
    root_order: list[str] = field(default_factory=list)
    elements: dict[str, Element] = field(default_factory=dict)
    selection: list[str] = field(default_factory=list)

    def copy(self) -> "Scene":
        return copy.deepcopy(self)

    def ordered_elements(self) -> list[Element]:
        return [self.elements[eid] for eid in self.root_order if eid in self.elements]

    def to_document(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "root_order": list(self.root_order),
            "elements": {eid: el.to_dict() for eid, el in self.elements.items()},
            "selection": list(self.selection),
        }

    @classmethod
    def from_document(cls, payload: Any) -> "Scene":
        if not isinstance(payload, dict):
            raise SceneDocumentError("scene document root must be an object")
        raw_elements = payload.get("elements", {})
        if not isinstance(raw_elements, dict):
            raise SceneDocumentError("elements must be an object")
        elements = {str(k): Element.from_dict(v) for k, v in raw_elements.items()}
        root_order = [str(eid) for eid in payload.get("root_order", [])]
        if sorted(root_order) != sorted(elements):
            raise SceneDocumentError("root_order must be a permutation of element ids")
        selection = [str(eid) for eid in payload.get("selection", []) if eid in elements]
        return cls(root_order=root_order, elements=elements, selection=selection)


def allocate_element_id(existing: Collection[str], length: int = 6) -> str:
    while True:
        candidate = uuid.uuid4().hex[:length]
        if candidate not in existing:
            return candidate


def new_element(
    element_type: str,
    *,
    element_id: str,
    spawn: tuple[float, float] = (100, 100),
) -> Element:
    if element_type not in ELEMENT_TYPES or element_type in RESERVED_TYPES:
        raise UnknownElementTypeError(f"cannot create element of type: {element_type}")
    props = {p.key: p.default for p in prop_schema(element_type) if p.default is not None}
    props.update(_CREATION_OVERRIDES.get(element_type, {}))
    w, h = default_size(element_type)
    return Element(
        id=element_id,
        type=element_type,
        name=f"{element_type}_{element_id}",
        x=spawn[0],
        y=spawn[1],
        w=w,
        h=h,
        props=props,
    )
