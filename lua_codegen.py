#!/usr/bin/env python3
"""Full Lua script generation for a scene."""

from __future__ import annotations

from scene_model import INTERACTIVE_TYPES, Element, Scene
from statement_table import SHAPES_BY_TYPE, format_metadata, handler_name, round_half_up

INDENT = "    "
ELEMENT_DEPTH = 2

HEADER_LINES = (
    "-- Auto-generated Teardown UI code",
    "state = state or {}",
    "",
    "function draw()",
    f"{INDENT}UiPush()",
    f"{INDENT * 2}local x0,y0,x1,y1 = UiSafeMargins(); UiTranslate(x0,y0); UiWindow(x1-x0, y1-y0)",
)
FOOTER_LINES = (
    f"{INDENT}UiPop()",
    "end",
    "",
    "-- Event handler stubs (implement)",
)


def emit_element_block(element: Element, indent: str) -> list[str]:
    """Metadata comment plus the push/translate/statements/pop block."""
    inner = indent + INDENT
    lines = [
        indent + format_metadata(element),
        indent + "UiPush()",
        f"{inner}UiTranslate({round_half_up(element.x)}, {round_half_up(element.y)})",
    ]
    shape = SHAPES_BY_TYPE.get(element.type)
    if shape is not None:
        lines.extend(inner + statement for statement in shape.build(element))
    lines.append(indent + "UiPop()")
    return lines


def collect_handlers(scene: Scene) -> list[str]:
    handlers: list[str] = []
    for element in scene.ordered_elements():
        if element.type not in INTERACTIVE_TYPES:
            continue
        name = handler_name(element)
        if name and name not in handlers:
            handlers.append(name)
    return handlers


def handler_stub(name: str) -> str:
    return f"function {name}() end"


def generate_script(scene: Scene) -> str:
    lines = list(HEADER_LINES)
    for element in scene.ordered_elements():
        lines.extend(emit_element_block(element, INDENT * ELEMENT_DEPTH))
    lines.extend(FOOTER_LINES)
    lines.extend(handler_stub(name) for name in collect_handlers(scene))
    return "\n".join(lines) + "\n"
