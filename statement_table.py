#!/usr/bin/env python3
"""Per-type Lua statement shapes shared by the code generator and the parser.

Every element type maps to exactly one ``StatementShape``. The shape builds
the statements for an element and recognizes/extracts the same statements
when reading a script back, so both directions use one table of argument
specs and one set of defaults.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping
from urllib.parse import quote, unquote

from scene_model import ELEMENT_TYPES, Element, prop_field, resolve_prop

META_PREFIX = "--TDGUI"
DRAW_LATER_COMMENT = "-- UiDrawLater not supported in static export"

_IDENT = r"[A-Za-z_]\w*"
_CALLEE = rf"{_IDENT}(?:[.:]{_IDENT})*"
_IDENT_RE = re.compile(_IDENT)
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_META_FIELD_RE = re.compile(r"(\w+)=(\S*)")
_META_INT_RE = re.compile(r"-?\d+")
_THEN_CALL_RE = re.compile(rf"^\s*then\s+({_CALLEE})\s*\(")
_DRAW_LATER_RE = re.compile(r"^--\s*UiDrawLater\b")
_PUSH_RE = re.compile(r"^UiPush\s*\(\s*\)$")
_POP_RE = re.compile(r"^UiPop\s*\(\s*\)$")
# Same unreserved set as JavaScript's encodeURIComponent.
_NAME_SAFE_CHARS = "-_.!~*'()"
_LUA_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", '"': '"', "'": "'"}
_HANDLER_SUFFIX = {"onPress": "Press", "onChange": "Change"}


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def format_number(value: Any) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def lua_string(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def parse_lua_string(token: str) -> str | None:
    token = token.strip()
    if len(token) < 2 or token[0] not in "\"'" or token[-1] != token[0]:
        return None
    body = token[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            out.append(_LUA_ESCAPES.get(body[i + 1], body[i + 1]))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def parse_number(token: str) -> int | float | None:
    token = token.strip()
    if not _NUMBER_RE.fullmatch(token):
        return None
    try:
        return int(token)
    except ValueError:
        return float(token)


def resolve_number(token: str | None, bindings: Mapping[str, float]) -> int | float | None:
    """Literal number, or a bound variable name; anything else is unresolved."""
    if token is None:
        return None
    literal = parse_number(token)
    if literal is not None:
        return literal
    token = token.strip()
    if _IDENT_RE.fullmatch(token):
        return bindings.get(token)
    return None


def strip_comment(text: str) -> str:
    quote_char: str | None = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote_char:
            if ch == "\\":
                i += 2
                continue
            if ch == quote_char:
                quote_char = None
        elif ch in "\"'":
            quote_char = ch
        elif text.startswith("--", i):
            return text[:i]
        i += 1
    return text


def split_top_level(text: str, separator: str) -> list[str]:
    """Split on ``separator`` outside strings and brackets."""
    parts: list[str] = []
    current: list[str] = []
    quote_char: str | None = None
    depth = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote_char:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote_char:
                quote_char = None
        elif ch in "\"'":
            quote_char = ch
            current.append(ch)
        elif ch in "([{":
            depth += 1
            current.append(ch)
        elif ch in ")]}":
            depth -= 1
            current.append(ch)
        elif ch == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    parts.append("".join(current))
    return parts


def line_statements(line: str) -> list[str]:
    """Code statements of one line: comment removed, split on top-level ";"."""
    code = strip_comment(line.replace("\t", "    "))
    return [part.strip() for part in split_top_level(code, ";") if part.strip()]


def is_block_open(statement: str) -> bool:
    return _PUSH_RE.match(statement) is not None


def is_block_close(statement: str) -> bool:
    return _POP_RE.match(statement) is not None


def read_call_args(text: str, open_index: int) -> tuple[list[str], str] | None:
    """Arguments of the call whose "(" sits at ``open_index``, plus the text after ")"."""
    quote_char: str | None = None
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if quote_char:
            if ch == "\\":
                i += 2
                continue
            if ch == quote_char:
                quote_char = None
        elif ch in "\"'":
            quote_char = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                inner = text[open_index + 1 : i]
                if not inner.strip():
                    return [], text[i + 1 :]
                return [a.strip() for a in split_top_level(inner, ",")], text[i + 1 :]
        i += 1
    return None


def encode_name(name: str) -> str:
    return quote(name, safe=_NAME_SAFE_CHARS)


@dataclass(frozen=True)
class Metadata:
    element_id: str | None = None
    name: str | None = None
    element_type: str | None = None
    w: int | None = None
    h: int | None = None


def format_metadata(element: Element) -> str:
    return (
        f"{META_PREFIX} id={element.id} name={encode_name(element.name)} "
        f"type={element.type} w={round_half_up(element.w)} h={round_half_up(element.h)}"
    )


def parse_metadata(line: str) -> Metadata | None:
    text = line.strip()
    if not text.startswith(META_PREFIX):
        return None
    fields = dict(_META_FIELD_RE.findall(text[len(META_PREFIX) :]))

    def _int(key: str) -> int | None:
        raw = fields.get(key, "")
        return int(raw) if _META_INT_RE.fullmatch(raw) else None

    element_id = fields.get("id") or None
    name = unquote(fields["name"]) if fields.get("name") else None
    element_type = fields.get("type") if fields.get("type") in ELEMENT_TYPES else None
    if element_id is None and name is None and element_type is None:
        return None
    return Metadata(
        element_id=element_id,
        name=name,
        element_type=element_type,
        w=_int("w"),
        h=_int("h"),
    )


def derive_handler_name(name: str, handler_key: str) -> str:
    return "on" + re.sub(r"[^A-Za-z0-9]", "", name) + _HANDLER_SUFFIX[handler_key]


def handler_name(element: Element) -> str | None:
    shape = SHAPES_BY_TYPE.get(element.type)
    if shape is None or shape.handler_key is None:
        return None
    explicit = element.props.get(shape.handler_key)
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip()
    return derive_handler_name(element.name, shape.handler_key)


@dataclass(frozen=True)
class ArgSpec:
    key: str
    # "int" rounds half-up, "num" prints the number as is, "str" quotes.
    fmt: str


@dataclass(frozen=True)
class RecognizedCall:
    args: tuple[str, ...]
    handler: str | None = None
    targets: tuple[str, ...] = ()


@dataclass
class ExtractedFields:
    props: dict[str, Any] = field(default_factory=dict)
    w: float | None = None
    h: float | None = None
    handler: str | None = None


@lru_cache(maxsize=None)
def _opening_re(function: str, form: str) -> re.Pattern[str]:
    if form == "conditional":
        return re.compile(rf"^if\s+{function}\s*\(")
    if form == "slider":
        return re.compile(rf"^(?:local\s+)?({_IDENT})\s*,\s*({_IDENT})\s*=\s*{function}\s*\(")
    return re.compile(rf"^{function}\s*\(")


def _resolve_arg(spec: ArgSpec, token: str | None, bindings: Mapping[str, float]) -> Any:
    if token is None:
        return None
    if spec.fmt == "str":
        return parse_lua_string(token)
    return resolve_number(token, bindings)


@dataclass(frozen=True)
class StatementShape:
    element_type: str
    function: str
    # call | conditional | slider | comment
    form: str = "call"
    args: tuple[ArgSpec, ...] = ()
    literal_args: tuple[str, ...] = ()
    handler_key: str | None = None
    diameter_key: str | None = None

    def build(self, element: Element) -> list[str]:
        if self.form == "comment":
            return [DRAW_LATER_COMMENT]
        if self.form == "slider":
            return self._build_slider(element)
        rendered = list(self.literal_args) + [self._render(element, spec) for spec in self.args]
        call = f"{self.function}({', '.join(rendered)})"
        if self.form == "conditional":
            return [f"if {call} then {handler_name(element)}() end"]
        return [call]

    def _render(self, element: Element, spec: ArgSpec) -> str:
        if spec.key in ("w", "h"):
            value = getattr(element, spec.key)
        else:
            value = resolve_prop(element, spec.key)
        if spec.fmt == "str":
            return lua_string("" if value is None else str(value))
        if value is None:
            return "nil"
        if spec.fmt == "int":
            return str(round_half_up(value))
        return format_number(value)

    def _build_slider(self, element: Element) -> list[str]:
        var = resolve_prop(element, "var")
        low = format_number(resolve_prop(element, "min"))
        high = format_number(resolve_prop(element, "max"))
        return [
            f'{var}, __done = {self.function}("dot.png", "x", {var} or {low}, {low}, {high})',
            f"if __done then {handler_name(element)}({var}) end",
        ]

    def recognize(self, statement: str) -> RecognizedCall | None:
        text = statement.strip()
        if self.form == "comment":
            return RecognizedCall(args=()) if _DRAW_LATER_RE.match(text) else None
        match = _opening_re(self.function, self.form).match(text)
        if match is None:
            return None
        parsed = read_call_args(text, match.end() - 1)
        if parsed is None:
            return None
        args, rest = parsed
        handler = None
        if self.form == "conditional":
            tail = _THEN_CALL_RE.match(rest)
            handler = tail.group(1) if tail else None
        targets = match.groups() if self.form == "slider" else ()
        return RecognizedCall(args=tuple(args), handler=handler, targets=tuple(targets))

    def extract(self, call: RecognizedCall, bindings: Mapping[str, float]) -> ExtractedFields:
        if self.form == "slider":
            return self._extract_slider(call, bindings)
        fields = ExtractedFields(handler=call.handler)
        offset = len(self.literal_args)
        for index, spec in enumerate(self.args):
            position = offset + index
            token = call.args[position] if position < len(call.args) else None
            value = _resolve_arg(spec, token, bindings)
            if spec.key in ("w", "h"):
                if value is not None:
                    setattr(fields, spec.key, value)
                continue
            if value is None:
                prop = prop_field(self.element_type, spec.key)
                value = prop.default if prop is not None else None
            if value is not None:
                fields.props[spec.key] = value
        if self.diameter_key is not None:
            radius = fields.props.get(self.diameter_key)
            if radius is not None:
                fields.w = fields.h = radius * 2
        return fields

    def _extract_slider(self, call: RecognizedCall, bindings: Mapping[str, float]) -> ExtractedFields:
        fields = ExtractedFields(props={"var": call.targets[0]})
        for key, position in (("min", 3), ("max", 4)):
            token = call.args[position] if position < len(call.args) else None
            value = resolve_number(token, bindings)
            if value is None:
                value = prop_field(self.element_type, key).default
            fields.props[key] = value
        return fields

    def follow_up_handler(self, call: RecognizedCall, statement: str) -> str | None:
        """Handler called by the slider's ``if <done> then ...`` line, if this is one."""
        if self.form != "slider" or len(call.targets) < 2:
            return None
        pattern = rf"^if\s+{re.escape(call.targets[1])}\s+then\s+({_CALLEE})\s*\("
        match = re.match(pattern, statement.strip())
        return match.group(1) if match else None


def _ints(*keys: str) -> tuple[ArgSpec, ...]:
    return tuple(ArgSpec(key, "int") for key in keys)


def _nums(*keys: str) -> tuple[ArgSpec, ...]:
    return tuple(ArgSpec(key, "num") for key in keys)


SHAPES: tuple[StatementShape, ...] = (
    StatementShape("text", "UiText", args=(ArgSpec("text", "str"),)),
    StatementShape("rect", "UiRect", args=_ints("w", "h")),
    StatementShape("rectOutline", "UiRectOutline", args=_ints("w", "h", "thickness")),
    StatementShape("roundrect", "UiRoundedRect", args=_ints("w", "h", "radius")),
    StatementShape(
        "roundedRectOutline",
        "UiRoundedRectOutline",
        args=_ints("w", "h", "radius", "thickness"),
    ),
    StatementShape("circle", "UiCircle", args=_ints("radius"), diameter_key="radius"),
    StatementShape(
        "circleOutline",
        "UiCircleOutline",
        args=_ints("radius", "thickness"),
        diameter_key="radius",
    ),
    StatementShape("image", "UiImage", args=(ArgSpec("path", "str"),)),
    StatementShape(
        "imageBox",
        "UiImageBox",
        args=(ArgSpec("path", "str"),) + _ints("w", "h", "borderW", "borderH"),
    ),
    StatementShape(
        "button",
        "UiTextButton",
        form="conditional",
        args=(ArgSpec("text", "str"),) + _ints("w", "h"),
        handler_key="onPress",
    ),
    StatementShape(
        "imageButton",
        "UiImageButton",
        form="conditional",
        args=(ArgSpec("path", "str"),),
        handler_key="onPress",
    ),
    StatementShape(
        "blankButton",
        "UiBlankButton",
        form="conditional",
        args=_ints("w", "h"),
        handler_key="onPress",
    ),
    StatementShape("slider", "UiSlider", form="slider", handler_key="onChange"),
    StatementShape("mute", "UiMute", literal_args=("1",)),
    StatementShape("colorFilter", "UiColorFilter", args=_nums("r", "g", "b", "a")),
    StatementShape("color", "UiColor", args=_nums("r", "g", "b", "a")),
    StatementShape("disableInput", "UiDisableInput"),
    StatementShape("buttonHoverColor", "UiButtonHoverColor", args=_nums("r", "g", "b", "a")),
    StatementShape("setCursorState", "UiSetCursorState", args=_nums("state")),
    StatementShape("ignoreNavigation", "UiIgnoreNavigation"),
    StatementShape("font", "UiFont", args=(ArgSpec("path", "str"), ArgSpec("size", "num"))),
    StatementShape("align", "UiAlign", args=(ArgSpec("align", "str"),)),
    StatementShape("textOutline", "UiTextOutline", args=_nums("r", "g", "b", "a", "thickness")),
    StatementShape("wordWrap", "UiWordWrap", args=_nums("width")),
    StatementShape("textAlignment", "UiTextAlignment", args=(ArgSpec("mode", "str"),)),
    StatementShape("drawLater", "UiDrawLater", form="comment"),
)

SHAPES_BY_TYPE: dict[str, StatementShape] = {shape.element_type: shape for shape in SHAPES}


def match_statement(statement: str) -> tuple[StatementShape, RecognizedCall] | None:
    for shape in SHAPES:
        call = shape.recognize(statement)
        if call is not None:
            return shape, call
    return None
