#!/usr/bin/env python3
"""Tolerant single-pass reader that turns a Lua UI script into element candidates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from scene_model import default_size
from statement_table import (
    Metadata,
    RecognizedCall,
    StatementShape,
    derive_handler_name,
    is_block_close,
    is_block_open,
    line_statements,
    match_statement,
    parse_metadata,
    parse_number,
    read_call_args,
    resolve_number,
)

_BINDING_RE = re.compile(
    r"^(?:local\s+)?([A-Za-z_]\w*)\s*=\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)$"
)
_TRANSLATE_RE = re.compile(r"^UiTranslate\s*\(")


@dataclass
class ParsedCandidate:
    element_type: str
    x: float
    y: float
    w: float
    h: float
    props: dict[str, Any] = field(default_factory=dict)
    meta_id: str | None = None
    meta_name: str | None = None
    line_no: int = 0


@dataclass
class _Context:
    x: float = 0
    y: float = 0
    # Metadata waiting for the next UiPush() at this depth.
    pending: Metadata | None = None
    # Metadata owned by this block, given to its first recognized statement.
    carried: Metadata | None = None
    # Last slider candidate, so its "if done then handler()" line can be absorbed.
    last: tuple[ParsedCandidate, StatementShape, RecognizedCall] | None = None


def collect_bindings(lines: list[str]) -> dict[str, int | float]:
    """Scalar ``name = number`` assignments anywhere in the text; last one wins."""
    bindings: dict[str, int | float] = {}
    for line in lines:
        for statement in line_statements(line):
            match = _BINDING_RE.match(statement)
            if match:
                value = parse_number(match.group(2))
                if value is not None:
                    bindings[match.group(1)] = value
    return bindings


def _store_handler(candidate: ParsedCandidate, shape: StatementShape, handler: str) -> None:
    # A handler equal to the name-derived one stays implicit.
    if candidate.meta_name is not None and handler == derive_handler_name(
        candidate.meta_name, shape.handler_key
    ):
        return
    candidate.props[shape.handler_key] = handler


def _apply_translate(statement: str, context: _Context, bindings: dict[str, int | float]) -> bool:
    match = _TRANSLATE_RE.match(statement)
    if match is None:
        return False
    parsed = read_call_args(statement, match.end() - 1)
    if parsed is not None and len(parsed[0]) >= 2:
        dx = resolve_number(parsed[0][0], bindings)
        dy = resolve_number(parsed[0][1], bindings)
        if dx is not None and dy is not None:
            context.x += dx
            context.y += dy
    return True


def _build_candidate(
    shape: StatementShape,
    call: RecognizedCall,
    context: _Context,
    bindings: dict[str, int | float],
    line_no: int,
) -> ParsedCandidate:
    fields = shape.extract(call, bindings)
    w, h = default_size(shape.element_type)
    if fields.w is not None:
        w = fields.w
    if fields.h is not None:
        h = fields.h
    meta = context.carried
    if meta is not None:
        if meta.w is not None:
            w = meta.w
        if meta.h is not None:
            h = meta.h
    candidate = ParsedCandidate(
        element_type=shape.element_type,
        x=context.x,
        y=context.y,
        w=w,
        h=h,
        props=fields.props,
        meta_id=meta.element_id if meta is not None else None,
        meta_name=meta.name if meta is not None else None,
        line_no=line_no,
    )
    if fields.handler and shape.handler_key is not None:
        _store_handler(candidate, shape, fields.handler)
    return candidate


def parse_script(text: str) -> list[ParsedCandidate]:
    lines = text.split("\n")
    bindings = collect_bindings(lines)
    stack: list[_Context] = [_Context()]
    candidates: list[ParsedCandidate] = []

    for line_no, raw in enumerate(lines, start=1):
        stripped = raw.strip()
        if stripped.startswith("--"):
            meta = parse_metadata(stripped)
            if meta is not None:
                stack[-1].pending = meta
                continue
            # Only comment-shaped statements (drawLater) are read from comments.
            if match_statement(stripped) is None:
                continue
            statements = [stripped]
        else:
            statements = line_statements(raw)

        for statement in statements:
            context = stack[-1]
            if is_block_open(statement):
                stack.append(_Context(x=context.x, y=context.y, carried=context.pending))
                context.pending = None
                context.last = None
                continue
            if is_block_close(statement):
                if len(stack) > 1:
                    stack.pop()
                continue
            if _apply_translate(statement, context, bindings):
                context.last = None
                continue
            if len(stack) < 2:
                continue

            if context.last is not None:
                previous, previous_shape, previous_call = context.last
                context.last = None
                handler = previous_shape.follow_up_handler(previous_call, statement)
                if handler is not None:
                    _store_handler(previous, previous_shape, handler)
                    continue

            matched = match_statement(statement)
            if matched is None:
                continue
            shape, call = matched
            candidate = _build_candidate(shape, call, context, bindings, line_no)
            candidates.append(candidate)
            context.carried = None
            if shape.form == "slider":
                context.last = (candidate, shape, call)

    return candidates
