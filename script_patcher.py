#!/usr/bin/env python3
"""Incremental script patching: rewrite only the blocks owned by scene elements."""

from __future__ import annotations

import re
from dataclasses import dataclass

from lua_codegen import INDENT, collect_handlers, emit_element_block, generate_script, handler_stub
from scene_model import Scene
from statement_table import is_block_close, is_block_open, line_statements, parse_metadata

_DRAW_DECL_RE = re.compile(r"^(\s*)function\s+draw\s*\(\s*\)")


@dataclass(frozen=True)
class MetadataBlock:
    element_id: str
    start: int
    # Index of the closing UiPop() line, inclusive.
    end: int
    indent: str


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def _block_end(lines: list[str], open_index: int) -> int | None:
    statements = line_statements(lines[open_index])
    if not statements or not is_block_open(statements[0]):
        return None
    depth = 0
    for index in range(open_index, len(lines)):
        for statement in line_statements(lines[index]):
            if is_block_open(statement):
                depth += 1
            elif is_block_close(statement):
                depth -= 1
                if depth == 0:
                    return index
    return None


def find_metadata_blocks(lines: list[str]) -> list[MetadataBlock]:
    """Metadata comments followed, past blank lines, by a balanced UiPush()..UiPop() region."""
    blocks: list[MetadataBlock] = []
    i = 0
    while i < len(lines) - 1:
        meta = parse_metadata(lines[i])
        end = None
        if meta is not None and meta.element_id:
            open_index = i + 1
            while open_index < len(lines) - 1 and not lines[open_index].strip():
                open_index += 1
            end = _block_end(lines, open_index)
        if end is None:
            i += 1
            continue
        blocks.append(
            MetadataBlock(
                element_id=meta.element_id,
                start=i,
                end=end,
                indent=_indent_of(lines[i]),
            )
        )
        i = end + 1
    return blocks


def find_insertion_point(lines: list[str]) -> tuple[int, str] | None:
    """Line index of the last UiPop() in draw()'s body, and the indent for new blocks."""
    decl_index = None
    decl_indent = ""
    for index, line in enumerate(lines):
        match = _DRAW_DECL_RE.match(line)
        if match:
            decl_index = index
            decl_indent = match.group(1)
            break
    if decl_index is None:
        return None

    body_end = len(lines)
    for index in range(decl_index + 1, len(lines)):
        if lines[index].strip() == "end" and _indent_of(lines[index]) == decl_indent:
            body_end = index
            break

    for index in range(body_end - 1, decl_index, -1):
        if any(is_block_close(s) for s in line_statements(lines[index])):
            return index, _indent_of(lines[index]) + INDENT
    return None


def _declares_function(lines: list[str], name: str) -> bool:
    escaped = re.escape(name)
    pattern = re.compile(
        rf"^\s*(?:local\s+)?(?:function\s+{escaped}\s*\(|{escaped}\s*=\s*function\b)"
    )
    return any(pattern.match(line) for line in lines)


def _append_lines(lines: list[str], new_lines: list[str]) -> None:
    # Keep a trailing newline as the last thing in the text.
    if lines and lines[-1] == "":
        lines[-1:-1] = new_lines
    else:
        lines.extend(new_lines)


def patch_script(previous_text: str, scene: Scene) -> str:
    newline = "\r\n" if "\r\n" in previous_text else "\n"
    lines = previous_text.split("\n")
    if newline == "\r\n":
        lines = [line[:-1] if line.endswith("\r") else line for line in lines]
    blocks = find_metadata_blocks(lines)
    if not blocks:
        return generate_script(scene).replace("\n", newline)

    out: list[str] = []
    placed: set[str] = set()
    cursor = 0
    for block in blocks:
        out.extend(lines[cursor : block.start])
        element = scene.elements.get(block.element_id)
        if element is not None and block.element_id not in placed:
            out.extend(emit_element_block(element, block.indent))
            placed.add(block.element_id)
        cursor = block.end + 1
    out.extend(lines[cursor:])

    missing = [el for el in scene.ordered_elements() if el.id not in placed]
    if missing:
        point = find_insertion_point(out)
        if point is None:
            _append_lines(out, [line for el in missing for line in emit_element_block(el, "")])
        else:
            index, indent = point
            out[index:index] = [line for el in missing for line in emit_element_block(el, indent)]

    stubs = [
        handler_stub(name) for name in collect_handlers(scene) if not _declares_function(out, name)
    ]
    if stubs:
        _append_lines(out, stubs)
    return newline.join(out)
