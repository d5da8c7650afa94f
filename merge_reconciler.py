#!/usr/bin/env python3
"""Identity-preserving merge of parsed candidates into an existing scene."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Collection

from scene_model import Element, Scene, allocate_element_id, prop_field
from script_parser import ParsedCandidate

IdAllocator = Callable[[Collection[str]], str]


@dataclass
class MergeDecision:
    element_id: str
    action: str
    reason: str
    candidate_index: int | None = None
    # Script line of the statement the candidate came from.
    line_no: int | None = None


@dataclass
class ReconcileResult:
    scene: Scene
    decisions: list[MergeDecision] = field(default_factory=list)


def merge_props(
    existing: dict[str, Any], incoming: dict[str, Any], element_type: str
) -> dict[str, Any]:
    # Incoming keys win; prior keys survive only if the (new) type still knows them.
    out = {
        key: value
        for key, value in existing.items()
        if prop_field(element_type, key) is not None
    }
    out.update(incoming)
    return out


def _match_existing(
    candidate: ParsedCandidate, scene: Scene, claimed: set[str]
) -> tuple[Element | None, str]:
    if candidate.meta_id and candidate.meta_id in scene.elements:
        if candidate.meta_id not in claimed:
            return scene.elements[candidate.meta_id], "ID_MATCH"
    if candidate.meta_name is not None:
        for element in scene.ordered_elements():
            if element.name == candidate.meta_name and element.id not in claimed:
                return element, "NAME_MATCH"
    return None, ""


def reconcile(
    candidates: list[ParsedCandidate],
    scene: Scene,
    *,
    allocate_id: IdAllocator = allocate_element_id,
) -> ReconcileResult:
    if not candidates:
        return ReconcileResult(scene=scene)

    elements: dict[str, Element] = {}
    root_order: list[str] = []
    decisions: list[MergeDecision] = []
    claimed: set[str] = set()

    for index, candidate in enumerate(candidates):
        existing, reason = _match_existing(candidate, scene, claimed)
        if existing is not None:
            claimed.add(existing.id)
            element = Element(
                id=existing.id,
                type=candidate.element_type,
                name=candidate.meta_name or existing.name,
                x=candidate.x,
                y=candidate.y,
                w=candidate.w,
                h=candidate.h,
                props=merge_props(existing.props, candidate.props, candidate.element_type),
            )
            action = "UPDATE_EXISTING"
        else:
            in_use = set(scene.elements) | set(elements)
            if candidate.meta_id and candidate.meta_id not in in_use:
                element_id = candidate.meta_id
                reason = "METADATA_ID"
            else:
                element_id = allocate_id(in_use)
                reason = "FRESH_ID"
            element = Element(
                id=element_id,
                type=candidate.element_type,
                name=candidate.meta_name or f"{candidate.element_type}_{element_id}",
                x=candidate.x,
                y=candidate.y,
                w=candidate.w,
                h=candidate.h,
                props=dict(candidate.props),
            )
            action = "ADD_NEW"
        elements[element.id] = element
        root_order.append(element.id)
        decisions.append(
            MergeDecision(
                element_id=element.id,
                action=action,
                reason=reason,
                candidate_index=index,
                line_no=candidate.line_no,
            )
        )

    # Elements the script no longer mentions are kept, after all parsed ones.
    for element in scene.ordered_elements():
        if element.id in elements:
            continue
        elements[element.id] = Element(
            id=element.id,
            type=element.type,
            name=element.name,
            x=element.x,
            y=element.y,
            w=element.w,
            h=element.h,
            props=dict(element.props),
        )
        root_order.append(element.id)
        decisions.append(
            MergeDecision(element_id=element.id, action="KEEP_EXISTING", reason="NOT_IN_SCRIPT")
        )

    return ReconcileResult(
        scene=Scene(root_order=root_order, elements=elements, selection=[]),
        decisions=decisions,
    )
