#!/usr/bin/env python3
"""Layout session: one scene plus its script buffer, and the operations collaborators call.

Mutations never regenerate the script on their own. Callers either follow a
mutation with ``regenerate()`` or use ``apply()``, which runs a mutation and
the regeneration as one step.
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Iterable

from editor_config import EditorConfig
from merge_reconciler import MergeDecision, ReconcileResult, reconcile
from scene_model import Element, Scene, allocate_element_id, coerce_prop_value, new_element
from script_parser import parse_script
from script_patcher import patch_script

MUTATIONS = frozenset(
    {
        "create_element",
        "delete_element",
        "delete_selected",
        "set_selection",
        "set_position",
        "move_by",
        "resize",
        "set_property",
        "rename",
    }
)


class LayoutSession:
    def __init__(
        self,
        *,
        config: EditorConfig | None = None,
        scene: Scene | None = None,
        code: str | None = None,
        allocate_id: Callable[[Collection[str]], str] | None = None,
    ) -> None:
        self.config = config or EditorConfig()
        self._scene = scene.copy() if scene is not None else Scene()
        self._code = code if code is not None else self.config.placeholder_code
        self._allocate_id = allocate_id or self._default_allocate_id
        self._last_decisions: list[MergeDecision] = []

    def _default_allocate_id(self, existing: Collection[str]) -> str:
        return allocate_element_id(existing, self.config.id_length)

    @property
    def scene(self) -> Scene:
        return self._scene

    @property
    def code(self) -> str:
        return self._code

    @property
    def last_decisions(self) -> list[MergeDecision]:
        return list(self._last_decisions)

    def _element(self, element_id: str) -> Element | None:
        return self._scene.elements.get(element_id)

    def create_element(self, element_type: str) -> str:
        element_id = self._allocate_id(self._scene.elements.keys())
        element = new_element(
            element_type,
            element_id=element_id,
            spawn=(self.config.spawn_x, self.config.spawn_y),
        )
        self._scene.elements[element.id] = element
        self._scene.root_order.append(element.id)
        return element.id

    def delete_element(self, element_id: str) -> bool:
        if element_id not in self._scene.elements:
            return False
        del self._scene.elements[element_id]
        self._scene.root_order = [eid for eid in self._scene.root_order if eid != element_id]
        self._scene.selection = [eid for eid in self._scene.selection if eid != element_id]
        return True

    def delete_selected(self) -> bool:
        if not self._scene.selection:
            return False
        for element_id in list(self._scene.selection):
            self._scene.elements.pop(element_id, None)
        self._scene.root_order = [
            eid for eid in self._scene.root_order if eid in self._scene.elements
        ]
        self._scene.selection = []
        return True

    def set_selection(self, element_ids: Iterable[str]) -> list[str]:
        selection: list[str] = []
        for element_id in element_ids:
            if element_id in self._scene.elements and element_id not in selection:
                selection.append(element_id)
        self._scene.selection = selection
        return list(selection)

    def set_position(self, element_id: str, x: float, y: float) -> bool:
        element = self._element(element_id)
        if element is None:
            return False
        element.x = x
        element.y = y
        return True

    def move_by(self, element_id: str, dx: float, dy: float) -> bool:
        element = self._element(element_id)
        if element is None:
            return False
        element.x += dx
        element.y += dy
        return True

    def resize(self, element_id: str, w: float, h: float) -> bool:
        element = self._element(element_id)
        if element is None:
            return False
        element.w = max(self.config.min_extent, w)
        element.h = max(self.config.min_extent, h)
        return True

    def set_property(self, element_id: str, key: str, value: Any) -> bool:
        element = self._element(element_id)
        if element is None:
            return False
        accepted, coerced = coerce_prop_value(element.type, key, value)
        if not accepted:
            return False
        if coerced is None:
            element.props.pop(key, None)
        else:
            element.props[key] = coerced
        return True

    def rename(self, element_id: str, name: str) -> bool:
        element = self._element(element_id)
        if element is None or not name.strip():
            return False
        element.name = name.strip()
        return True

    def regenerate(self) -> str:
        self._code = patch_script(self._code, self._scene)
        return self._code

    def ingest(self, text: str, *, regenerate: bool = False) -> ReconcileResult:
        result = reconcile(parse_script(text), self._scene, allocate_id=self._allocate_id)
        self._scene = result.scene
        self._last_decisions = result.decisions
        self._code = text
        if regenerate:
            self.regenerate()
        return result

    def apply(self, operation: str, *args: Any, **kwargs: Any) -> tuple[Any, str]:
        """Run one mutation, then regenerate; returns (mutation result, script text)."""
        if operation not in MUTATIONS:
            raise ValueError(f"unknown session operation: {operation}")
        result = getattr(self, operation)(*args, **kwargs)
        return result, self.regenerate()
