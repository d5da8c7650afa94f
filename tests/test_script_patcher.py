import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from lua_codegen import generate_script  # noqa: E402
from scene_model import Element, Scene  # noqa: E402
from script_patcher import (  # noqa: E402
    find_insertion_point,
    find_metadata_blocks,
    patch_script,
)


def _scene(*elements: Element) -> Scene:
    return Scene(
        root_order=[el.id for el in elements],
        elements={el.id: el for el in elements},
    )


def _rect(element_id: str, x: float = 0, y: float = 0) -> Element:
    return Element(id=element_id, type="rect", name=f"rect {element_id}", x=x, y=y, w=50, h=20)


class BlockDetectionTests(unittest.TestCase):
    def test_generated_script_has_one_block_per_element(self) -> None:
        lines = generate_script(_scene(_rect("a1"), _rect("b2"))).split("\n")
        blocks = find_metadata_blocks(lines)
        self.assertEqual([b.element_id for b in blocks], ["a1", "b2"])
        self.assertEqual(lines[blocks[0].end].strip(), "UiPop()")
        self.assertEqual(blocks[0].indent, "        ")

    def test_metadata_without_following_push_is_not_a_block(self) -> None:
        lines = [
            "--TDGUI id=a1 name=a type=rect w=1 h=1",
            "UiRect(1, 1)",
            "--TDGUI name=nameless type=rect",
            "UiPush()",
            "UiPop()",
        ]
        self.assertEqual(find_metadata_blocks(lines), [])

    def test_unbalanced_block_is_ignored(self) -> None:
        lines = [
            "--TDGUI id=a1 name=a type=rect w=1 h=1",
            "UiPush()",
            "    UiRect(1, 1)",
        ]
        self.assertEqual(find_metadata_blocks(lines), [])

    def test_insertion_point_is_last_pop_of_draw_body(self) -> None:
        lines = generate_script(_scene(_rect("a1"))).split("\n")
        index, indent = find_insertion_point(lines)
        self.assertEqual(lines[index], "    UiPop()")
        self.assertEqual(lines[index + 1], "end")
        self.assertEqual(indent, "        ")

    def test_no_draw_function_has_no_insertion_point(self) -> None:
        self.assertIsNone(find_insertion_point(["UiPush()", "UiPop()"]))


class PatchScriptTests(unittest.TestCase):
    def test_hand_edits_outside_blocks_survive(self) -> None:
        scene = _scene(_rect("a1", 10, 10), _rect("b2", 20, 20))
        lines = generate_script(scene).split("\n")
        anchor = lines.index("        --TDGUI id=b2 name=rect%20b2 type=rect w=50 h=20")
        lines.insert(anchor, "        -- keep me")
        lines.insert(2, "local speed = 3")
        edited = "\n".join(lines)

        scene.elements["a1"].x = 70
        patched = patch_script(edited, scene)

        self.assertIn("        -- keep me", patched)
        self.assertIn("local speed = 3", patched)
        self.assertIn("UiTranslate(70, 10)", patched)
        self.assertNotIn("UiTranslate(10, 10)", patched)
        self.assertEqual(patched.count("--TDGUI"), 2)

    def test_block_content_edits_are_replaced(self) -> None:
        scene = _scene(_rect("a1"))
        edited = generate_script(scene).replace("UiRect(50, 20)", "UiRect(50, 20) -- tweak")
        patched = patch_script(edited, scene)
        self.assertNotIn("-- tweak", patched)
        self.assertEqual(patched, generate_script(scene))

    def test_deleted_element_block_is_removed(self) -> None:
        scene = _scene(_rect("a1"), _rect("b2"))
        previous = generate_script(scene)
        del scene.elements["b2"]
        scene.root_order.remove("b2")

        patched = patch_script(previous, scene)
        self.assertNotIn("id=b2", patched)
        self.assertIn("id=a1", patched)
        self.assertEqual(patched, generate_script(scene))

    def test_new_element_is_inserted_before_final_pop(self) -> None:
        before = _scene(_rect("a1"), _rect("b2"))
        after = _scene(_rect("a1"), _rect("b2"), _rect("c3", 5, 5))
        self.assertEqual(patch_script(generate_script(before), after), generate_script(after))

    def test_patching_is_idempotent(self) -> None:
        scene = _scene(
            _rect("a1"),
            Element(id="b1", type="button", name="Go!", w=200, h=50, props={"text": "Go"}),
        )
        edited = generate_script(_scene(_rect("a1"))) + "-- trailing note\n"
        once = patch_script(edited, scene)
        twice = patch_script(once, scene)
        self.assertEqual(once, twice)

    def test_duplicate_and_orphan_blocks_are_dropped(self) -> None:
        scene = _scene(_rect("a1"))
        lines = generate_script(scene).split("\n")
        start = lines.index("        --TDGUI id=a1 name=rect%20a1 type=rect w=50 h=20")
        block = lines[start : start + 5]
        orphan = [line.replace("id=a1", "id=zz") for line in block]
        lines[start + 5 : start + 5] = block + orphan
        patched = patch_script("\n".join(lines), scene)
        self.assertEqual(patched.count("id=a1"), 1)
        self.assertNotIn("id=zz", patched)

    def test_missing_draw_function_appends_at_end(self) -> None:
        previous = "\n".join(
            [
                "--TDGUI id=a1 name=a type=rect w=50 h=20",
                "UiPush()",
                "    UiTranslate(0, 0)",
                "    UiRect(50, 20)",
                "UiPop()",
                "",
            ]
        )
        patched = patch_script(previous, _scene(_rect("a1"), _rect("b2", 9, 9)))
        self.assertLess(patched.index("id=a1"), patched.index("id=b2"))
        self.assertTrue(patched.endswith("UiPop()\n"))
        self.assertIn("\nUiPush()\n    UiTranslate(9, 9)\n", patched)

    def test_blank_line_before_push_still_owns_block(self) -> None:
        scene = _scene(_rect("a1"), _rect("b2"))
        lines = generate_script(scene).split("\n")
        meta_index = lines.index("        --TDGUI id=b2 name=rect%20b2 type=rect w=50 h=20")
        lines.insert(meta_index + 1, "")
        edited = "\n".join(lines)

        blocks = find_metadata_blocks(edited.split("\n"))
        self.assertEqual([b.element_id for b in blocks], ["a1", "b2"])
        patched = patch_script(edited, scene)
        self.assertEqual(patched.count("id=b2"), 1)
        self.assertEqual(patched, generate_script(scene))

    def test_block_keeps_its_original_indent(self) -> None:
        meta = "      --TDGUI id=a1 name=rect%20a1 type=rect w=50 h=20"
        previous = "\n".join(
            [
                "function draw()",
                "  UiPush()",
                "    if showPanel then",
                meta,
                "      UiPush()",
                "        UiTranslate(0, 0)",
                "        UiRect(50, 20)",
                "      UiPop()",
                "    end",
                "  UiPop()",
                "end",
                "",
            ]
        )
        lines = patch_script(previous, _scene(_rect("a1", 7, 0))).split("\n")
        start = lines.index(meta)
        self.assertEqual(
            lines[start : start + 6],
            [
                meta,
                "      UiPush()",
                "          UiTranslate(7, 0)",
                "          UiRect(50, 20)",
                "      UiPop()",
                "    end",
            ],
        )
        self.assertEqual(lines[:3], ["function draw()", "  UiPush()", "    if showPanel then"])

    def test_crlf_line_endings_are_kept(self) -> None:
        previous = generate_script(_scene(_rect("a1"))).replace("\n", "\r\n")
        scene = _scene(_rect("a1"), _rect("b2"))
        patched = patch_script(previous, scene)
        self.assertEqual(patched.count("\n"), patched.count("\r\n"))
        self.assertEqual(patched, generate_script(scene).replace("\n", "\r\n"))

        fallback = patch_script("-- code will appear here\r\n", scene)
        self.assertEqual(fallback, generate_script(scene).replace("\n", "\r\n"))

    def test_unmarked_buffer_is_fully_regenerated(self) -> None:
        scene = _scene(_rect("a1"))
        self.assertEqual(
            patch_script("-- code will appear here", scene), generate_script(scene)
        )

    def test_missing_stubs_are_appended_and_existing_kept(self) -> None:
        first = _scene(
            Element(id="b1", type="button", name="Go!", w=200, h=50, props={"text": "Go"})
        )
        previous = generate_script(first).replace(
            "function onGoPress() end", "function onGoPress()\n    state.started = true\nend"
        )
        second = _scene(
            first.elements["b1"],
            Element(id="b2", type="blankButton", name="quit", w=80, h=40),
        )
        patched = patch_script(previous, second)
        self.assertIn("    state.started = true", patched)
        self.assertEqual(patched.count("function onGoPress()"), 1)
        self.assertTrue(patched.endswith("function onquitPress() end\n"))


if __name__ == "__main__":
    unittest.main()
