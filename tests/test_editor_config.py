import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from editor_config import EditorConfig, EditorConfigError, load_editor_config  # noqa: E402


def _write(tmpdir: Path, text: str) -> Path:
    path = tmpdir / "editor.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class EditorConfigTests(unittest.TestCase):
    def test_shipped_config_matches_defaults(self) -> None:
        self.assertEqual(load_editor_config(), EditorConfig())

    def test_partial_config_keeps_other_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = _write(Path(tmp), "geometry:\n  spawn:\n    x: 12\nids:\n  length: 8\n")
            config = load_editor_config(path)
        self.assertEqual((config.spawn_x, config.spawn_y), (12, 100))
        self.assertEqual(config.id_length, 8)
        self.assertEqual(config.min_extent, 4)

    def test_invalid_values_raise(self) -> None:
        cases = [
            "- just\n- a list\n",
            "geometry: 3\n",
            "geometry:\n  min_extent: 0\n",
            "geometry:\n  min_extent: wide\n",
            "ids:\n  length: 2\n",
            "script:\n  placeholder_code: 5\n",
        ]
        with tempfile.TemporaryDirectory() as tmp:
            for text in cases:
                path = _write(Path(tmp), text)
                with self.assertRaises(EditorConfigError, msg=text):
                    load_editor_config(path)


if __name__ == "__main__":
    unittest.main()
