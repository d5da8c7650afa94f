import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from runner_common import read_json  # noqa: E402
from scene_validator import validate_scene_document, validate_scene_file  # noqa: E402

SAMPLE_SCENE = ROOT / "examples" / "menu_scene.sample.json"


class SceneValidatorTests(unittest.TestCase):
    def test_sample_scene_passes(self) -> None:
        result = validate_scene_file(SAMPLE_SCENE)
        self.assertEqual(result.status, "PASS")
        self.assertEqual(result.error_count, 0)

    def test_schema_failure_is_reported_with_path(self) -> None:
        document = read_json(SAMPLE_SCENE)
        document["elements"]["a1b2c3"]["type"] = "sprite"
        result = validate_scene_document(document)
        self.assertEqual(result.status, "FAIL")
        self.assertEqual(result.errors[0].path, "$.elements.a1b2c3.type")
        self.assertEqual(result.errors[0].validator, "enum")

    def test_root_order_must_cover_elements(self) -> None:
        document = read_json(SAMPLE_SCENE)
        document["root_order"].pop()
        result = validate_scene_document(document)
        self.assertEqual(result.status, "FAIL")
        self.assertEqual(result.errors[0].validator, "scene_invariant")
        self.assertEqual(result.errors[0].path, "$.root_order")

    def test_prop_outside_type_schema_fails(self) -> None:
        document = read_json(SAMPLE_SCENE)
        document["elements"]["a1b2c3"]["props"]["radius"] = 4
        result = validate_scene_document(document)
        self.assertEqual(result.status, "FAIL")
        self.assertEqual(result.errors[0].validator, "prop_schema")

    def test_selection_must_reference_elements(self) -> None:
        document = read_json(SAMPLE_SCENE)
        document["selection"] = ["missing"]
        result = validate_scene_document(document)
        self.assertEqual(result.errors[0].path, "$.selection[0]")

    def test_missing_file_fails_without_raising(self) -> None:
        result = validate_scene_file(ROOT / "examples" / "does_not_exist.json")
        self.assertEqual(result.status, "FAIL")
        self.assertEqual(result.errors[0].validator, "file_exists")

    def test_cli_exit_codes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmpdir = Path(tmp)
            bad_scene = tmpdir / "bad.json"
            bad_scene.write_text(json.dumps({"schema_version": "1.0.0"}), encoding="utf-8")
            report_path = tmpdir / "reports" / "report.json"

            proc = subprocess.run(
                [
                    sys.executable,
                    str(ROOT / "scene_validator.py"),
                    "--scene",
                    str(bad_scene),
                    "--report-out",
                    str(report_path),
                ],
                capture_output=True,
                text=True,
                check=False,
            )
            self.assertEqual(proc.returncode, 1)
            report = json.loads(report_path.read_text(encoding="utf-8"))
            self.assertEqual(report["overall_status"], "FAIL")

            proc = subprocess.run(
                [sys.executable, str(ROOT / "scene_validator.py"), "--scene", str(SAMPLE_SCENE)],
                capture_output=True,
                text=True,
                check=False,
            )
            self.assertEqual(proc.returncode, 0)

            proc = subprocess.run(
                [
                    sys.executable,
                    str(ROOT / "scene_validator.py"),
                    "--scene",
                    str(SAMPLE_SCENE),
                    "--schema",
                    str(tmpdir / "missing.schema.json"),
                ],
                capture_output=True,
                text=True,
                check=False,
            )
            self.assertEqual(proc.returncode, 2)
            self.assertIn("[scene-validator]", proc.stderr)


if __name__ == "__main__":
    unittest.main()
