#!/usr/bin/env python3
"""Scene document validation: JSON Schema shape plus scene invariants."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from scene_model import prop_field

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "scene.schema.json"


@dataclass
class ValidationIssue:
    path: str
    message: str
    validator: str


@dataclass
class SceneCheckResult:
    scene_path: str
    schema_path: str
    status: str
    error_count: int
    errors: list[ValidationIssue]


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _format_error_path(error_path: list[Any]) -> str:
    if not error_path:
        return "$"
    parts = ["$"]
    for part in error_path:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        else:
            parts.append(f".{part}")
    return "".join(parts)


def _check_invariants(document: dict[str, Any]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    elements = document.get("elements", {})
    root_order = document.get("root_order", [])

    for key, element in elements.items():
        if element.get("id") != key:
            issues.append(
                ValidationIssue(
                    path=f"$.elements.{key}.id",
                    message=f"element id {element.get('id')!r} does not match its key",
                    validator="scene_invariant",
                )
            )
        for prop_key in element.get("props", {}):
            if prop_field(element.get("type", ""), prop_key) is None:
                issues.append(
                    ValidationIssue(
                        path=f"$.elements.{key}.props.{prop_key}",
                        message=f"prop {prop_key!r} is not defined for type {element.get('type')!r}",
                        validator="prop_schema",
                    )
                )

    if sorted(root_order) != sorted(elements):
        issues.append(
            ValidationIssue(
                path="$.root_order",
                message="root_order must be a permutation of element ids",
                validator="scene_invariant",
            )
        )

    for idx, element_id in enumerate(document.get("selection", [])):
        if element_id not in elements:
            issues.append(
                ValidationIssue(
                    path=f"$.selection[{idx}]",
                    message=f"selected id {element_id!r} is not an element",
                    validator="scene_invariant",
                )
            )
    return issues


def validate_scene_document(
    document: Any,
    *,
    scene_path: str = "(memory)",
    schema_path: Path = DEFAULT_SCHEMA_PATH,
) -> SceneCheckResult:
    schema = _read_json(schema_path)
    validator = Draft202012Validator(schema)
    issues: list[ValidationIssue] = []
    schema_errors = sorted(validator.iter_errors(document), key=lambda e: list(e.path))
    for schema_err in schema_errors:
        issues.append(
            ValidationIssue(
                path=_format_error_path(list(schema_err.path)),
                message=schema_err.message,
                validator=schema_err.validator,
            )
        )

    # Invariants assume the shape is right.
    if not issues:
        issues.extend(_check_invariants(document))

    status = "PASS" if not issues else "FAIL"
    return SceneCheckResult(
        scene_path=scene_path,
        schema_path=str(schema_path),
        status=status,
        error_count=len(issues),
        errors=issues,
    )


def validate_scene_file(
    scene_path: Path,
    *,
    schema_path: Path = DEFAULT_SCHEMA_PATH,
) -> SceneCheckResult:
    def _fail(message: str, validator: str) -> SceneCheckResult:
        issue = ValidationIssue(path="$", message=message, validator=validator)
        return SceneCheckResult(
            scene_path=str(scene_path),
            schema_path=str(schema_path),
            status="FAIL",
            error_count=1,
            errors=[issue],
        )

    if not scene_path.exists():
        return _fail(f"scene file not found: {scene_path}", "file_exists")
    try:
        document = _read_json(scene_path)
    except json.JSONDecodeError as err:
        return _fail(f"invalid JSON scene: {err}", "json_parse")
    return validate_scene_document(
        document,
        scene_path=str(scene_path),
        schema_path=schema_path,
    )


def build_report(result: SceneCheckResult) -> dict[str, Any]:
    return {
        "schema_version": "1.0.0",
        "validated_at": datetime.now(timezone.utc).isoformat(),
        "overall_status": result.status,
        **{k: v for k, v in asdict(result).items() if k not in {"status", "errors"}},
        "errors": [asdict(e) for e in result.errors],
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate a layout scene document against its JSON Schema."
    )
    parser.add_argument("--scene", required=True, help="Path to scene JSON.")
    parser.add_argument(
        "--schema",
        default=str(DEFAULT_SCHEMA_PATH),
        help="Path to scene.schema.json",
    )
    parser.add_argument(
        "--report-out",
        help="Optional path to write report JSON.",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Pretty-print JSON output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        result = validate_scene_file(Path(args.scene), schema_path=Path(args.schema))
    except FileNotFoundError as err:
        print(f"[scene-validator] file error: {err}", file=sys.stderr)
        return 2
    except json.JSONDecodeError as err:
        print(f"[scene-validator] invalid schema JSON: {err}", file=sys.stderr)
        return 2
    except Exception as err:  # pragma: no cover
        print(f"[scene-validator] unexpected error: {err}", file=sys.stderr)
        return 2

    report = build_report(result)
    output = json.dumps(report, indent=2 if args.pretty else None, ensure_ascii=True)
    print(output)

    if args.report_out:
        report_path = Path(args.report_out)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=True) + "\n",
            encoding="utf-8",
        )

    return 0 if report["overall_status"] == "PASS" else 1


if __name__ == "__main__":
    raise SystemExit(main())
