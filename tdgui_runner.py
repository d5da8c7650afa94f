#!/usr/bin/env python3
"""Command-line runner: generate, patch and ingest Teardown UI scripts over files."""

from __future__ import annotations

import argparse
import sys
from dataclasses import asdict
from pathlib import Path

from editor_config import DEFAULT_CONFIG_PATH, EditorConfig, EditorConfigError, load_editor_config
from layout_session import LayoutSession
from lua_codegen import generate_script
from runner_common import now_utc_iso, read_json, read_text, write_json, write_text
from scene_model import Scene, SceneDocumentError
from scene_validator import SceneCheckResult, validate_scene_document, validate_scene_file
from script_patcher import patch_script


def _report_failure(label: str, result: SceneCheckResult) -> None:
    print(f"[tdgui-runner] {label} failed validation:", file=sys.stderr)
    for issue in result.errors:
        print(f"[tdgui-runner]   {issue.path}: {issue.message}", file=sys.stderr)


def _load_scene(scene_path: Path) -> Scene | None:
    result = validate_scene_file(scene_path)
    if result.status != "PASS":
        _report_failure(f"scene {scene_path}", result)
        return None
    return Scene.from_document(read_json(scene_path))


def run_generate(args: argparse.Namespace, config: EditorConfig) -> int:
    scene = _load_scene(Path(args.scene).resolve())
    if scene is None:
        return 1
    out_path = Path(args.out).resolve()
    write_text(out_path, generate_script(scene))
    print(f"[tdgui-runner] generated {len(scene.root_order)} element block(s): {out_path}")
    return 0


def run_regenerate(args: argparse.Namespace, config: EditorConfig) -> int:
    scene = _load_scene(Path(args.scene).resolve())
    if scene is None:
        return 1
    previous = read_text(Path(args.script).resolve())
    out_path = Path(args.out).resolve()
    write_text(out_path, patch_script(previous, scene))
    print(f"[tdgui-runner] patched script: {out_path}")
    return 0


def run_ingest(args: argparse.Namespace, config: EditorConfig) -> int:
    base_scene = Scene()
    if args.scene:
        loaded = _load_scene(Path(args.scene).resolve())
        if loaded is None:
            return 1
        base_scene = loaded

    text = read_text(Path(args.script).resolve())
    session = LayoutSession(config=config, scene=base_scene)
    result = session.ingest(text, regenerate=bool(args.regenerate_out))

    document = session.scene.to_document()
    check = validate_scene_document(document, scene_path="(ingested)")
    if check.status != "PASS":
        _report_failure("ingested scene", check)
        return 1

    out_path = Path(args.out).resolve()
    write_json(out_path, document)

    if args.decisions_out:
        write_json(
            Path(args.decisions_out).resolve(),
            {
                "schema_version": "1.0.0",
                "created_at": now_utc_iso(),
                "script_path": str(Path(args.script).resolve()),
                "scene_changed": bool(result.decisions),
                "decisions": [asdict(d) for d in result.decisions],
            },
        )
    if args.regenerate_out:
        write_text(Path(args.regenerate_out).resolve(), session.code)

    if not result.decisions:
        print("[tdgui-runner] no recognizable statements; scene left unchanged")
    print(f"[tdgui-runner] ingested {len(session.scene.root_order)} element(s): {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keep a Teardown UI scene document and its Lua script in sync."
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to editor.yaml",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Write the full script for a scene.")
    gen.add_argument("--scene", required=True, help="Path to scene JSON")
    gen.add_argument("--out", required=True, help="Output script path")
    gen.set_defaults(handler=run_generate)

    regen = sub.add_parser("regenerate", help="Patch an existing script for a scene.")
    regen.add_argument("--scene", required=True, help="Path to scene JSON")
    regen.add_argument("--script", required=True, help="Previous script path")
    regen.add_argument("--out", required=True, help="Output script path")
    regen.set_defaults(handler=run_regenerate)

    ingest = sub.add_parser("ingest", help="Parse a script back into a scene.")
    ingest.add_argument("--script", required=True, help="Script to parse")
    ingest.add_argument("--scene", help="Existing scene JSON to reconcile against")
    ingest.add_argument("--out", required=True, help="Output scene JSON path")
    ingest.add_argument("--decisions-out", help="Optional path for merge decisions JSON")
    ingest.add_argument(
        "--regenerate-out",
        help="Optional path for the script regenerated after ingest",
    )
    ingest.set_defaults(handler=run_ingest)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_editor_config(Path(args.config))
        return args.handler(args, config)
    except (EditorConfigError, SceneDocumentError) as err:
        print(f"[tdgui-runner] config/document error: {err}", file=sys.stderr)
        return 2
    except FileNotFoundError as err:
        print(f"[tdgui-runner] file error: {err}", file=sys.stderr)
        return 2
    except Exception as err:  # pragma: no cover
        print(f"[tdgui-runner] unexpected error: {err}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
