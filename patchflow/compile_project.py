"""
compile_project.py — CLI for the patchflow compiler
===================================================
Flattens one patch of a project JSON file and writes the generated program.

Usage
-----
    patchflow-compile <project.json> --entry <patch path> [options]

Options
-------
    --entry     PATH        Patch to compile (required)
    --backend   {js,cpp}    Target backend (default: first of PATCHFLOW_BACKENDS)
    --liveness  MODE        none | debug | simulation (default: PATCHFLOW_LIVENESS)
    --global    NAME=VALUE  Constant spliced into templates as {{ NAME }}; repeatable
    --out       <dir>       Output directory (default: build/)
    --print                 Print the generated source to stdout instead of writing files
    --unit-json             Also write the transpilation unit as JSON next to the source
    --strict                Treat unknown node types as errors

Examples
--------
    patchflow-compile blink.json --entry @/main --backend cpp --liveness debug
    patchflow-compile blink.json --entry @/main --print --global USERNAME=alice
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from patchflow.compiler import load_project, transpile
from patchflow.compiler.errors import TransformError
from patchflow.compiler.liveness import Liveness
from patchflow.compiler.templates import BACKEND_REGISTRY
from patchflow.config import CompilerSettings

_EXTENSIONS = {"js": "js", "cpp": "cpp"}


def _build_parser(settings: CompilerSettings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="patchflow-compile",
        description="Flatten a patch of a project and emit program text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument("project_json", metavar="project.json", help="Path to the project JSON file.")
    p.add_argument("--entry", required=True, help="Path of the patch to compile, e.g. @/main.")
    p.add_argument(
        "--backend",
        choices=sorted(BACKEND_REGISTRY),
        default=settings.backends[0],
        help="Target backend (default: %(default)s).",
    )
    p.add_argument(
        "--liveness",
        choices=[m.value for m in Liveness],
        default=settings.liveness.value,
        help="Error-raiser analysis mode (default: %(default)s).",
    )
    p.add_argument(
        "--global",
        dest="globals",
        metavar="NAME=VALUE",
        action="append",
        default=[],
        help="Template constant; may be given several times.",
    )
    p.add_argument("--out", metavar="DIR", default="build", help="Output directory (default: build/).")
    p.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print generated source to stdout instead of writing a file.",
    )
    p.add_argument("--unit-json", action="store_true", help="Also write the transpilation unit as JSON.")
    p.add_argument(
        "--strict",
        action="store_true",
        default=settings.strict,
        help="Treat unknown node types as errors rather than warnings.",
    )
    return p


def _parse_globals(pairs: List[str], base: Dict[str, str]) -> Dict[str, str]:
    result = dict(base)
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"--global expects NAME=VALUE, got '{pair}'")
        result[name] = value
    return result


def _entry_to_filename(entry: str, backend: str) -> str:
    """Turn '@/blink-led' → 'blink_led.cpp'."""
    safe = entry.rsplit("/", 1)[-1].lower().replace("-", "_").replace(" ", "_") or "main"
    return f"{safe}.{_EXTENSIONS.get(backend, backend)}"


def main(argv: Optional[List[str]] = None) -> int:
    settings = CompilerSettings.from_env()
    settings.configure_logging()
    parser = _build_parser(settings)
    args = parser.parse_args(argv)

    json_path = Path(args.project_json)
    if not json_path.exists():
        print(f"[error] File not found: {json_path}", file=sys.stderr)
        return 1

    try:
        globals_ = _parse_globals(args.globals, settings.globals)
    except ValueError as exc:
        parser.error(str(exc))

    try:
        project = load_project(json_path)
        globals_.setdefault("PROJECT_NAME", project.name or json_path.stem)
        result = transpile(
            project,
            args.entry,
            backend=args.backend,
            mode=args.liveness,
            globals=globals_,
            strict=args.strict,
        )
    except TransformError as exc:
        print(f"[error] {exc.kind.value}: {exc.message}", file=sys.stderr)
        if exc.payload:
            print(f"[error] {json.dumps(exc.payload, sort_keys=True)}", file=sys.stderr)
        return 1

    unit = result.unit
    print(f"[patchflow-compile] entry   : {args.entry}", file=sys.stderr)
    print(f"[patchflow-compile] backend : {args.backend}", file=sys.stderr)
    print(f"[patchflow-compile] nodes   : {len(unit.topology)}", file=sys.stderr)

    if args.print_only:
        print(result.source, end="")
        return 0

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / _entry_to_filename(args.entry, args.backend)
    out_path.write_text(result.source, encoding="utf-8")
    print(f"[patchflow-compile] wrote   : {out_path}", file=sys.stderr)

    if args.unit_json:
        unit_path = out_path.with_suffix(".unit.json")
        unit_path.write_text(unit.to_json() + "\n", encoding="utf-8")
        print(f"[patchflow-compile] wrote   : {unit_path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
