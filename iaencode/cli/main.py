#!/usr/bin/env python
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from iaencode.config import load_config, normalize_params
from iaencode.errors import ConversionError
from iaencode.logs import configure_logging
from iaencode.encoding.forward import convert_obj
from iaencode.encoding.iaio import load_ia
from iaencode.encoding.metrics import format_summary, summarize, total
from iaencode.io import save_mesh


def _dump_path(desc: str, path: str | os.PathLike[str]) -> None:
    print(f"{desc:<20} \"{path}\"")


def _add_convert_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("obj", help="Input OBJ file path.")
    sub.add_argument("--out-dir", default=None, help="Export directory (default: current directory).")
    sub.add_argument("--data-dir", default=None, help="Artifact subdirectory name (default: OBJ stem).")
    sub.add_argument("--config", default=None, help="JSON or TOML file with conversion parameters.")
    sub.add_argument("--mass", type=float, default=None, help="Mass written to a descriptor that has none.")
    sub.add_argument("--no-descriptor", dest="write_descriptor", action="store_false", help="Skip the .tmdl descriptor merge.")
    sub.set_defaults(write_descriptor=None)


def _add_inspect_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("artifact", help="Input .ia8/.ia3 file.")


def _add_export_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("artifact", help="Input .ia8/.ia3 file.")
    sub.add_argument("out", help="Output mesh path; format follows the suffix (.stl, .obj, .ply).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iaencode", description="OBJ to indexed-array (IA) converter")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    parser.add_argument("--log-file", default=None, help="Write log records to this file instead of stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser("convert", help="Convert OBJ into IA artifacts and a descriptor.")
    _add_convert_arguments(convert_parser)

    inspect_parser = subparsers.add_parser("inspect", help="Print the header and counts of an IA artifact.")
    _add_inspect_arguments(inspect_parser)

    export_parser = subparsers.add_parser("export", help="Write the triangles of an IA artifact as a mesh file.")
    _add_export_arguments(export_parser)

    return parser


def _collect_params(args: argparse.Namespace) -> dict:
    params = load_config(Path(args.config)) if args.config else {}
    overrides = {
        "out_dir": args.out_dir,
        "data_dir": args.data_dir,
        "default_mass": args.mass,
        "write_descriptor": args.write_descriptor,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return normalize_params(params)


def _run_convert(args: argparse.Namespace) -> None:
    params = _collect_params(args)
    obj_path = Path(args.obj)
    out_dir = Path(params["out_dir"] or Path.cwd()).absolute()

    print("IAENCODE | OBJ to IA Files Converter")
    print("====================================")
    _dump_path("Source file:", obj_path)
    _dump_path("Source directory:", obj_path.absolute().parent)
    _dump_path("Export directory:", out_dir)
    _dump_path("Data directory:", out_dir / (params["data_dir"] or obj_path.stem))
    print()

    result = convert_obj(obj_path, params=params)

    summaries = []
    for record in result.artifacts:
        summary = summarize(record.array)
        summaries.append(summary)
        _dump_path("Collision:" if record.kind == "ia3" else "Export:", record.path)
        print(format_summary(summary))
        print()
    if result.descriptor_path is not None:
        print(f"[convert] wrote {result.descriptor_path}")

    overall = total(summaries)
    print(f"[convert] {len(result.artifacts)} artifact(s), {overall['bytes']} bytes")
    print("Completed.")


def _run_inspect(args: argparse.Namespace) -> None:
    array = load_ia(args.artifact)
    summary = summarize(array)
    _dump_path("Artifact:", args.artifact)
    print(f"format:     IA{array.arity}")
    print(format_summary(summary))
    print(f"triangles:  {summary['triangles']}")
    print(f"bytes:      {summary['bytes']} (unindexed vertex data: {summary['unindexed_bytes']})")


def _run_export(args: argparse.Namespace) -> None:
    array = load_ia(args.artifact)
    save_mesh(array, args.out)
    print(f"[export] wrote {args.out}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, log_file=Path(args.log_file) if args.log_file else None)

    try:
        if args.command == "convert":
            _run_convert(args)
        elif args.command == "inspect":
            _run_inspect(args)
        elif args.command == "export":
            _run_export(args)
        else:
            parser.error(f"Unknown command: {args.command}")
    except ConversionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
