from __future__ import annotations
import argparse
import sys
from .commands import (
    export_json as cmd_export_json,
    apply_json as cmd_apply_json,
    build_swf as cmd_build_swf,
    patch as cmd_patch,
    batch as cmd_batch,
    archive_list as cmd_archive_list,
    delta_create as cmd_delta_create,
    delta_apply as cmd_delta_apply,
)
from ..core.logger import set_verbose
from .. import __version__

COMPRESSIONS = ("none", "zlib", "lzma")


def entrypoint():
    main()


def _add_engine_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Curve approximation tolerance in twips (or STARDELTA_CURVE_TOLERANCE)",
    )
    parser.add_argument(
        "--padding",
        type=int,
        default=None,
        help="Padding around replaced shape bounds in twips (or STARDELTA_SHAPE_PADDING)",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=None,
        help="Twips per vector user unit (or STARDELTA_SHAPE_SCALE)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="StarDelta interface movie patcher")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    e = sub.add_parser("export-json", help="Decode a movie into structural JSON")
    e.add_argument("input", type=str, help="Movie path or archive.ba2//inner/path")
    e.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output JSON path (defaults to the movie name with .json)",
    )

    a = sub.add_parser("apply-json", help="Apply a patch document to structural JSON")
    a.add_argument("structural", type=str, help="Structural JSON document")
    a.add_argument("config", type=str, help="Patch document (JSON)")
    a.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output JSON path (defaults to rewriting the input)",
    )
    _add_engine_options(a)

    b = sub.add_parser("build-swf", help="Encode structural JSON back into a movie")
    b.add_argument("structural", type=str, help="Structural JSON document")
    b.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output movie path (defaults to the JSON name with .swf)",
    )
    b.add_argument(
        "--compression",
        choices=COMPRESSIONS,
        default=None,
        help="Container compression (defaults to the source movie's)",
    )

    p = sub.add_parser("patch", help="Decode, patch and encode a single movie")
    p.add_argument("input", type=str, help="Movie path or archive.ba2//inner/path")
    p.add_argument("config", type=str, help="Patch document (JSON)")
    p.add_argument("--out", type=str, required=True, help="Output movie path")
    p.add_argument(
        "--compression",
        choices=COMPRESSIONS,
        default=None,
        help="Container compression (defaults to the source movie's)",
    )
    p.add_argument(
        "--debug-export",
        type=str,
        default=None,
        metavar="DIR",
        help="Write structural JSON before and after patching into DIR",
    )
    _add_engine_options(p)

    m = sub.add_parser("batch", help="Patch many movies from a batch config")
    m.add_argument("config", type=str, help="Batch config (JSON)")
    m.add_argument("--out", type=str, required=True, help="Output directory")
    m.add_argument("--ba2", type=str, default=None, help="BA2 archive for archive mods")
    m.add_argument(
        "--map",
        action="append",
        default=[],
        metavar="NAME=PATH",
        help="Input movie for a loose mod entry (repeatable)",
    )
    m.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Parallel jobs (or STARDELTA_MAX_WORKERS, default 1)",
    )
    m.add_argument(
        "--report",
        type=str,
        default=None,
        help="Write a JSON report of succeeded and failed jobs to this path",
    )
    _add_engine_options(m)

    ls = sub.add_parser("archive-list", help="List the files inside a BA2 archive")
    ls.add_argument("archive", type=str, help="BA2 archive path")
    ls.add_argument("--filter", type=str, default=None, help="Only names containing this text")

    dc = sub.add_parser("delta-create", help="Write a binary patch turning an original file into an edited one")
    dc.add_argument("original", type=str, help="Original file")
    dc.add_argument("edited", type=str, help="Edited file")
    dc.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output directory (defaults to the original's directory)",
    )

    da = sub.add_parser("delta-apply", help="Rebuild an edited file from the original and a patch")
    da.add_argument("target", type=str, help="File to patch")
    da.add_argument("patch", type=str, help="Patch created by delta-create")
    da.add_argument("--out", type=str, required=True, help="Output directory")

    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    if args.command == "export-json":
        code = cmd_export_json.run(args)
    elif args.command == "apply-json":
        code = cmd_apply_json.run(args)
    elif args.command == "build-swf":
        code = cmd_build_swf.run(args)
    elif args.command == "patch":
        code = cmd_patch.run(args)
    elif args.command == "batch":
        code = cmd_batch.run(args)
    elif args.command == "archive-list":
        code = cmd_archive_list.run(args)
    elif args.command == "delta-create":
        code = cmd_delta_create.run(args)
    elif args.command == "delta-apply":
        code = cmd_delta_apply.run(args)
    else:
        parser.error(f"unknown command {args.command}")

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
