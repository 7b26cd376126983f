"""Patch a single movie"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import patch_file
from ...core.settings import EngineSettings


log = get_logger(__name__)


def run(args) -> int:
    """
    Decode a movie, apply a patch document and write the result.

    Args:
        args: Command-line arguments with:
            - input: Movie path or ``archive.ba2//inner/path``
            - config: Patch document
            - out: Output movie path
            - compression: Optional container compression override
            - debug_export: Optional directory for before/after structural JSON
            - tolerance, padding, scale: Optional engine overrides
    """
    try:
        settings = EngineSettings.from_env(
            curve_tolerance=args.tolerance,
            shape_padding=args.padding,
            shape_scale=args.scale,
        )
        report = patch_file(
            args.input,
            Path(args.config).resolve(),
            Path(args.out).resolve(),
            settings=settings,
            compression=args.compression,
            debug_export_dir=Path(args.debug_export).resolve() if args.debug_export else None,
        )
    except StarDeltaError as e:
        log.error(f"Patch failed: {e}")
        return 1
    if not report.has_changes:
        log.info("Patch document made no changes")
    return 0
