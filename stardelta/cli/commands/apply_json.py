"""Apply a patch document to structural JSON"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import apply_modifications
from ...core.settings import EngineSettings


log = get_logger(__name__)


def run(args) -> int:
    """
    Apply a patch document to a structural JSON document.

    Args:
        args: Command-line arguments with:
            - structural: Structural JSON document
            - config: Patch document
            - out: Optional output path (defaults to rewriting ``structural``)
            - tolerance, padding, scale: Optional engine overrides
    """
    try:
        settings = EngineSettings.from_env(
            curve_tolerance=args.tolerance,
            shape_padding=args.padding,
            shape_scale=args.scale,
        )
        target = apply_modifications(
            Path(args.structural).resolve(),
            Path(args.config).resolve(),
            Path(args.out).resolve() if args.out else None,
            settings=settings,
        )
    except StarDeltaError as e:
        log.error(f"Apply failed: {e}")
        return 1
    log.info(f"Wrote {target}")
    return 0
