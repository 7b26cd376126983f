"""Run a batch of patch jobs"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Dict, List
from ...core.storage import atomic_write
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import run_batch
from ...core.settings import EngineSettings


log = get_logger(__name__)


def parse_mappings(values: List[str]) -> Dict[str, Path]:
    """Turn repeated ``NAME=PATH`` arguments into a mapping."""
    mapping: Dict[str, Path] = {}
    for value in values:
        name, sep, path = value.partition("=")
        if not sep or not name.strip() or not path.strip():
            raise ValueError(f"Expected NAME=PATH, got {value!r}")
        mapping[name.strip()] = Path(path.strip())
    return mapping


def run(args) -> int:
    """
    Patch every movie a batch config names.

    Args:
        args: Command-line arguments with:
            - config: Batch config
            - out: Output directory
            - ba2: Optional BA2 archive for archive mods
            - map: ``NAME=PATH`` inputs for loose mods
            - workers: Optional parallel job count
            - report: Optional JSON report path
            - tolerance, padding, scale: Optional engine overrides

    Returns 0 when every job succeeded, 2 when some failed, 1 when the batch
    could not start.
    """
    try:
        mapping = parse_mappings(args.map)
    except ValueError as e:
        log.error(str(e))
        return 1

    try:
        settings = EngineSettings.from_env(
            curve_tolerance=args.tolerance,
            shape_padding=args.padding,
            shape_scale=args.scale,
            max_workers=args.workers,
        )
        result = run_batch(
            Path(args.config).resolve(),
            Path(args.out).resolve(),
            Path(args.ba2).resolve() if args.ba2 else None,
            swf_paths=mapping,
            settings=settings,
        )
    except StarDeltaError as e:
        log.error(f"Batch failed: {e}")
        return 1

    for failure in result.failed:
        log.error(f"  [FAILED] {failure.name}: {failure.error}")

    if args.report:
        payload = {
            "succeeded": [str(p) for p in result.succeeded],
            "failed": [f.as_dict() for f in result.failed],
            "skipped": result.skipped,
        }
        try:
            atomic_write(Path(args.report), json.dumps(payload, indent=2).encode("utf-8"))
        except StarDeltaError as e:
            log.error(f"Could not write report: {e}")
            return 1

    return 0 if result.ok else 2
