"""Build a movie from structural JSON"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import convert_from_structural


log = get_logger(__name__)


def run(args) -> int:
    try:
        convert_from_structural(
            Path(args.structural).resolve(),
            Path(args.out).resolve() if args.out else None,
            compression=args.compression,
        )
    except StarDeltaError as e:
        log.error(f"Build failed: {e}")
        return 1
    return 0
