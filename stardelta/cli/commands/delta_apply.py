"""Apply a binary delta patch to a file"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import apply_delta


log = get_logger(__name__)


def run(args) -> int:
    try:
        apply_delta(Path(args.target).resolve(), Path(args.patch).resolve(), Path(args.out).resolve())
    except StarDeltaError as e:
        log.error(f"Delta apply failed: {e}")
        return 1
    return 0
