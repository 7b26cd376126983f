"""Create a binary delta patch between an original and an edited file"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import create_delta


log = get_logger(__name__)


def run(args) -> int:
    try:
        out = create_delta(
            Path(args.original).resolve(),
            Path(args.edited).resolve(),
            Path(args.out).resolve() if args.out else None,
        )
    except StarDeltaError as e:
        log.error(f"Delta creation failed: {e}")
        return 1
    print(out)
    return 0
