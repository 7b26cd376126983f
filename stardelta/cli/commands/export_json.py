"""Export a movie as structural JSON"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import convert_to_structural


log = get_logger(__name__)


def run(args) -> int:
    """
    Decode a movie into a structural JSON document.

    Args:
        args: Command-line arguments with:
            - input: Movie path or ``archive.ba2//inner/path``
            - out: Optional output JSON path
    """
    out = Path(args.out).resolve() if args.out else None
    try:
        target = convert_to_structural(args.input, out)
    except StarDeltaError as e:
        log.error(f"Export failed: {e}")
        return 1
    print(target)
    return 0
