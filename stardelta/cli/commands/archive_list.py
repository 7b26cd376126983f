"""List the contents of a BA2 archive"""
from __future__ import annotations
from pathlib import Path
from ...core.errors import StarDeltaError
from ...core.logger import get_logger
from ...core.services import list_archive


log = get_logger(__name__)


def run(args) -> int:
    try:
        names = list_archive(Path(args.archive).resolve())
    except StarDeltaError as e:
        log.error(f"Could not read archive: {e}")
        return 1
    needle = args.filter.lower() if args.filter else None
    for name in names:
        if needle is None or needle in name.lower():
            print(name)
    return 0
