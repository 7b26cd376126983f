"""
Binary delta patches between two versions of a file.

Mod authors ship a small patch instead of a whole edited movie or archive:
``create_delta`` diffs the edited file against the original, ``apply_delta``
rebuilds the edited file from the original and the patch. Patches use the
bsdiff4 format.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import bsdiff4

from .errors import CodecError, StorageError
from .logger import get_logger
from .storage import atomic_write

log = get_logger(__name__)

__all__ = ["DELTA_SUFFIX", "create_delta", "apply_delta"]

DELTA_SUFFIX = ".bsdiff"


def _read(path: Path, what: str) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        raise StorageError(f"Could not read {what}: {exc}", path=path) from exc


def create_delta(original: Path, edited: Path, output_dir: Optional[Path] = None) -> Path:
    """Write ``<original name>.bsdiff`` turning ``original`` into ``edited``.

    The patch lands beside the original unless ``output_dir`` is given.
    """
    original, edited = Path(original), Path(edited)
    source = _read(original, "original file")
    target = _read(edited, "edited file")
    patch = bsdiff4.diff(source, target)
    out = Path(output_dir or original.parent) / f"{original.name}{DELTA_SUFFIX}"
    atomic_write(out, patch)
    log.info(f"[DELTA] {edited.name}: {len(patch)} byte patch against {original.name} -> {out}")
    return out


def apply_delta(target: Path, patch_path: Path, output_dir: Path) -> Path:
    """Rebuild the edited file from ``target`` and a patch into ``output_dir``.

    The output keeps the target's file name. Writing into the target's own
    directory replaces it only once the rebuilt file is complete.
    """
    target, patch_path = Path(target), Path(patch_path)
    source = _read(target, "file to patch")
    patch = _read(patch_path, "patch file")
    try:
        rebuilt = bsdiff4.patch(source, patch)
    except (ValueError, OSError, EOFError) as exc:
        raise CodecError(f"Patch {patch_path.name} could not be applied: {exc}", path=patch_path) from exc
    out = Path(output_dir) / target.name
    atomic_write(out, rebuilt)
    log.info(f"[DELTA] Applied {patch_path.name} to {target.name} -> {out}")
    return out
