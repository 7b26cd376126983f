from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Mapping, Optional, Union

from .applicator import ApplyReport, ModificationApplicator
from .archive import Ba2Archive, split_archive_path
from .batch import BatchOrchestrator, BatchResult
from .batch_config import load_batch_config
from .context import SwfContext
from .delta import apply_delta, create_delta
from .logger import get_logger
from .patch_document import load_patch_document
from .settings import EngineSettings
from .storage import atomic_write
from .swf import dump_structural, encode_swf, load_structural
from .vector import ShapeBuilderOptions

log = get_logger(__name__)

__all__ = [
    "convert_to_structural",
    "apply_modifications",
    "convert_from_structural",
    "patch_file",
    "run_batch",
    "list_archive",
    "create_delta",
    "apply_delta",
]

Location = Union[str, Path]


def _applicator(settings: Optional[EngineSettings]) -> ModificationApplicator:
    settings = settings or EngineSettings.from_env()
    return ModificationApplicator(ShapeBuilderOptions.from_settings(settings))


def _default_sibling(location: Location, suffix: str) -> Path:
    split = split_archive_path(location)
    if split is not None:
        archive_path, inner_path = split
        return archive_path.parent / Path(inner_path.replace("\\", "/")).with_suffix(suffix).name
    return Path(location).with_suffix(suffix)


def convert_to_structural(input_path: Location, structural_path: Optional[Path] = None) -> Path:
    """Decode a movie (file or ``archive.ba2//inner``) into a structural JSON document."""
    target = Path(structural_path) if structural_path else _default_sibling(input_path, ".json")
    with SwfContext.from_location(input_path) as ctx:
        dump_structural(ctx.structure, target)
    log.info(f"[SWF] Exported {input_path} -> {target}")
    return target


def apply_modifications(
    structural_path: Path,
    patch_doc_path: Path,
    output_path: Optional[Path] = None,
    *,
    settings: Optional[EngineSettings] = None,
) -> Path:
    """Apply a patch document to a structural document; writes in place by default."""
    structure = load_structural(structural_path)
    document = load_patch_document(patch_doc_path)
    _applicator(settings).apply(structure, document)
    return dump_structural(structure, Path(output_path) if output_path else Path(structural_path))


def convert_from_structural(
    structural_path: Path,
    output_path: Optional[Path] = None,
    *,
    compression: Optional[str] = None,
) -> Path:
    structure = load_structural(structural_path)
    target = Path(output_path) if output_path else Path(structural_path).with_suffix(".swf")
    atomic_write(target, encode_swf(structure, compression))
    log.info(f"[SWF] Built {target}")
    return target


def patch_file(
    input_path: Location,
    patch_doc_path: Path,
    output_path: Path,
    *,
    settings: Optional[EngineSettings] = None,
    compression: Optional[str] = None,
    debug_export_dir: Optional[Path] = None,
) -> ApplyReport:
    """Decode, apply and encode a single movie."""
    document = load_patch_document(patch_doc_path)
    report = ApplyReport()
    with SwfContext.from_location(input_path) as ctx:
        stem = Path(ctx.name).stem
        if debug_export_dir:
            dump_structural(ctx.structure, Path(debug_export_dir) / f"{stem}.before.json")
        _applicator(settings).apply(ctx.structure, document, report)
        if debug_export_dir:
            dump_structural(ctx.structure, Path(debug_export_dir) / f"{stem}.after.json")
        ctx.save(Path(output_path), compression=compression)
    return report


def run_batch(
    batch_config_path: Path,
    output_dir: Path,
    archive_path: Optional[Path] = None,
    *,
    swf_paths: Optional[Mapping[str, Location]] = None,
    settings: Optional[EngineSettings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchResult:
    config = load_batch_config(batch_config_path)
    settings = settings or EngineSettings.from_env()
    orchestrator = BatchOrchestrator(settings, cancel_event=cancel_event)
    return orchestrator.run(config, Path(output_dir), archive_path, swf_paths)


def list_archive(archive_path: Path) -> List[str]:
    with Ba2Archive(Path(archive_path)) as archive:
        return archive.names()
