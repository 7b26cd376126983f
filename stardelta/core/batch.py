"""
Batch orchestrator.

Expands a :class:`BatchConfig` into jobs (one per loose movie, or one per
archive inner file), runs decode -> apply -> encode -> atomic write for each
job, and collects successes and failures. A failing job never stops the
others. Jobs run sequentially unless ``max_workers`` is above one.
"""

from __future__ import annotations

import contextlib
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Mapping, Optional, Union

from .applicator import ModificationApplicator
from .archive import Ba2Archive
from .batch_config import BatchConfig
from .context import SwfContext
from .errors import StarDeltaError, StorageError
from .logger import get_logger
from .patch_document import load_patch_document
from .settings import EngineSettings
from .vector import ShapeBuilderOptions

log = get_logger(__name__)

__all__ = ["BatchJob", "BatchFailure", "BatchResult", "BatchOrchestrator"]


@dataclass(frozen=True)
class BatchJob:
    name: str
    config_path: Path
    output_path: Optional[Path]
    input_path: Optional[Path] = None
    inner_path: Optional[str] = None

    @property
    def label(self) -> str:
        return self.inner_path or (str(self.input_path) if self.input_path else self.name)


@dataclass
class BatchFailure:
    name: str
    error: Exception
    path: Optional[str] = None

    @property
    def category(self) -> str:
        return getattr(self.error, "category", "error")

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "path": self.path, "category": self.category, "error": str(self.error)}


@dataclass
class BatchResult:
    succeeded: List[Path] = field(default_factory=list)
    failed: List[BatchFailure] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


_SKIPPED = object()


def _archive_output(output_dir: Path, inner_path: str) -> Optional[Path]:
    """Output location mirroring ``inner_path``; None if it would escape ``output_dir``."""
    parts = [p for p in PurePosixPath(inner_path.replace("\\", "/")).parts if p not in ("", "/")]
    if not parts or any(p == ".." for p in parts):
        return None
    return output_dir.joinpath(*parts)


class BatchOrchestrator:
    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        applicator: Optional[ModificationApplicator] = None,
        archive_opener: Callable[[Path], Ba2Archive] = Ba2Archive,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.applicator = applicator or ModificationApplicator(
            ShapeBuilderOptions.from_settings(self.settings)
        )
        self._archive_opener = archive_opener
        self.cancel_event = cancel_event or threading.Event()

    def plan(
        self,
        config: BatchConfig,
        output_dir: Path,
        swf_paths: Optional[Mapping[str, Union[str, Path]]] = None,
    ) -> List[BatchJob]:
        swf_paths = swf_paths or {}
        jobs: List[BatchJob] = []
        for mod in config.mods:
            if mod.ba2:
                for item in mod.files or []:
                    output = _archive_output(output_dir, item.path)
                    jobs.append(BatchJob(mod.name, config.resolve(item.config), output, inner_path=item.path))
            else:
                mapped = swf_paths.get(mod.name)
                input_path = Path(mapped) if mapped is not None else None
                output = output_dir / input_path.name if input_path is not None else None
                jobs.append(BatchJob(mod.name, config.resolve(mod.config), output, input_path=input_path))

        seen: Dict[Path, str] = {}
        for job in jobs:
            if job.output_path is None:
                continue
            if job.output_path in seen:
                log.warning(
                    f"[BATCH] '{job.name}' and '{seen[job.output_path]}' both write "
                    f"{job.output_path}; the later job wins"
                )
            seen[job.output_path] = job.name
        return jobs

    def run(
        self,
        config: BatchConfig,
        output_dir: Path,
        archive_path: Optional[Path] = None,
        swf_paths: Optional[Mapping[str, Union[str, Path]]] = None,
    ) -> BatchResult:
        output_dir = Path(output_dir)
        jobs = self.plan(config, output_dir, swf_paths)
        log.info(f"[BATCH] {len(config.mods)} mod(s), {len(jobs)} job(s) -> {output_dir}")

        with contextlib.ExitStack() as stack:
            archive: Optional[Ba2Archive] = None
            archive_error: Optional[StarDeltaError] = None
            if any(job.inner_path is not None for job in jobs):
                if archive_path is None:
                    archive_error = StorageError("No BA2 archive was supplied for this mod")
                else:
                    try:
                        archive = stack.enter_context(self._archive_opener(Path(archive_path)))
                    except StarDeltaError as exc:
                        log.error(f"[BA2] {exc}")
                        archive_error = exc

            def _job(job: BatchJob):
                if self.cancel_event.is_set():
                    return _SKIPPED
                try:
                    return self._run_job(job, archive, archive_error)
                except Exception as exc:
                    if isinstance(exc, StarDeltaError):
                        exc.with_context(entry=job.name)
                    log.error(f"[BATCH] {job.name} ({job.label}) failed: {exc}")
                    return exc

            workers = max(1, self.settings.max_workers)
            if workers == 1 or len(jobs) < 2:
                outcomes = [_job(job) for job in jobs]
            else:
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="stardelta") as pool:
                    outcomes = list(pool.map(_job, jobs))

        result = BatchResult()
        for job, outcome in zip(jobs, outcomes):
            if outcome is _SKIPPED:
                result.skipped.append(job.name)
            elif isinstance(outcome, Exception):
                path = job.inner_path or (str(job.input_path) if job.input_path else None)
                result.failed.append(BatchFailure(job.name, outcome, path))
            else:
                result.succeeded.append(outcome)
        log.info(
            f"[BATCH] Done: {len(result.succeeded)} succeeded, {len(result.failed)} failed"
            + (f", {len(result.skipped)} skipped" if result.skipped else "")
        )
        return result

    def cancel(self) -> None:
        """Stop starting new jobs; jobs already running finish normally."""
        self.cancel_event.set()

    def _run_job(
        self,
        job: BatchJob,
        archive: Optional[Ba2Archive],
        archive_error: Optional[StarDeltaError],
    ) -> Path:
        if job.inner_path is not None:
            if archive is None:
                if archive_error is None:
                    raise StorageError("No BA2 archive available")
                # Each job gets its own error so entry context is not shared.
                raise StorageError(archive_error.message, path=archive_error.path) from archive_error
            if job.output_path is None:
                raise StorageError(f"Refusing to write outside the output directory: {job.inner_path!r}")
            output_path = job.output_path
            context = SwfContext.from_archive(archive, job.inner_path)
        else:
            if job.input_path is None:
                raise StorageError(f"No input movie was mapped for mod '{job.name}'")
            output_path = job.output_path
            context = SwfContext.from_path(job.input_path)

        document = load_patch_document(job.config_path)
        with context:
            self.applicator.apply(context.structure, document)
            context.save(output_path)
        return output_path
