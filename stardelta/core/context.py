from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

from .archive import Ba2Archive, split_archive_path
from .errors import StorageError
from .logger import get_logger
from .storage import atomic_write
from .swf import TagStructure, decode_swf, encode_swf

log = get_logger(__name__)

__all__ = ["SwfContext"]


class SwfContext:
    """Owns the tag structure of one movie for a single pipeline run."""

    def __init__(
        self,
        name: str,
        reader: Callable[[], bytes],
        *,
        owned_archive: Optional[Ba2Archive] = None,
    ) -> None:
        self.name = name
        self._reader = reader
        self._owned_archive = owned_archive
        self._structure: Optional[TagStructure] = None

    @classmethod
    def from_path(cls, path: Path) -> "SwfContext":
        path = Path(path)

        def _read() -> bytes:
            try:
                return path.read_bytes()
            except OSError as exc:
                raise StorageError(f"Could not read movie: {exc}", path=path) from exc

        return cls(path.name, _read)

    @classmethod
    def from_archive(cls, archive: Ba2Archive, inner_path: str) -> "SwfContext":
        return cls(Path(inner_path.replace("\\", "/")).name, lambda: archive.read(inner_path))

    @classmethod
    def from_location(cls, location: Union[str, Path]) -> "SwfContext":
        """Open a plain path or an ``archive.ba2//inner/path`` reference."""
        split = split_archive_path(location)
        if split is None:
            return cls.from_path(Path(location))
        archive_path, inner_path = split
        archive = Ba2Archive(archive_path)
        context = cls.from_archive(archive, inner_path)
        context._owned_archive = archive
        return context

    def __enter__(self) -> "SwfContext":
        self.load()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def load(self) -> TagStructure:
        if self._structure is None:
            self._structure = decode_swf(self._reader())
            log.debug(f"[SWF] Loaded {self.name}: {len(self._structure)} tags")
        return self._structure

    @property
    def structure(self) -> TagStructure:
        return self.load()

    @property
    def is_dirty(self) -> bool:
        return self._structure is not None and self._structure.is_dirty

    def encode(self, compression: Optional[str] = None) -> bytes:
        return encode_swf(self.structure, compression)

    def save(self, out_path: Path, *, compression: Optional[str] = None) -> Path:
        data = self.encode(compression)
        atomic_write(out_path, data)
        log.info(f"[SWF] Wrote {out_path} ({len(data)} bytes)")
        return out_path

    def dispose(self) -> None:
        self._structure = None
        if self._owned_archive is not None:
            self._owned_archive.close()
            self._owned_archive = None
