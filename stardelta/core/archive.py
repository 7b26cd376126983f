"""
Read-only access to Bethesda BA2 archives.

Only general (``GNRL``) archives are supported, which is where interface
movies live. Entries are either stored or zlib compressed. The reader keeps a
single file handle; reads are serialized with a lock so one archive can be
shared by parallel batch jobs.
"""

from __future__ import annotations

import struct
import threading
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple, Union

from .errors import StorageError
from .logger import get_logger

log = get_logger(__name__)

__all__ = ["Ba2Archive", "Ba2Entry", "normalize_name", "split_archive_path", "ARCHIVE_SEPARATOR"]

ARCHIVE_SEPARATOR = "//"
MAGIC = b"BTDX"
SUPPORTED_VERSIONS = (1, 2, 3, 7, 8)
_FILE_RECORD = struct.Struct("<I4sIIQIII")
_COMPRESSION_LZ4 = 3


def normalize_name(name: str) -> str:
    return name.replace("\\", "/").strip("/").lower()


def split_archive_path(value: Union[str, Path]) -> Optional[Tuple[Path, str]]:
    """Split ``archive.ba2//inner/path`` into archive path and inner path."""
    text = str(value)
    parts = text.split(ARCHIVE_SEPARATOR)
    if len(parts) != 2 or not parts[0].lower().endswith(".ba2") or not parts[1]:
        return None
    return Path(parts[0]), parts[1]


@dataclass(frozen=True)
class Ba2Entry:
    name: str
    offset: int
    packed_size: int
    unpacked_size: int

    @property
    def compressed(self) -> bool:
        return self.packed_size != 0


class Ba2Archive:
    """An open BA2 archive. Use as a context manager or call :meth:`close`."""

    def __init__(self, path: Path, *, fh: Optional[BinaryIO] = None) -> None:
        self.path = Path(path)
        self.version = 0
        self.compression = 0
        self._entries: Dict[str, Ba2Entry] = {}
        self._lock = threading.Lock()
        self._fh: Optional[BinaryIO] = fh
        if self._fh is None:
            try:
                self._fh = open(self.path, "rb")
            except OSError as exc:
                raise StorageError(f"Could not open archive: {exc}", path=self.path) from exc
        try:
            self._read_index()
        except StorageError:
            self.close()
            raise
        except (OSError, struct.error, UnicodeDecodeError) as exc:
            self.close()
            raise StorageError(f"Corrupt archive index: {exc}", path=self.path) from exc
        log.info(f"[BA2] Opened {self.path.name}: {len(self._entries)} files (v{self.version})")

    def __enter__(self) -> "Ba2Archive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def closed(self) -> bool:
        return self._fh is None

    def _read_exact(self, size: int) -> bytes:
        data = self._fh.read(size)
        if len(data) != size:
            raise StorageError("Unexpected end of archive", path=self.path)
        return data

    def _read_index(self) -> None:
        fh = self._fh
        fh.seek(0)
        magic, version, kind, count, names_offset = struct.unpack("<4sI4sIQ", self._read_exact(24))
        if magic != MAGIC:
            raise StorageError("Not a BA2 archive", path=self.path)
        if version not in SUPPORTED_VERSIONS:
            raise StorageError(f"Unsupported BA2 version {version}", path=self.path)
        if kind != b"GNRL":
            raise StorageError(
                f"Only general (GNRL) archives are supported, not {kind.decode('latin-1')}",
                path=self.path,
            )
        self.version = version
        if version in (2, 3):
            self._read_exact(8)
        if version == 3:
            self.compression = struct.unpack("<I", self._read_exact(4))[0]

        records = []
        for _ in range(count):
            _, _, _, _, offset, packed, unpacked, _ = _FILE_RECORD.unpack(
                self._read_exact(_FILE_RECORD.size)
            )
            records.append((offset, packed, unpacked))

        fh.seek(names_offset)
        for offset, packed, unpacked in records:
            (length,) = struct.unpack("<H", self._read_exact(2))
            name = self._read_exact(length).decode("utf-8")
            entry = Ba2Entry(name.replace("\\", "/"), offset, packed, unpacked)
            self._entries[normalize_name(name)] = entry

    def names(self) -> List[str]:
        return sorted(entry.name for entry in self._entries.values())

    def entry(self, name: str) -> Ba2Entry:
        entry = self._entries.get(normalize_name(name))
        if entry is None:
            raise StorageError(f"'{name}' not found in archive", path=self.path)
        return entry

    def read(self, name: str) -> bytes:
        entry = self.entry(name)
        if entry.compressed and self.compression == _COMPRESSION_LZ4:
            raise StorageError("LZ4-compressed archives are not supported", path=self.path)
        size = entry.packed_size if entry.compressed else entry.unpacked_size
        with self._lock:
            if self._fh is None:
                raise StorageError("Archive is closed", path=self.path)
            try:
                self._fh.seek(entry.offset)
                data = self._read_exact(size)
            except OSError as exc:
                raise StorageError(f"Could not read '{name}': {exc}", path=self.path) from exc
        if not entry.compressed:
            return data
        try:
            payload = zlib.decompress(data)
        except zlib.error as exc:
            raise StorageError(f"Corrupt data for '{name}': {exc}", path=self.path) from exc
        if len(payload) != entry.unpacked_size:
            raise StorageError(
                f"'{name}' unpacked to {len(payload)} bytes, expected {entry.unpacked_size}",
                path=self.path,
            )
        return payload

    def close(self) -> None:
        with self._lock:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
