import os

import pytest

from stardelta.core.errors import StorageError
from stardelta.core.storage import atomic_write


def test_atomic_write_replaces_file(tmp_path):
    target = tmp_path / "out" / "movie.swf"
    atomic_write(target, b"first")
    atomic_write(target, b"second")
    assert target.read_bytes() == b"second"
    assert os.listdir(target.parent) == ["movie.swf"]


def test_atomic_write_failure_leaves_no_temp_files(tmp_path, monkeypatch):
    target = tmp_path / "movie.swf"
    target.write_bytes(b"original")

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StorageError):
        atomic_write(target, b"new")
    assert target.read_bytes() == b"original"
    assert os.listdir(tmp_path) == ["movie.swf"]
