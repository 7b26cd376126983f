from pathlib import Path

import pytest

from swf_builders import build_ba2
from stardelta.core.archive import Ba2Archive, split_archive_path
from stardelta.core.errors import StorageError


@pytest.mark.parametrize("version", [1, 2, 3, 7, 8])
@pytest.mark.parametrize("compress", [False, True])
def test_reads_general_archives(tmp_path, version, compress):
    path = build_ba2(
        tmp_path / "Main.ba2",
        [("Interface\\HUDMenu.swf", b"hud-bytes" * 10), ("Interface/Pipboy.swf", b"pip")],
        version=version,
        compress=compress,
    )
    with Ba2Archive(path) as archive:
        assert len(archive) == 2
        assert archive.names() == ["Interface/HUDMenu.swf", "Interface/Pipboy.swf"]
        assert "interface/hudmenu.swf" in archive
        assert archive.read("INTERFACE\\HUDMENU.SWF") == b"hud-bytes" * 10
        assert archive.read("Interface/Pipboy.swf") == b"pip"
    assert archive.closed


def test_missing_entry(tmp_path):
    path = build_ba2(tmp_path / "a.ba2", [("x.swf", b"1")])
    with Ba2Archive(path) as archive:
        with pytest.raises(StorageError):
            archive.read("y.swf")


def test_lz4_archives_are_rejected_on_read(tmp_path):
    path = build_ba2(tmp_path / "a.ba2", [("x.swf", b"1234")], version=3, compress=True, compression_field=3)
    with Ba2Archive(path) as archive:
        with pytest.raises(StorageError):
            archive.read("x.swf")


@pytest.mark.parametrize(
    "payload",
    [b"", b"NOPE" + b"\x00" * 20, b"BTDX\x01\x00\x00\x00DX10" + b"\x00" * 12, b"BTDX\x09\x00\x00\x00GNRL" + b"\x00" * 12],
)
def test_invalid_archives(tmp_path, payload):
    path = tmp_path / "bad.ba2"
    path.write_bytes(payload)
    with pytest.raises(StorageError):
        Ba2Archive(path)


def test_missing_archive(tmp_path):
    with pytest.raises(StorageError):
        Ba2Archive(tmp_path / "none.ba2")


def test_split_archive_path():
    assert split_archive_path("Data/Main.ba2//Interface/HUD.swf") == (Path("Data/Main.ba2"), "Interface/HUD.swf")
    assert split_archive_path("movie.swf") is None
    assert split_archive_path("data.zip//inner.swf") is None
    assert split_archive_path("Main.ba2//") is None
