import pytest

from swf_builders import build_ba2, sample_movie
from stardelta.core.context import SwfContext
from stardelta.core.errors import StorageError


def test_context_from_path(movie_path, tmp_path):
    with SwfContext.from_path(movie_path) as ctx:
        assert ctx.name == "movie.swf"
        assert not ctx.is_dirty
        out = ctx.save(tmp_path / "copy.swf")
    assert out.read_bytes() == movie_path.read_bytes()


def test_context_from_archive_location(tmp_path):
    archive = build_ba2(tmp_path / "Main.ba2", [("Interface/HUD.swf", sample_movie())])
    ctx = SwfContext.from_location(f"{archive}//Interface/HUD.swf")
    with ctx:
        assert ctx.name == "HUD.swf"
        assert ctx.structure.by_id(1) is not None
    assert ctx._owned_archive is None


def test_missing_movie(tmp_path):
    with pytest.raises(StorageError):
        SwfContext.from_path(tmp_path / "missing.swf").load()
