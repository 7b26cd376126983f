from pathlib import Path

import pytest

from swf_builders import SQUARE_SVG, sample_movie


@pytest.fixture
def movie_path(tmp_path: Path) -> Path:
    path = tmp_path / "movie.swf"
    path.write_bytes(sample_movie())
    return path


@pytest.fixture
def square_svg(tmp_path: Path) -> Path:
    path = tmp_path / "square.svg"
    path.write_text(SQUARE_SVG, encoding="utf-8")
    return path
