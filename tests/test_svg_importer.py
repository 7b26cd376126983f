import pytest

from stardelta.core.errors import AssetError, GeometryError
from stardelta.core.vector import import_svg, parse_svg
from stardelta.core.vector.models import ClosePath, CubicTo, LineTo, MoveTo, Paint


def _svg(body: str, attrs: str = 'width="100" height="100"') -> bytes:
    return f'<svg xmlns="http://www.w3.org/2000/svg" {attrs}>{body}</svg>'.encode("utf-8")


def test_rect_becomes_closed_path(square_svg):
    doc = import_svg(square_svg)
    assert (doc.width, doc.height) == (100.0, 100.0)
    assert doc.source == square_svg
    (prim,) = doc.primitives
    assert prim.fill == Paint(0x33, 0x66, 0xFF, 255)
    assert prim.stroke is None
    assert isinstance(prim.segments[0], MoveTo)
    assert isinstance(prim.segments[-1], ClosePath)
    ends = [s.end for s in prim.segments if isinstance(s, LineTo)]
    assert ends == [complex(100, 0), complex(100, 100), complex(0, 100)]


def test_group_transform_and_inherited_style():
    doc = parse_svg(
        _svg(
            '<g transform="translate(10 20)" fill="red" opacity="0.5">'
            '<path d="M0 0 L10 0 L10 10 Z" fill-opacity="0.5"/>'
            "</g>"
        )
    )
    (prim,) = doc.primitives
    assert prim.segments[0] == MoveTo(complex(10, 20))
    assert prim.fill == Paint(255, 0, 0, 64)


def test_style_attribute_overrides_presentation_attribute():
    doc = parse_svg(_svg('<rect width="10" height="10" fill="red" style="fill: #00ff00; stroke: blue; stroke-width: 4"/>'))
    (prim,) = doc.primitives
    assert prim.fill == Paint(0, 255, 0, 255)
    assert prim.stroke.paint == Paint(0, 0, 255, 255)
    assert prim.stroke.width == 4.0


def test_circle_is_made_of_cubics():
    doc = parse_svg(_svg('<circle cx="50" cy="50" r="40" fill="black"/>'))
    (prim,) = doc.primitives
    cubics = [s for s in prim.segments if isinstance(s, CubicTo)]
    assert len(cubics) == 8
    for cubic in cubics:
        assert abs(abs(cubic.end - complex(50, 50)) - 40) < 1e-6


def test_view_box_scales_content():
    doc = parse_svg(
        _svg('<rect width="10" height="10" fill="red"/>', 'width="100" height="100" viewBox="0 0 10 10"')
    )
    (prim,) = doc.primitives
    ends = [s.end for s in prim.segments if isinstance(s, LineTo)]
    assert ends[1] == complex(100, 100)
    assert doc.view_box == (0.0, 0.0, 10.0, 10.0)


def test_hidden_and_non_rendering_elements_are_skipped():
    doc = parse_svg(
        _svg(
            "<title>t</title><defs><rect width='5' height='5'/></defs>"
            '<rect width="10" height="10" display="none"/>'
            '<rect width="10" height="10" visibility="hidden"/>'
            '<rect width="10" height="10" fill="none"/>'
            '<line x1="0" y1="0" x2="10" y2="10"/>'
        )
    )
    assert doc.primitives == []


def test_line_uses_stroke_only():
    doc = parse_svg(_svg('<line x1="0" y1="0" x2="10" y2="0" stroke="black" stroke-width="2"/>'))
    (prim,) = doc.primitives
    assert prim.fill is None
    assert prim.stroke.width == 2.0


@pytest.mark.parametrize(
    "body",
    [
        "<text>hi</text>",
        '<image href="a.png"/>',
        '<rect width="1" height="1" fill="url(#g)"/>',
        '<rect width="1" height="1" fill="not-a-colour"/>',
        '<rect width="1" height="1" clip-path="url(#c)"/>',
        "<blink/>",
        '<use href="#a"/>',
    ],
)
def test_unsupported_content_raises_geometry_error(body):
    with pytest.raises(GeometryError):
        parse_svg(_svg(body))


def test_broken_documents_raise_asset_error(tmp_path):
    with pytest.raises(AssetError):
        parse_svg(b"<svg")
    with pytest.raises(AssetError):
        parse_svg(b"<html/>")
    with pytest.raises(AssetError):
        import_svg(tmp_path / "missing.svg")
