"""
Vector Conversion

SVG import and conversion of vector primitives to native shape records.
"""

from .models import PathPrimitive, VectorDocument
from .shape_builder import ShapeBuilderOptions, ShapeRecord, build_shape, replacement_code
from .svg_importer import import_svg, parse_svg

__all__ = [
    "PathPrimitive",
    "VectorDocument",
    "ShapeBuilderOptions",
    "ShapeRecord",
    "build_shape",
    "replacement_code",
    "import_svg",
    "parse_svg",
]
