"""
Patch document model.

A patch document describes the modifications to apply to one movie:

.. code-block:: json

    {
      "transparent": [5],
      "file": [{"source": "art/box.svg", "shapes": [7]}],
      "swf": {
        "bounds": {"x": {"min": 0, "max": 12800}, "y": {"min": 0, "max": 7200}},
        "modifications": [
          {"tag": "FileAttributesTag", "properties": {"actionScript3": true}}
        ]
      }
    }

The schema is strict: unknown keys anywhere in the document are rejected.
``properties`` stays an untyped mapping here and is validated per tag kind
when it is applied.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, model_validator

from .errors import SchemaError, StorageError
from .logger import get_logger

log = get_logger(__name__)

__all__ = [
    "BoundRange",
    "MovieBounds",
    "ShapeReplacement",
    "TagModification",
    "SwfSection",
    "PatchDocument",
    "parse_patch_document",
    "load_patch_document",
    "format_validation_error",
]

_U16 = dict(ge=0, le=0xFFFF)


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


class BoundRange(_StrictModel):
    min: int
    max: int

    @model_validator(mode="after")
    def _ordered(self) -> "BoundRange":
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) is greater than max ({self.max})")
        return self


class MovieBounds(_StrictModel):
    """Replacement stage size in twips."""

    x: BoundRange
    y: BoundRange

    def to_rect(self) -> Dict[str, int]:
        return {"xMin": self.x.min, "xMax": self.x.max, "yMin": self.y.min, "yMax": self.y.max}


class ShapeReplacement(_StrictModel):
    source: str = Field(..., min_length=1, description="Vector asset, relative to the document")
    shapes: List[int] = Field(..., description="Shape ids replaced by the asset")

    @model_validator(mode="after")
    def _check_ids(self) -> "ShapeReplacement":
        for shape_id in self.shapes:
            if not 0 <= shape_id <= 0xFFFF:
                raise ValueError(f"shape id {shape_id} out of range")
        return self


class TagModification(_StrictModel):
    tag: str = Field(..., min_length=1, description="Tag kind, e.g. 'DefineShapeTag'")
    id: Optional[int] = Field(None, **_U16)
    match: Optional[Dict[str, Any]] = Field(
        None, description="Property values picking display-list or code tags; all of them when absent"
    )
    properties: Dict[str, Any]


class SwfSection(_StrictModel):
    bounds: Optional[MovieBounds] = None
    modifications: List[TagModification]


class PatchDocument(_StrictModel):
    transparent: List[int] = Field(default_factory=list)
    file: List[ShapeReplacement] = Field(default_factory=list)
    swf: SwfSection

    _base_dir: Optional[Path] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _check_transparent(self) -> "PatchDocument":
        for shape_id in self.transparent:
            if not 0 <= shape_id <= 0xFFFF:
                raise ValueError(f"transparent id {shape_id} out of range")
        return self

    @property
    def base_dir(self) -> Optional[Path]:
        return self._base_dir

    @property
    def transparent_ids(self) -> List[int]:
        """Transparent ids in document order, without duplicates."""
        return list(dict.fromkeys(self.transparent))

    @property
    def modifications(self) -> List[TagModification]:
        return self.swf.modifications

    @property
    def is_empty(self) -> bool:
        return not (self.transparent or self.file or self.swf.bounds or self.swf.modifications)

    def source_path(self, replacement: ShapeReplacement) -> Path:
        """Resolve a replacement source against the document's directory."""
        source = Path(replacement.source)
        if source.is_absolute() or self._base_dir is None:
            return source
        return self._base_dir / source


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_patch_document(
    data: Union[bytes, str, Dict[str, Any]],
    base_dir: Optional[Path] = None,
) -> PatchDocument:
    """Parse and validate a patch document.

    ``base_dir`` is the directory replacement sources are resolved against;
    it should be the directory the document was read from.
    """
    if isinstance(data, (bytes, str)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SchemaError(f"Patch document is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError("Patch document must be a JSON object")
    try:
        document = PatchDocument.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"Invalid patch document: {format_validation_error(exc)}") from exc
    document._base_dir = Path(base_dir) if base_dir is not None else None
    log.debug(
        f"Parsed patch document: {len(document.transparent_ids)} transparent, "
        f"{len(document.file)} replacement(s), {len(document.modifications)} modification(s)"
    )
    return document


def load_patch_document(path: Path) -> PatchDocument:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise StorageError(f"Could not read patch document: {exc}", path=path) from exc
    try:
        return parse_patch_document(raw, base_dir=path.resolve().parent)
    except SchemaError as exc:
        raise exc.with_context(path=path)
