"""
Error taxonomy for the patch pipeline.

Every error carries optional structured context (mod entry name, position in
the patch document, offending tag id, file path) so that the CLI and batch
reports can point at the exact thing that went wrong.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

__all__ = [
    "StarDeltaError",
    "SchemaError",
    "TagReferenceError",
    "TypeMismatchError",
    "AssetError",
    "GeometryError",
    "CodecError",
    "StorageError",
]


class StarDeltaError(Exception):
    """Base class for all pipeline errors."""

    category = "error"

    def __init__(
        self,
        message: str,
        *,
        entry: Optional[str] = None,
        section: Optional[str] = None,
        index: Optional[int] = None,
        tag_id: Optional[int] = None,
        path: Optional[Union[str, Path]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entry = entry
        self.section = section
        self.index = index
        self.tag_id = tag_id
        self.path = str(path) if path is not None else None

    def with_context(self, **context: Any) -> "StarDeltaError":
        """Fill in context fields that are not already set and return self."""
        for key, value in context.items():
            if value is None:
                continue
            if getattr(self, key, None) is None:
                setattr(self, key, str(value) if key == "path" else value)
        return self

    def context(self) -> Dict[str, Any]:
        fields = {
            "entry": self.entry,
            "section": self.section,
            "index": self.index,
            "tag_id": self.tag_id,
            "path": self.path,
        }
        return {k: v for k, v in fields.items() if v is not None}

    def __str__(self) -> str:
        ctx = self.context()
        if not ctx:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.message} ({details})"


class SchemaError(StarDeltaError):
    """Malformed document, unknown key or unsupported tag kind."""

    category = "schema"


class TagReferenceError(StarDeltaError):
    """A referenced tag id or singleton tag does not exist."""

    category = "reference"


class TypeMismatchError(StarDeltaError):
    """The tag found for an id is not of the requested kind."""

    category = "type-mismatch"


class AssetError(StarDeltaError):
    """A vector asset is missing or unreadable."""

    category = "asset"


class GeometryError(StarDeltaError):
    """Unsupported path, element or paint construct."""

    category = "geometry"


class CodecError(StarDeltaError):
    """The SWF bytes or a delta patch could not be decoded or encoded."""

    category = "codec"


class StorageError(StarDeltaError):
    """Filesystem or archive access failure."""

    category = "io"
