"""
Modification applicator.

Applies a :class:`PatchDocument` to a :class:`TagStructure` in a fixed order:

1. transparency: listed shapes get every fill alpha set to zero;
2. replacement: listed shapes are rebuilt from vector assets;
3. generic modifications: the movie bounds override, then each
   ``swf.modifications`` entry in document order.

A shape listed both as transparent and in a modification is made transparent
first, so the modification can still set its own colours. The structure is
restored to its previous state if any step fails.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import SchemaError, StarDeltaError
from .logger import get_logger
from .patch_document import PatchDocument
from .swf.handlers import ShapeHandler, get_handler
from .swf.records import BITMAP_FILLS, GRADIENT_FILLS
from .swf.tags import TagRecord, TagStructure
from .vector import ShapeBuilderOptions, VectorDocument, build_shape, import_svg, replacement_code

log = get_logger(__name__)

__all__ = ["ApplyReport", "ModificationApplicator", "transparent_shape_properties"]

SHAPE_KIND = ShapeHandler.kind


@dataclass
class ApplyReport:
    """What one ``apply`` call changed."""

    transparent: List[int] = field(default_factory=list)
    replaced: List[int] = field(default_factory=list)
    modified: List[Tuple[str, Optional[int]]] = field(default_factory=list)
    bounds_changed: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.transparent or self.replaced or self.modified or self.bounds_changed)

    def summary_lines(self) -> List[str]:
        lines = []
        if self.transparent:
            lines.append(f"transparent shapes: {', '.join(map(str, self.transparent))}")
        if self.replaced:
            lines.append(f"replaced shapes: {', '.join(map(str, self.replaced))}")
        if self.bounds_changed:
            lines.append("movie bounds overridden")
        for kind, tag_id in self.modified:
            lines.append(f"modified {kind}" + (f" {tag_id}" if tag_id is not None else ""))
        return lines


def _clear_fill(style: Dict[str, Any]) -> Dict[str, Any]:
    kind = style.get("type")
    if kind == "solid":
        style["color"]["a"] = 0
    elif kind in GRADIENT_FILLS:
        for record in style["gradient"]["records"]:
            record["color"]["a"] = 0
    elif kind in BITMAP_FILLS:
        # Bitmap fills have no colour channel; swap in an invisible solid fill.
        return {"type": "solid", "color": {"r": 0, "g": 0, "b": 0, "a": 0}}
    return style


def transparent_shape_properties(properties: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of shape ``properties`` with every fill style fully transparent."""
    props = copy.deepcopy(properties)
    props["fillStyles"] = [_clear_fill(s) for s in props.get("fillStyles", [])]
    for record in props.get("records", []):
        new_styles = record.get("newStyles")
        if new_styles:
            new_styles["fillStyles"] = [_clear_fill(s) for s in new_styles.get("fillStyles", [])]
    return props


class ModificationApplicator:
    """Applies patch documents; one instance may serve many structures."""

    def __init__(
        self,
        options: Optional[ShapeBuilderOptions] = None,
        *,
        importer: Callable[[Path], VectorDocument] = import_svg,
    ) -> None:
        self.options = options or ShapeBuilderOptions()
        self._importer = importer

    def apply(
        self,
        structure: TagStructure,
        document: PatchDocument,
        report: Optional[ApplyReport] = None,
    ) -> TagStructure:
        report = report if report is not None else ApplyReport()
        snapshot = structure.snapshot()
        try:
            self._apply_transparency(structure, document, report)
            self._apply_replacements(structure, document, report)
            self._apply_modifications(structure, document, report)
        except Exception:
            structure.restore(snapshot)
            raise
        for line in report.summary_lines():
            log.info(f"  [PATCHED] {line}")
        return structure

    # ------------------------------------------------------------------

    def _apply_transparency(
        self, structure: TagStructure, document: PatchDocument, report: ApplyReport
    ) -> None:
        for index, shape_id in enumerate(document.transparent_ids):
            try:
                tag = structure.find(SHAPE_KIND, shape_id)
                props = transparent_shape_properties(tag.properties)
                tag.replace_properties(props, code=replacement_code(tag.code))
            except StarDeltaError as exc:
                raise exc.with_context(section="transparent", index=index, tag_id=shape_id)
            report.transparent.append(shape_id)

    def _apply_replacements(
        self, structure: TagStructure, document: PatchDocument, report: ApplyReport
    ) -> None:
        for index, replacement in enumerate(document.file):
            source = document.source_path(replacement)
            try:
                targets: List[TagRecord] = []
                for shape_id in replacement.shapes:
                    try:
                        targets.append(structure.find(SHAPE_KIND, shape_id))
                    except StarDeltaError as exc:
                        raise exc.with_context(tag_id=shape_id)
                vector = self._importer(source)
                for tag in targets:
                    try:
                        shape = build_shape(vector, tag.tag_id, self.options)
                        code = replacement_code(tag.code)
                        tag.replace_properties(shape.to_properties(code), code=code)
                    except StarDeltaError as exc:
                        raise exc.with_context(tag_id=tag.tag_id)
                    report.replaced.append(tag.tag_id)
            except StarDeltaError as exc:
                raise exc.with_context(section="file", index=index, path=source)
            log.debug(f"[VECTOR] {source.name} -> shapes {replacement.shapes}")

    def _apply_modifications(
        self, structure: TagStructure, document: PatchDocument, report: ApplyReport
    ) -> None:
        if document.swf.bounds is not None:
            structure.set_frame_size(document.swf.bounds.to_rect())
            report.bounds_changed = True

        for index, modification in enumerate(document.modifications):
            try:
                handler = get_handler(modification.tag)
                tags = self._targets(structure, handler, modification)
                for tag in tags:
                    merged = handler.merge(tag.properties, modification.properties, tag.code, tag.tag_id)
                    tag.replace_properties(merged)
            except StarDeltaError as exc:
                raise exc.with_context(
                    section="swf.modifications", index=index, tag_id=modification.id
                )
            if len(tags) > 1:
                log.debug(f"[SWF] Modified {len(tags)} {handler.kind} tags")
            report.modified.append((handler.kind, modification.id))

    @staticmethod
    def _targets(structure: TagStructure, handler, modification) -> List[TagRecord]:
        if modification.match is not None and not handler.instanced:
            raise SchemaError(f"{handler.kind} tags are not picked by 'match'")
        if handler.singleton:
            if modification.id is not None:
                raise SchemaError(f"{handler.kind} is a singleton tag and takes no id")
            return [structure.find_singleton(handler.kind)]
        if handler.instanced:
            if modification.id is not None:
                raise SchemaError(f"{handler.kind} tags have no character id; use 'match'")
            return structure.find_instances(handler.kind, modification.match)
        if modification.id is None:
            raise SchemaError(f"{handler.kind} modifications need an id")
        return [structure.find(handler.kind, modification.id)]
