"""
Batch configuration model.

.. code-block:: json

    {"mods": [
        {"name": "HUD colours", "config": "hud/patch.json"},
        {"name": "Pip-Boy", "ba2": true, "files": [
            {"path": "Interface/PipboyMenu.swf", "config": "pipboy/patch.json"}
        ]}
    ]}

Config paths resolve relative to the directory of the batch document.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, model_validator

from .errors import SchemaError, StorageError
from .patch_document import format_validation_error

__all__ = ["BatchFile", "ModEntry", "BatchConfig", "parse_batch_config", "load_batch_config"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


class BatchFile(_StrictModel):
    path: str = Field(..., min_length=1, description="Inner archive path")
    config: str = Field(..., min_length=1, description="Patch document for this file")


class ModEntry(_StrictModel):
    name: str = Field(..., min_length=1)
    ba2: bool = False
    config: Optional[str] = Field(None, min_length=1)
    files: Optional[List[BatchFile]] = None

    @model_validator(mode="after")
    def _check_mode(self) -> "ModEntry":
        if self.ba2:
            if not self.files:
                raise ValueError(f"mod '{self.name}' has ba2=true but no files")
            if self.config is not None:
                raise ValueError(f"mod '{self.name}' has ba2=true; use files[].config instead of config")
        else:
            if self.config is None:
                raise ValueError(f"mod '{self.name}' needs a config")
            if self.files is not None:
                raise ValueError(f"mod '{self.name}' lists files but is not a ba2 mod")
        return self


class BatchConfig(_StrictModel):
    mods: List[ModEntry]

    _base_dir: Optional[Path] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _unique_names(self) -> "BatchConfig":
        seen = set()
        for mod in self.mods:
            if mod.name in seen:
                raise ValueError(f"duplicate mod name '{mod.name}'")
            seen.add(mod.name)
        return self

    @property
    def base_dir(self) -> Optional[Path]:
        return self._base_dir

    @property
    def needs_archive(self) -> bool:
        return any(mod.ba2 for mod in self.mods)

    def resolve(self, relative: str) -> Path:
        path = Path(relative)
        if path.is_absolute() or self._base_dir is None:
            return path
        return self._base_dir / path


def parse_batch_config(
    data: Union[bytes, str, Dict[str, Any]],
    base_dir: Optional[Path] = None,
) -> BatchConfig:
    if isinstance(data, (bytes, str)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SchemaError(f"Batch configuration is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError("Batch configuration must be a JSON object")
    try:
        config = BatchConfig.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"Invalid batch configuration: {format_validation_error(exc)}") from exc
    config._base_dir = Path(base_dir) if base_dir is not None else None
    return config


def load_batch_config(path: Path) -> BatchConfig:
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise StorageError(f"Could not read batch configuration: {exc}", path=path) from exc
    try:
        return parse_batch_config(raw, base_dir=path.resolve().parent)
    except SchemaError as exc:
        raise exc.with_context(path=path)
