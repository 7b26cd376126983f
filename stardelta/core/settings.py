"""Engine settings with environment overrides."""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import SchemaError
from .patch_document import format_validation_error
from .vector.geometry import MIN_CURVE_TOLERANCE

__all__ = ["EngineSettings", "ENV_PREFIX"]

ENV_PREFIX = "STARDELTA_"


class EngineSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    curve_tolerance: float = Field(
        1.0,
        ge=MIN_CURVE_TOLERANCE,
        description="Max deviation of emitted quadratic edges from the source curve, in twips",
    )
    shape_padding: int = Field(0, ge=0, description="Padding added around replaced shape bounds, in twips")
    shape_scale: float = Field(1.0, gt=0, description="Twips per vector user unit")
    max_workers: int = Field(1, ge=1, description="Parallel batch jobs")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "EngineSettings":
        """Build settings from ``STARDELTA_*`` variables; ``overrides`` win.

        Overrides whose value is None are ignored, so unset CLI flags can be
        passed straight through.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise SchemaError(f"Invalid settings: {format_validation_error(exc)}") from exc
