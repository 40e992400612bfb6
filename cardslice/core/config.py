"""Configuration management for Cardslice.

This module defines all configuration models using Pydantic for validation.
Configuration can be loaded from JSON files or constructed programmatically.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field


@dataclass(frozen=True)
class SlicePlan:
    """Resolved layer thickness and count for a slicing run."""

    thickness: float
    count: int

    @property
    def z_centers(self) -> NDArray[np.float64]:
        """Z height of each layer center, bottom first."""
        return self.thickness / 2 + np.arange(self.count, dtype=np.float64) * self.thickness


class LoaderParams(BaseModel):
    """Mesh parsing options."""

    strict: bool = Field(
        default=False,
        description="Reject ASCII files whose facet/loop structure is malformed",
    )


class SliceSettings(BaseModel):
    """Slicing parameters.

    The layer thickness and layer count are two views of the same setting;
    ``mode`` selects which one the user controls and the other is derived.
    """

    target_height_mm: float = Field(default=100.0, gt=0, description="Overall model height in mm")
    mode: Literal["thickness", "count"] = Field(
        default="thickness",
        description="Whether layer thickness or layer count is fixed",
    )
    layer_thickness_mm: float = Field(default=4.0, gt=0, description="Sheet thickness in mm")
    layer_count: int = Field(default=25, ge=1, description="Total number of layers")
    max_workers: int | None = Field(
        default=None,
        ge=1,
        description="Worker threads for slicing. None = one per CPU core.",
    )

    def plan(self) -> SlicePlan:
        """Resolve the active mode into a concrete thickness and count.

        In thickness mode the count is ``floor(height / thickness)`` taken
        with a 1e-9 relative tolerance, so it can be one more than a plain
        float floor when the height is a multiple of the thickness
        (0.3 / 0.1 gives 3 layers, not 2).
        """
        height = self.target_height_mm
        if self.mode == "count":
            return SlicePlan(thickness=height / self.layer_count, count=self.layer_count)

        thickness = self.layer_thickness_mm
        # Guard against 0.3 / 0.1 == 2.9999999999999996
        count = math.floor(height / thickness * (1 + 1e-9))
        return SlicePlan(thickness=thickness, count=count)


class LayoutParams(BaseModel):
    """Sheet layout and vector export parameters."""

    padding_mm: float = Field(default=10.0, ge=0, description="Gap between layer cells in mm")
    stroke_width: float = Field(default=0.1, gt=0, description="Cut line stroke width")
    label_layers: bool = Field(default=True, description="Etch a 'Layer N' label in each cell")
    label_font_size: float = Field(default=5.0, gt=0, description="Label font size in mm")


class CardsliceConfig(BaseModel):
    """Main configuration container."""

    loader: LoaderParams = Field(default_factory=LoaderParams)
    slicing: SliceSettings = Field(default_factory=SliceSettings)
    layout: LayoutParams = Field(default_factory=LayoutParams)

    @classmethod
    def from_file(cls, path: Path | str) -> CardsliceConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with open(path) as f:
            data = json.load(f)
        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)

    @classmethod
    def default(cls) -> CardsliceConfig:
        """Create a default configuration."""
        return cls()
