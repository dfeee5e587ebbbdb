"""
NITRALINK - Common Pydantic Schemas
nitralink/schemas/common.py

Shared geographic schemas used by requests, results and the core stages.
"""

from __future__ import annotations  # Enable forward references
from typing import Optional, List, Any, Dict, Literal, Sequence, Tuple
from pydantic import BaseModel, Field, ConfigDict, field_validator
import math

# ============================================================================
# GEOGRAPHIC SCHEMAS
# ============================================================================

class BoundingBox(BaseModel):
    """Axis-aligned bounding box in the well dataset's coordinate units."""
    west: float = Field(..., description="Minimum longitude / x")
    south: float = Field(..., description="Minimum latitude / y")
    east: float = Field(..., description="Maximum longitude / x")
    north: float = Field(..., description="Maximum latitude / y")

    @field_validator('west', 'south', 'east', 'north')
    @classmethod
    def finite(cls, v):
        if not math.isfinite(v):
            raise ValueError('bounding box coordinates must be finite numbers')
        return v

    @property
    def is_degenerate(self) -> bool:
        """True when the box has no positive width or height."""
        return self.east <= self.west or self.north <= self.south

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def contains(self, x: float, y: float, tolerance: float = 0.0) -> bool:
        return (
            self.west - tolerance <= x <= self.east + tolerance
            and self.south - tolerance <= y <= self.north + tolerance
        )

    @classmethod
    def from_sequence(cls, bbox: Sequence[float]) -> BoundingBox:
        """Parse [west, south, east, north]."""
        coords = list(bbox)
        if len(coords) != 4:
            raise ValueError("bounding box must have 4 values [west, south, east, north]")
        return cls(west=coords[0], south=coords[1], east=coords[2], north=coords[3])

    model_config = ConfigDict(frozen=True, json_schema_extra={"example": {"west": -92.9, "south": 42.5, "east": -86.8, "north": 47.1}})


# ============================================================================
# GEOJSON SCHEMAS (Simplified to avoid recursion)
# ============================================================================

class GeoJSONFeatureCollection(BaseModel):
    """GeoJSON FeatureCollection as delivered by the caller."""
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Dict[str, Any]] = Field(..., min_length=1)
    metadata: Optional[Dict[str, Any]] = Field(None)

    def to_geojson(self) -> Dict[str, Any]:
        """Plain mapping with any foreign members (crs, name, ...) preserved."""
        data: Dict[str, Any] = {"type": self.type, "features": self.features}
        if self.metadata is not None:
            data["metadata"] = self.metadata
        data.update(self.model_extra or {})
        return data

    model_config = ConfigDict(extra="allow", json_schema_extra={"example": {"type": "FeatureCollection", "features": [{"type": "Feature", "geometry": {"type": "Point", "coordinates": [-89.5, 44.5]}, "properties": {"nitr_ran": 3.2}}]}})
