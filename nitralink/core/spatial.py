"""
NITRALINK Spatial Operations
Geometry construction, bounding boxes and point-in-polygon tests (shapely)
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
import shapely
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from nitralink.utils.exceptions import InvalidGeometryError

AREAL_TYPES = ("Polygon", "MultiPolygon")


class SpatialOps:
    """Geometry services used by the aggregation and grid stages."""

    @staticmethod
    def to_geometry(geometry: Optional[Mapping[str, Any]]) -> BaseGeometry:
        """Build a shapely geometry from a GeoJSON geometry mapping."""
        if not geometry:
            raise InvalidGeometryError("Feature has no geometry")

        geometry_type = geometry.get("type") if isinstance(geometry, Mapping) else None
        try:
            geom = shape(geometry)
        except Exception as e:
            raise InvalidGeometryError(
                f"Could not parse geometry: {e}",
                geometry_type=geometry_type,
            ) from e

        if geom.is_empty:
            raise InvalidGeometryError("Geometry is empty", geometry_type=geometry_type)
        return geom

    @staticmethod
    def to_polygon(geometry: Optional[Mapping[str, Any]]) -> BaseGeometry:
        """Build an areal geometry (Polygon or MultiPolygon)."""
        geom = SpatialOps.to_geometry(geometry)
        if geom.geom_type not in AREAL_TYPES:
            raise InvalidGeometryError(
                f"Expected Polygon or MultiPolygon, got {geom.geom_type}",
                geometry_type=geom.geom_type,
            )
        return geom

    @staticmethod
    def bbox(geom: BaseGeometry) -> Tuple[float, float, float, float]:
        """Axis-aligned bounding box (minx, miny, maxx, maxy)."""
        minx, miny, maxx, maxy = geom.bounds
        return float(minx), float(miny), float(maxx), float(maxy)

    @staticmethod
    def points_in_polygon(geom: BaseGeometry, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """
        Boolean mask of the points lying inside or on the boundary of geom.

        Boundary points count as inside, so a grid point on a shared tract
        edge contributes to both tracts.
        """
        if len(xs) == 0:
            return np.zeros(0, dtype=bool)
        shapely.prepare(geom)
        return np.asarray(shapely.intersects_xy(geom, xs, ys), dtype=bool)

    @staticmethod
    def point_feature(lon: float, lat: float, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GeoJSON Point feature."""
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [float(lon), float(lat)]},
            "properties": dict(properties or {}),
        }

    @staticmethod
    def feature_collection(features: List[Dict[str, Any]]) -> Dict[str, Any]:
        """GeoJSON FeatureCollection."""
        return {"type": "FeatureCollection", "features": features}

    @staticmethod
    def point_coordinates(feature: Mapping[str, Any]) -> Tuple[float, float]:
        """(lon, lat) of a Point feature."""
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "Point":
            raise InvalidGeometryError(
                "Measurement feature is not a Point",
                geometry_type=geometry.get("type"),
            )
        coords = geometry.get("coordinates") or []
        if len(coords) < 2:
            raise InvalidGeometryError("Point has fewer than 2 coordinates", geometry_type="Point")
        return float(coords[0]), float(coords[1])


spatial_ops = SpatialOps()
