"""
NITRALINK IDW Interpolation
Bounded-radius, bounded-neighbour inverse distance weighting of well
nitrate samples onto the analysis grid.

Distances are planar Euclidean in the coordinate units of the well
dataset. With longitude/latitude input this is an approximation (a degree
of longitude shrinks with latitude); no geodesic correction is applied.
"""

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
from scipy.spatial import cKDTree

from nitralink.config import Settings, settings as default_settings
from nitralink.core.spatial import spatial_ops
from nitralink.utils.exceptions import DataValidationError, InterpolationError
from nitralink.utils.logger import get_logger

logger = get_logger(__name__)


class IDWInterpolator:
    """
    Estimate a value at each grid point from nearby wells.

    Per grid point:
    - a well closer than ``epsilon`` is copied verbatim (exact match)
    - otherwise the ``max_neighbors`` closest wells inside ``search_radius``
      are averaged with weights 1/d^power
    - with no well inside the radius, the globally nearest well's value is
      used, so every grid point gets a defined value
    """

    def __init__(
        self,
        power: float = 2.0,
        search_radius: Optional[float] = None,
        max_neighbors: Optional[int] = None,
        epsilon: Optional[float] = None,
        chunk_size: Optional[int] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        if power is None or not math.isfinite(power) or power <= 0:
            raise InterpolationError(f"IDW power must be a positive number, got {power}")

        self.power = float(power)
        self.search_radius = float(search_radius if search_radius is not None else config.IDW_SEARCH_RADIUS)
        self.max_neighbors = int(max_neighbors if max_neighbors is not None else config.IDW_MAX_NEIGHBORS)
        self.epsilon = float(epsilon if epsilon is not None else config.IDW_EXACT_MATCH_EPSILON)
        self.chunk_size = int(chunk_size if chunk_size is not None else config.IDW_CHUNK_SIZE)

        if self.max_neighbors < 1:
            raise InterpolationError("max_neighbors must be at least 1")

    @staticmethod
    def measurements_from_features(features: Iterable[Mapping[str, Any]], value_field: str) -> np.ndarray:
        """
        Read well features into an (M, 3) array of [lon, lat, value].

        A missing, null or non-finite value is read as 0.
        """
        rows = []
        for index, feature in enumerate(features):
            lon, lat = spatial_ops.point_coordinates(feature)
            raw = (feature.get("properties") or {}).get(value_field)

            if raw is None or raw == "":
                value = 0.0
            else:
                try:
                    value = float(raw)
                except (TypeError, ValueError) as e:
                    raise DataValidationError(
                        f"Well {index} has a non-numeric '{value_field}' value",
                        field=value_field,
                        value=raw,
                    ) from e
                if not math.isfinite(value):
                    value = 0.0

            rows.append((lon, lat, value))

        return np.asarray(rows, dtype=float).reshape(-1, 3)

    def interpolate(self, measurements: np.ndarray, grid: np.ndarray) -> np.ndarray:
        """One interpolated value per row of grid."""
        measurements = np.asarray(measurements, dtype=float).reshape(-1, 3)
        grid = np.asarray(grid, dtype=float).reshape(-1, 2)

        if len(grid) == 0:
            return np.empty(0, dtype=float)
        if len(measurements) == 0:
            logger.warning("No wells to interpolate from - grid filled with 0", grid_points=len(grid))
            return np.zeros(len(grid), dtype=float)

        tree = cKDTree(measurements[:, :2])
        well_v = measurements[:, 2]

        values = np.empty(len(grid), dtype=float)
        for start in range(0, len(grid), self.chunk_size):
            stop = start + self.chunk_size
            values[start:stop] = self._interpolate_block(tree, well_v, grid[start:stop])

        logger.info(
            "IDW interpolation complete",
            grid_points=len(grid),
            wells=len(measurements),
            power=self.power,
            search_radius=self.search_radius,
            max_neighbors=self.max_neighbors,
        )
        return values

    def _interpolate_block(self, tree: cKDTree, well_v: np.ndarray, block: np.ndarray) -> np.ndarray:
        k = min(self.max_neighbors, len(well_v))
        # Inclusive radius; missing neighbours come back as inf with index len(well_v)
        near_d, order = tree.query(block, k=k, distance_upper_bound=self.search_radius * (1 + 1e-12))
        near_d = np.asarray(near_d, dtype=float).reshape(len(block), k)
        order = np.asarray(order).reshape(len(block), k)

        used = np.isfinite(near_d)
        has_neighbors = used[:, 0]
        near_v = well_v[np.where(used, order, 0)]

        fallback = np.zeros(len(block), dtype=float)
        lonely = ~has_neighbors
        if lonely.any():
            _, nearest = tree.query(block[lonely], k=1)
            fallback[lonely] = well_v[nearest]

        exact = has_neighbors & (near_d[:, 0] < self.epsilon)

        # Weights relative to the closest well: (d0/d)^p
        closest = np.where(has_neighbors & ~exact, near_d[:, 0], 1.0)[:, None]
        safe_d = np.where(used & (near_d > 0), near_d, 1.0)
        weights = np.where(used, np.power(closest / safe_d, self.power), 0.0)

        numerator = np.sum(weights * np.where(used, near_v, 0.0), axis=1)
        denominator = np.sum(weights, axis=1)
        weighted = np.divide(numerator, denominator, out=fallback.copy(), where=denominator > 0)

        return np.where(exact, near_v[:, 0], np.where(has_neighbors, weighted, fallback))

    @staticmethod
    def to_feature_collection(grid: np.ndarray, values: np.ndarray, value_field: str) -> Dict[str, Any]:
        """Grid points as a GeoJSON FeatureCollection of Points."""
        features: List[Dict[str, Any]] = [
            spatial_ops.point_feature(lon, lat, {value_field: float(value)})
            for (lon, lat), value in zip(grid, values)
        ]
        return spatial_ops.feature_collection(features)
