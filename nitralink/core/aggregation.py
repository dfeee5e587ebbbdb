"""
NITRALINK Zonal Aggregation
Average interpolated nitrate per census tract with bounding-box pruning
"""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np

from nitralink.config import Settings, settings as default_settings
from nitralink.core.spatial import spatial_ops
from nitralink.utils.exceptions import DataValidationError
from nitralink.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]


@dataclass(frozen=True)
class RegionOutcome:
    """Statistics for one tract; error holds the reason when it failed."""
    index: int
    average: float
    count: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ZonalAggregator:
    """Zonal mean of grid values per polygon region."""

    def __init__(
        self,
        progress_interval: Optional[int] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.progress_interval = int(
            progress_interval if progress_interval is not None else config.AGGREGATION_PROGRESS_INTERVAL
        )
        self.average_field = config.REGION_AVERAGE_FIELD
        self.count_field = config.REGION_COUNT_FIELD

    @staticmethod
    def region_stats(
        geometry: Mapping[str, Any],
        grid: np.ndarray,
        values: np.ndarray,
    ) -> Tuple[float, int]:
        """Mean and count of the grid values inside one polygon."""
        geom = spatial_ops.to_polygon(geometry)
        min_x, min_y, max_x, max_y = spatial_ops.bbox(geom)

        xs, ys = grid[:, 0], grid[:, 1]
        # Cheap superset filter before the exact test
        candidates = np.flatnonzero((xs >= min_x) & (xs <= max_x) & (ys >= min_y) & (ys <= max_y))
        if len(candidates) == 0:
            return 0.0, 0

        inside = spatial_ops.points_in_polygon(geom, xs[candidates], ys[candidates])
        members = values[candidates[inside]]
        if len(members) == 0:
            return 0.0, 0
        return float(np.mean(members)), int(len(members))

    def aggregate(
        self,
        regions: Mapping[str, Any],
        grid: np.ndarray,
        values: np.ndarray,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Tuple[Dict[str, Any], List[RegionOutcome]]:
        """
        Compute {average, count} for every tract.

        Works on a deep copy of regions; the caller's FeatureCollection is
        never modified. A tract that fails (malformed geometry, ...) is
        logged, recorded with its error and given 0 / 0; the remaining
        tracts are still processed.

        Returns:
            (updated FeatureCollection, one RegionOutcome per tract)
        """
        updated = copy.deepcopy(dict(regions))
        features = updated.get("features") or []
        total = len(features)
        grid = np.asarray(grid, dtype=float).reshape(-1, 2)
        values = np.asarray(values, dtype=float)

        logger.info("Starting zonal aggregation", tracts=total, grid_points=len(grid))

        outcomes: List[RegionOutcome] = []
        for index, feature in enumerate(features):
            try:
                properties = feature.get("properties")
                if properties is not None and not isinstance(properties, dict):
                    raise DataValidationError(
                        "Tract properties must be a mapping",
                        field="properties",
                        value=type(properties).__name__,
                    )
                average, count = self.region_stats(feature.get("geometry"), grid, values)
                outcome = RegionOutcome(index=index, average=average, count=count)
            except Exception as e:
                logger.warning(
                    "Error processing tract - defaulting to zero statistics",
                    tract_index=index,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )
                outcome = RegionOutcome(index=index, average=0.0, count=0, error=f"{type(e).__name__}: {e}")

            if isinstance(feature, dict):
                if not isinstance(feature.get("properties"), dict):
                    feature["properties"] = {}
                feature["properties"][self.average_field] = outcome.average
                feature["properties"][self.count_field] = outcome.count
            outcomes.append(outcome)

            processed = index + 1
            if on_progress is not None and processed % self.progress_interval == 0:
                on_progress(
                    f"Processed {processed}/{total} census tracts",
                    processed / total * 100,
                )

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info("Zonal aggregation completed", tracts=total, failed_tracts=failed)
        return updated, outcomes
