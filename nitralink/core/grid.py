"""
NITRALINK Grid Builder
Regular sampling grid over a bounding box
"""

from typing import Optional, Sequence, Union

import numpy as np

from nitralink.config import Settings, settings as default_settings
from nitralink.schemas.common import BoundingBox
from nitralink.utils.logger import get_logger

logger = get_logger(__name__)


class GridBuilder:
    """Generate (lon, lat) sample locations at a fixed cell size."""

    def __init__(
        self,
        cell_size: Optional[float] = None,
        tolerance: Optional[float] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.cell_size = float(cell_size if cell_size is not None else config.GRID_CELL_SIZE)
        self.tolerance = float(tolerance if tolerance is not None else config.GRID_EDGE_TOLERANCE)
        if self.cell_size <= 0:
            raise ValueError("cell_size must be positive")

    def _axis(self, start: float, stop: float) -> np.ndarray:
        """Steps start, start + cell, ... up to stop (inclusive within tolerance)."""
        steps = int(np.floor((stop - start + self.tolerance) / self.cell_size)) + 1
        values = start + np.arange(steps, dtype=float) * self.cell_size
        return np.minimum(values, stop)

    def build(self, bbox: Union[BoundingBox, Sequence[float]]) -> np.ndarray:
        """
        Build the grid for bbox.

        Longitude is the outer loop and latitude the inner one, so the
        returned (N, 2) array lists each column south to north before
        moving east. A degenerate box yields an empty (0, 2) array.
        """
        if not isinstance(bbox, BoundingBox):
            bbox = BoundingBox.from_sequence(bbox)

        if bbox.is_degenerate:
            logger.warning("Degenerate bounding box - empty grid", bbox=list(bbox.as_tuple()))
            return np.empty((0, 2), dtype=float)

        lons = self._axis(bbox.west, bbox.east)
        lats = self._axis(bbox.south, bbox.north)
        lon_grid, lat_grid = np.meshgrid(lons, lats, indexing="ij")
        grid = np.column_stack([lon_grid.ravel(), lat_grid.ravel()])

        logger.info(
            "Created interpolation grid",
            grid_points=len(grid),
            columns=len(lons),
            rows=len(lats),
            cell_size=self.cell_size,
        )
        return grid
