"""
NITRALINK Core Logic Package
"""

from nitralink.core.spatial import spatial_ops, SpatialOps
from nitralink.core.grid import GridBuilder
from nitralink.core.interpolation import IDWInterpolator
from nitralink.core.aggregation import ZonalAggregator, RegionOutcome
from nitralink.core.correlation import CorrelationAnalyzer
from nitralink.core.pipeline import AnalysisPipeline

__all__ = [
    "spatial_ops",
    "SpatialOps",
    "GridBuilder",
    "IDWInterpolator",
    "ZonalAggregator",
    "RegionOutcome",
    "CorrelationAnalyzer",
    "AnalysisPipeline",
]
