"""
NITRALINK Schemas Package
Centralized import location for all Pydantic schemas.

USAGE:
    from nitralink.schemas import AnalysisRequest, RegressionResult
    from nitralink.schemas.common import BoundingBox
"""

from nitralink.schemas.common import (
    BoundingBox,
    GeoJSONFeatureCollection,
)
from nitralink.schemas.analysis import (
    AnalysisRequest,
    VariableStats,
    ResidualStats,
    RegionDetail,
    RegressionResult,
    ProgressMessage,
    CompleteMessage,
    ErrorMessage,
    WorkerMessage,
    parse_worker_message,
)

__all__ = [
    "BoundingBox",
    "GeoJSONFeatureCollection",
    "AnalysisRequest",
    "VariableStats",
    "ResidualStats",
    "RegionDetail",
    "RegressionResult",
    "ProgressMessage",
    "CompleteMessage",
    "ErrorMessage",
    "WorkerMessage",
    "parse_worker_message",
]
