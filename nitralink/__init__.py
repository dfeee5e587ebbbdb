"""
NITRALINK - Nitrate / Cancer Spatial Correlation
================================================

Interpolates well nitrate samples onto a grid (IDW), averages the grid per
census tract and regresses tract cancer rates on the tract nitrate level.
The analysis runs in a background process that streams progress
notifications followed by one result or error.

Modules:
    - config: Settings (pydantic-settings, .env aware)
    - core: grid, IDW, zonal aggregation, regression, pipeline
    - schemas: request, result and notification models
    - services: background worker
"""

__version__ = "0.1.0"

from nitralink.config import Settings, settings
from nitralink.core.pipeline import AnalysisPipeline
from nitralink.services.worker import AnalysisWorker

__all__ = [
    "Settings",
    "settings",
    "AnalysisPipeline",
    "AnalysisWorker",
    "__version__",
]
