"""
Background execution services.

Usage:
    from nitralink.services import AnalysisWorker

    with AnalysisWorker() as worker:
        result = worker.run(payload, on_progress=print)
"""

from nitralink.services.worker import AnalysisWorker

__all__ = [
    "AnalysisWorker",
]
