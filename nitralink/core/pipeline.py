"""
NITRALINK Analysis Pipeline
Validate a request, then run grid -> IDW -> zonal aggregation -> regression
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from pydantic import ValidationError

from nitralink.config import Settings, settings as default_settings
from nitralink.core.aggregation import ZonalAggregator
from nitralink.core.correlation import CorrelationAnalyzer
from nitralink.core.grid import GridBuilder
from nitralink.core.interpolation import IDWInterpolator
from nitralink.schemas.analysis import (
    AnalysisRequest,
    CompleteMessage,
    ErrorMessage,
    ProgressMessage,
)
from nitralink.utils.exceptions import (
    AnalysisError,
    InvalidInputError,
    NitraLinkError,
    error_payload,
)
from nitralink.utils.logger import get_logger

logger = get_logger(__name__)

ProgressSink = Callable[[ProgressMessage], None]
TerminalMessage = Union[CompleteMessage, ErrorMessage]


class AnalysisPipeline:
    """
    Runs one analysis synchronously.

    Progress notifications go to the ``emit`` callback; the terminal
    CompleteMessage or ErrorMessage is returned. ``run`` never raises:
    every failure, including invalid input, becomes an ErrorMessage.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @staticmethod
    def validate(payload: Any) -> AnalysisRequest:
        """Parse the request payload or raise InvalidInputError."""
        if not isinstance(payload, Mapping):
            raise InvalidInputError("request payload must be a mapping")

        try:
            return AnalysisRequest.model_validate(dict(payload))
        except ValidationError as e:
            errors = [
                {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                for err in e.errors(include_url=False)
            ]
            summary = "; ".join(f"{err['loc']}: {err['msg']}" for err in errors)
            raise InvalidInputError(summary, errors=errors) from e

    def run(self, payload: Any, emit: Optional[ProgressSink] = None) -> TerminalMessage:
        try:
            request = self.validate(payload)
        except InvalidInputError as e:
            logger.warning("Rejected analysis request", error_message=e.message)
            return self._error(e)

        try:
            return self._execute(request, emit)
        except Exception as e:
            logger.error(
                "Analysis failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return self._error(e)

    @staticmethod
    def _error(exc: BaseException) -> ErrorMessage:
        payload = error_payload(exc)
        return ErrorMessage(message=payload["message"], error=payload)

    @staticmethod
    @contextmanager
    def _stage(name: str) -> Iterator[None]:
        """Tag failures with the stage they happened in."""
        try:
            yield
        except NitraLinkError as e:
            e.details.setdefault("stage", name)
            raise
        except Exception as e:
            raise AnalysisError(f"{name} failed: {e}", stage=name) from e

    def _execute(self, request: AnalysisRequest, emit: Optional[ProgressSink]) -> CompleteMessage:
        config = self.config
        milestones = config.PROGRESS_MILESTONES

        def progress(message: str, percent: float) -> None:
            if emit is not None:
                emit(ProgressMessage(message=message, percent=percent))

        logger.info(
            "Starting analysis",
            wells=len(request.measurement_points.features),
            tracts=len(request.regions.features),
            power=request.interpolation_power,
            bbox=list(request.bounding_box.as_tuple()),
        )
        progress("Starting IDW interpolation...", milestones["started"])

        with self._stage("interpolation"):
            grid = GridBuilder(config=config).build(request.bounding_box)
            interpolator = IDWInterpolator(power=request.interpolation_power, config=config)
            measurements = interpolator.measurements_from_features(
                request.measurement_points.features, config.MEASUREMENT_VALUE_FIELD
            )
            values = interpolator.interpolate(measurements, grid)
            interpolated_grid = interpolator.to_feature_collection(grid, values, config.GRID_VALUE_FIELD)

        progress("IDW complete. Starting zonal aggregation...", milestones["interpolated"])

        with self._stage("aggregation"):
            aggregator = ZonalAggregator(config=config)
            updated_regions, outcomes = aggregator.aggregate(
                request.regions.to_geojson(), grid, values, on_progress=progress
            )

        failures = [{"tract_index": o.index, "reason": o.error} for o in outcomes if not o.ok]
        if failures:
            logger.warning(
                "Tracts defaulted to zero statistics",
                failed_tracts=len(failures),
                failures=failures,
            )

        progress("Aggregation complete. Running regression...", milestones["aggregated"])

        with self._stage("regression"):
            regression = CorrelationAnalyzer(config=config).analyze(updated_regions)

        progress("Analysis complete!", milestones["complete"])
        logger.info("Analysis complete", regression_available=regression is not None)

        return CompleteMessage(
            interpolated_grid=interpolated_grid,
            updated_regions=updated_regions,
            regression=regression,
        )
