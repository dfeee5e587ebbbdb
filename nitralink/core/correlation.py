"""
NITRALINK Spatial Correlation Analysis
OLS regression of tract cancer rate on mean interpolated nitrate
"""

import math
import numbers
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import stats

from nitralink.config import Settings, settings as default_settings
from nitralink.schemas.analysis import (
    RegionDetail,
    RegressionResult,
    ResidualStats,
    VariableStats,
)
from nitralink.utils.logger import get_logger

logger = get_logger(__name__)


def _is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value) and value > 0


class CorrelationAnalyzer:
    """Regression and correlation between tract nitrate and cancer rate."""

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.min_pairs = config.MIN_REGRESSION_PAIRS
        self.significance_level = config.SIGNIFICANCE_LEVEL
        self.average_field = config.REGION_AVERAGE_FIELD
        self.count_field = config.REGION_COUNT_FIELD
        self.rate_fields = list(config.DISEASE_RATE_FIELDS)
        self.id_fields = list(config.REGION_ID_FIELDS)

    @staticmethod
    def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> Tuple[float, float]:
        """Calculate Pearson correlation coefficient and its p-value."""
        if len(x) < 3 or len(y) < 3:
            raise ValueError("Need at least 3 data points")

        # Constant input has no defined correlation; report no association
        if np.ptp(x) == 0 or np.ptp(y) == 0:
            return 0.0, 1.0

        corr, p_value = stats.pearsonr(x, y)
        return float(np.clip(corr, -1.0, 1.0)), float(p_value)

    @staticmethod
    def linear_regression(x: Sequence[float], y: Sequence[float]) -> Dict[str, float]:
        """Calculate least-squares line y = slope * x + intercept."""
        if np.ptp(x) == 0:
            # Vertical data: no slope can be estimated, predict the mean
            return {
                "slope": 0.0,
                "intercept": float(np.mean(y)),
                "r_squared": 0.0,
                "p_value": 1.0,
                "std_error": 0.0,
            }

        slope, intercept, r_value, p_value, std_err = stats.linregress(x, y)

        return {
            "slope": float(slope),
            "intercept": float(intercept),
            "r_squared": float(min(max(r_value ** 2, 0.0), 1.0)),
            "p_value": float(np.clip(p_value, 0.0, 1.0)) if math.isfinite(p_value) else 1.0,
            "std_error": float(std_err) if math.isfinite(std_err) else 0.0,
        }

    @staticmethod
    def describe(values: Sequence[float]) -> Dict[str, float]:
        """Mean, min, max and sample (n-1) standard deviation."""
        arr = np.asarray(values, dtype=float)
        return {
            "mean": float(np.mean(arr)),
            "min": float(np.min(arr)),
            "max": float(np.max(arr)),
            "std": float(np.std(arr, ddof=1)) if len(arr) > 1 else 0.0,
        }

    def _first_property(self, properties: Mapping[str, Any], names: List[str]) -> Any:
        for name in names:
            value = properties.get(name)
            if value is not None and value != "":
                return value
        return None

    def collect_pairs(self, regions: Mapping[str, Any]) -> List[RegionDetail]:
        """Tracts with a positive nitrate average, positive rate and >= 1 grid point."""
        details: List[RegionDetail] = []

        for index, feature in enumerate(regions.get("features") or []):
            properties = feature.get("properties") if isinstance(feature, Mapping) else None
            if not isinstance(properties, Mapping):
                properties = {}
            nitrate = properties.get(self.average_field)
            rate = self._first_property(properties, self.rate_fields)
            count = properties.get(self.count_field) or 0
            tract_id: Union[str, int] = self._first_property(properties, self.id_fields)
            if tract_id is None:
                tract_id = index
            elif not isinstance(tract_id, (str, int)):
                tract_id = str(tract_id)

            if isinstance(rate, str):
                try:
                    rate = float(rate)
                except ValueError:
                    continue

            if _is_positive_number(nitrate) and _is_positive_number(rate) and _is_positive_number(count) and count >= 1:
                details.append(
                    RegionDetail(
                        tract_id=tract_id,
                        nitrate=float(nitrate),
                        cancer_rate=float(rate),
                        point_count=int(count),
                    )
                )

        return details

    def analyze(self, regions: Mapping[str, Any]) -> Optional[RegressionResult]:
        """
        Regress cancer rate on nitrate for the aggregated tracts.

        Returns None when fewer than MIN_REGRESSION_PAIRS tracts are usable;
        that is an expected outcome, not an error.
        """
        details = self.collect_pairs(regions)
        logger.info("Collected regression pairs", valid_pairs=len(details))

        if len(details) < self.min_pairs:
            logger.info(
                "Insufficient data for regression",
                valid_pairs=len(details),
                required=self.min_pairs,
            )
            return None

        nitrate = np.array([d.nitrate for d in details], dtype=float)
        cancer = np.array([d.cancer_rate for d in details], dtype=float)

        regression = self.linear_regression(nitrate, cancer)
        predicted = regression["slope"] * nitrate + regression["intercept"]
        residuals = cancer - predicted
        residual_stats = self.describe(residuals)

        correlation, _ = self.pearson_correlation(nitrate, cancer)

        result = RegressionResult(
            slope=regression["slope"],
            intercept=regression["intercept"],
            r_squared=regression["r_squared"],
            n=len(details),
            p_value=regression["p_value"],
            std_error=regression["std_error"],
            is_significant=regression["p_value"] < self.significance_level,
            residuals=ResidualStats(
                values=[float(r) for r in residuals],
                mean=residual_stats["mean"],
                standard_deviation=residual_stats["std"],
                min=residual_stats["min"],
                max=residual_stats["max"],
            ),
            nitrate=VariableStats(**self.describe(nitrate)),
            cancer=VariableStats(**self.describe(cancer)),
            correlation=correlation,
            tract_data=details,
        )

        logger.info(
            "Regression completed",
            n=result.n,
            slope=result.slope,
            r_squared=result.r_squared,
            correlation=result.correlation,
        )
        return result
