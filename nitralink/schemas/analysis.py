"""
NITRALINK - Analysis Schemas (Pydantic V2)
nitralink/schemas/analysis.py

Request payload, regression result and the three worker notifications.
"""

from typing import Annotated, Optional, List, Dict, Any, Union, Literal
from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator, ConfigDict
from pydantic.alias_generators import to_camel

from nitralink.schemas.common import BoundingBox, GeoJSONFeatureCollection


class AnalysisRequest(BaseModel):
    """
    One analysis run.

    camelCase names and the legacy worker names (wellData, tractData, k,
    bbox) are accepted so existing front-ends can post unchanged payloads.
    """
    measurement_points: GeoJSONFeatureCollection = Field(
        ...,
        validation_alias=AliasChoices("measurement_points", "measurementPoints", "wellData"),
        description="Point FeatureCollection of well samples",
    )
    regions: GeoJSONFeatureCollection = Field(
        ...,
        validation_alias=AliasChoices("regions", "tractData"),
        description="Polygon FeatureCollection of census tracts",
    )
    # Legacy payloads call this "k"; it has always been the IDW exponent.
    interpolation_power: float = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("interpolation_power", "interpolationPower", "k"),
        description="IDW distance exponent",
    )
    bounding_box: BoundingBox = Field(
        ...,
        validation_alias=AliasChoices("bounding_box", "boundingBox", "bbox"),
        description="[west, south, east, north] of the interpolation grid",
    )

    @field_validator('bounding_box', mode='before')
    @classmethod
    def parse_bbox_sequence(cls, v):
        """Accept [west, south, east, north] as well as a mapping."""
        if isinstance(v, (list, tuple)):
            return BoundingBox.from_sequence(v)
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "measurementPoints": {"type": "FeatureCollection", "features": []},
                "regions": {"type": "FeatureCollection", "features": []},
                "interpolationPower": 2,
                "boundingBox": [-92.9, 42.5, -86.8, 47.1]
            }
        }
    )


# ============================================================================
# REGRESSION RESULT
# ============================================================================

class WireModel(BaseModel):
    """
    Base for everything sent back to the caller.

    Attributes are snake_case in Python; model_dump(by_alias=True) gives the
    camelCase wire mapping (interpolatedGrid, rSquared, tractData, ...).
    Both spellings are accepted when validating.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariableStats(WireModel):
    """Descriptive statistics of one regression variable."""
    mean: float
    min: float
    max: float
    std: float = Field(..., description="Sample standard deviation (n-1)")


class ResidualStats(WireModel):
    """Residuals (observed - predicted) and their summary."""
    values: List[float]
    mean: float
    standard_deviation: float
    min: float
    max: float


class RegionDetail(WireModel):
    """One tract that entered the regression."""
    tract_id: Union[str, int]
    nitrate: float
    cancer_rate: float
    point_count: int


class RegressionResult(WireModel):
    """OLS fit of cancer rate on mean interpolated nitrate."""
    slope: float = Field(..., description="m")
    intercept: float = Field(..., description="b")
    r_squared: float = Field(..., ge=0, le=1)
    n: int = Field(..., ge=3, description="Number of valid tract pairs")
    p_value: float = Field(..., ge=0, le=1)
    std_error: float
    is_significant: bool

    residuals: ResidualStats
    nitrate: VariableStats
    cancer: VariableStats

    correlation: float = Field(..., ge=-1, le=1)
    tract_data: List[RegionDetail] = Field(default_factory=list)


# ============================================================================
# WORKER NOTIFICATIONS
# ============================================================================

class ProgressMessage(WireModel):
    """Intermediate notification; never sent after the terminal one."""
    kind: Literal["progress"] = "progress"
    message: str
    percent: float = Field(..., ge=0, le=100)


class CompleteMessage(WireModel):
    """Successful terminal notification."""
    kind: Literal["complete"] = "complete"
    interpolated_grid: Dict[str, Any]
    updated_regions: Dict[str, Any]
    regression: Optional[RegressionResult] = None


class ErrorMessage(WireModel):
    """Failed terminal notification; all result fields are null."""
    kind: Literal["error"] = "error"
    message: str
    error: Optional[Dict[str, Any]] = Field(None, description="Structured error (type, details)")
    interpolated_grid: None = None
    updated_regions: None = None
    regression: None = None


WorkerMessage = Union[ProgressMessage, CompleteMessage, ErrorMessage]

_worker_message_adapter = TypeAdapter(Annotated[WorkerMessage, Field(discriminator="kind")])


def parse_worker_message(data: Dict[str, Any]) -> WorkerMessage:
    """Rebuild a notification from its wire mapping (either key spelling)."""
    return _worker_message_adapter.validate_python(data)
