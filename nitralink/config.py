"""
NITRALINK Configuration Settings
Centralized settings management using Pydantic with environment variable support.
"""
from typing import Dict, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from dotenv import load_dotenv

# Force load .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


class Settings(BaseSettings):
    """NITRALINK Analysis Settings"""

    # Application
    APP_NAME: str = "NITRALINK"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = Field(default="development", description="Runtime environment")

    # Grid Builder
    GRID_CELL_SIZE: float = Field(
        default=0.05,
        description="Grid spacing in coordinate units of the well dataset"
    )
    GRID_EDGE_TOLERANCE: float = Field(
        default=1e-9,
        description="Slack allowed when the last grid step lands on the east/north edge"
    )

    # IDW Interpolator
    IDW_SEARCH_RADIUS: float = Field(
        default=0.3,
        description="Neighbour search radius in coordinate units"
    )
    IDW_MAX_NEIGHBORS: int = Field(
        default=8,
        description="Maximum number of wells weighted per grid point"
    )
    IDW_EXACT_MATCH_EPSILON: float = Field(
        default=0.001,
        description="Distance below which a well value is copied verbatim"
    )
    IDW_CHUNK_SIZE: int = Field(
        default=2048,
        description="Grid points per distance-matrix block"
    )

    # Spatial Aggregator
    AGGREGATION_PROGRESS_INTERVAL: int = Field(
        default=50,
        description="Emit a progress notification every N regions"
    )

    # Pipeline progress schedule (percent)
    PROGRESS_MILESTONES: Dict[str, float] = Field(
        default={
            "started": 10.0,
            "interpolated": 40.0,
            "aggregated": 90.0,
            "complete": 100.0,
        },
        description="Progress percentages emitted at stage boundaries"
    )

    # Regression Analyzer
    MIN_REGRESSION_PAIRS: int = Field(
        default=3,
        description="Minimum valid (nitrate, rate) pairs for a regression"
    )
    SIGNIFICANCE_LEVEL: float = Field(
        default=0.05,
        description="p-value threshold for is_significant"
    )

    # Feature property names
    MEASUREMENT_VALUE_FIELD: str = Field(
        default="nitr_ran",
        description="Well property holding the nitrate concentration"
    )
    GRID_VALUE_FIELD: str = Field(
        default="idw",
        description="Grid point property holding the interpolated value"
    )
    REGION_AVERAGE_FIELD: str = Field(
        default="avg_nitrate",
        description="Region property receiving the mean interpolated value"
    )
    REGION_COUNT_FIELD: str = Field(
        default="nitrate_point_count",
        description="Region property receiving the contributing grid point count"
    )
    DISEASE_RATE_FIELDS: List[str] = Field(
        default=["canrate", "cancer_rate"],
        description="Region properties searched (in order) for the incidence rate"
    )
    REGION_ID_FIELDS: List[str] = Field(
        default=["GEOID", "TRACT"],
        description="Region properties searched (in order) for an identifier"
    )

    # Background worker
    WORKER_START_METHOD: str = Field(
        default="spawn",
        description="multiprocessing start method for the analysis process"
    )

    @field_validator(
        "GRID_CELL_SIZE", "IDW_SEARCH_RADIUS", "IDW_EXACT_MATCH_EPSILON", "GRID_EDGE_TOLERANCE"
    )
    @classmethod
    def validate_positive_float(cls, v):
        """Ensure distances and sizes are positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("IDW_MAX_NEIGHBORS", "IDW_CHUNK_SIZE", "AGGREGATION_PROGRESS_INTERVAL")
    @classmethod
    def validate_positive_int(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("PROGRESS_MILESTONES")
    @classmethod
    def validate_milestones(cls, v):
        """Ensure every stage has a percentage between 0 and 100."""
        required = {"started", "interpolated", "aggregated", "complete"}
        missing = required - set(v)
        if missing:
            raise ValueError(f"missing progress milestones: {sorted(missing)}")
        for name, pct in v.items():
            if not 0 <= pct <= 100:
                raise ValueError(f"milestone '{name}' must be between 0 and 100")
        return v

    @field_validator("MIN_REGRESSION_PAIRS")
    @classmethod
    def validate_min_pairs(cls, v):
        """A line through fewer than 3 points has no residual information."""
        if v < 3:
            raise ValueError("MIN_REGRESSION_PAIRS must be at least 3")
        return v

    @field_validator("SIGNIFICANCE_LEVEL")
    @classmethod
    def validate_significance(cls, v):
        if not 0 < v < 1:
            raise ValueError("SIGNIFICANCE_LEVEL must be between 0 and 1")
        return v

    @field_validator("WORKER_START_METHOD")
    @classmethod
    def validate_start_method(cls, v):
        if v not in ("spawn", "fork", "forkserver"):
            raise ValueError("WORKER_START_METHOD must be spawn, fork or forkserver")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
