"""ParamConfig: Expert defaults for the texture pipeline.

Every tunable parameter has its default here. Runtime code never reads
ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from wxtex.schemas.base import WxtexBaseModel


DEFAULT_STORE_URL = (
    "https://storage.googleapis.com/weather-next/input/"
    "20251105_00hr_01_preds/predictions.zarr"
)


# =============================================================================
# Nested Configuration Models
# =============================================================================

class StoreConfig(WxtexBaseModel):
    """Chunked array store location."""
    url: str = DEFAULT_STORE_URL
    consolidated: bool = True


class VariableNamesConfig(WxtexBaseModel):
    """Store variable names backing each layer."""
    temperature: str = "2m_temperature"
    rain: str = "total_precipitation_6hr"
    pressure: str = "mean_sea_level_pressure"
    wind_u: str = "10m_u_component_of_wind"
    wind_v: str = "10m_v_component_of_wind"


class CoordNamesConfig(WxtexBaseModel):
    """Coordinate variable names."""
    time: str = "datetime"
    lat: str = "lat"
    lon: str = "lon"


class EncodingConfig(WxtexBaseModel):
    """Texture encoding constants shared with the renderer's decoder."""
    wind_max_speed: float = Field(20.0, gt=0, description="Half-range of u/v encoding")
    degenerate_epsilon: float = Field(0.001, gt=0)

    @field_validator("wind_max_speed", "degenerate_epsilon", mode="before")
    @classmethod
    def coerce_to_float(cls, v):
        """Allow int or float."""
        return float(v)


class SelectionConfig(WxtexBaseModel):
    """Initially active layers and timeline scope."""
    layers: list[Literal["temperature", "rain", "pressure"]] = Field(
        default_factory=lambda: ["temperature"]
    )
    wind_enabled: bool = True
    range_days: int = Field(1, ge=1)

    @field_validator("layers", mode="before")
    @classmethod
    def normalize_layer_names(cls, v):
        """Normalize layer names to lowercase."""
        if isinstance(v, str):
            v = [v]
        return [item.lower().strip() if isinstance(item, str) else item for item in v]


class WorkerConfig(WxtexBaseModel):
    """Wind encoder worker thread settings."""
    queue_size: int = Field(16, ge=1)
    poll_interval: float = Field(0.5, gt=0)
    join_timeout: float = Field(5.0, gt=0)


class LoggingConfig(WxtexBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(WxtexBaseModel):
    """Complete expert configuration with all defaults.

    Not used directly by runtime code. It is the base layer of config
    resolution::

        internal_cfg = resolve_config(param_cfg, user_cfg)
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    variables: VariableNamesConfig = Field(default_factory=VariableNamesConfig)
    coords: CoordNamesConfig = Field(default_factory=CoordNamesConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
