"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, frozen, and has explicit values for everything runtime code
depends on. No .get() calls or fallback defaults in runtime code.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from wxtex.schemas.base import WxtexBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalStoreConfig(WxtexBaseModel):
    """Runtime store configuration."""
    url: str
    consolidated: bool


class InternalVariableNamesConfig(WxtexBaseModel):
    """Runtime variable name mappings."""
    temperature: str
    rain: str
    pressure: str
    wind_u: str
    wind_v: str


class InternalCoordNamesConfig(WxtexBaseModel):
    """Runtime coordinate name mappings."""
    time: str
    lat: str
    lon: str


class InternalEncodingConfig(WxtexBaseModel):
    """Runtime encoding constants."""
    wind_max_speed: float = Field(gt=0)
    degenerate_epsilon: float = Field(gt=0)


class InternalSelectionConfig(WxtexBaseModel):
    """Runtime layer selection."""
    layers: list[Literal["temperature", "rain", "pressure"]]
    wind_enabled: bool
    range_days: int = Field(ge=1)


class InternalWorkerConfig(WxtexBaseModel):
    """Runtime worker settings."""
    queue_size: int = Field(ge=1)
    poll_interval: float = Field(gt=0)
    join_timeout: float = Field(gt=0)


class InternalLoggingConfig(WxtexBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    file: Optional[str]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(WxtexBaseModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly::

        def __init__(self, config: InternalConfig):
            self.max_speed = config.encoding.wind_max_speed  # NOT .get()

    Validation, coercion and defaults all happen during resolution.
    """

    store: InternalStoreConfig
    variables: InternalVariableNamesConfig
    coords: InternalCoordNamesConfig
    encoding: InternalEncodingConfig
    selection: InternalSelectionConfig
    worker: InternalWorkerConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,
    )
